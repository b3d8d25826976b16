from __future__ import annotations

from flask import request
from flask.views import MethodView
from flask_login import current_user

from .errors import Unauthenticated, Unauthorized, ValidationError


def is_admin_user() -> bool:
    return current_user.is_authenticated and current_user.is_admin


def require_login() -> None:
    if not current_user.is_authenticated:
        if request.headers.get("Authorization"):
            raise Unauthenticated("Unauthorized")
        raise Unauthenticated()


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def json_str(data: dict, key: str) -> str:
    """Stripped text field of a JSON body; missing or null reads as ''."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


# --------- Class-based view Mixins ----------

class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        require_login()
        return super().dispatch_request(*args, **kwargs)


class AdminRequiredMixin(LoginRequiredMixin):
    def dispatch_request(self, *args, **kwargs):
        require_login()
        if not is_admin_user():
            raise Unauthorized("Only admins can do this")
        return super().dispatch_request(*args, **kwargs)

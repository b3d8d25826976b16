from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask.views import MethodView
from flask_login import current_user

from ..errors import Unauthenticated
from ..policies import LoginRequiredMixin, json_body, json_str
from ..security import issue_access_token
from ..services.users import authenticate, register_user

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class RegisterView(MethodView):
    def post(self):
        data = json_body()
        user = register_user(json_str(data, "name"), json_str(data, "client_hash"), json_str(data, "email"))
        return jsonify(user.to_dict()), 201


class TokenView(MethodView):
    def post(self):
        data = json_body()
        user = authenticate(json_str(data, "name"), json_str(data, "client_hash"))
        if user is None:
            raise Unauthenticated("Invalid name or passphrase.")

        return jsonify(
            access_token=issue_access_token(user.id),
            token_type="bearer",
            expires_in=int(current_app.config["ACCESS_TOKEN_TTL_SECONDS"]),
        )


class MeView(LoginRequiredMixin):
    def get(self):
        return jsonify(current_user.to_dict())


auth_bp.add_url_rule("/register", view_func=RegisterView.as_view("register"), methods=["POST"])
auth_bp.add_url_rule("/token", view_func=TokenView.as_view("token"), methods=["POST"])
auth_bp.add_url_rule("/me", view_func=MeView.as_view("me"))

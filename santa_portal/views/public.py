from __future__ import annotations

from flask import Blueprint, jsonify
from flask.views import MethodView
from sqlalchemy import func, select

from ..extensions import db
from ..models import EventStatus, SantaEvent, User


public_bp = Blueprint("public", __name__)


class LandingView(MethodView):
    def get(self):
        open_events = db.session.scalar(
            select(func.count(SantaEvent.id)).where(SantaEvent.status == EventStatus.OPEN)
        )
        return jsonify(
            service="santa-portal",
            open_events=open_events or 0,
            num_users=db.session.scalar(select(func.count(User.id))) or 0,
        )


public_bp.add_url_rule("/", view_func=LandingView.as_view("landing"))

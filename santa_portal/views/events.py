from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user

from ..errors import Unauthorized, ValidationError
from ..policies import AdminRequiredMixin, LoginRequiredMixin, is_admin_user, json_body
from ..services.events import (
    complete_event,
    create_event,
    enable_reveal,
    get_event,
    join_event,
    leave_event,
    list_events,
    list_participants,
    open_event,
    set_participant_active,
)

events_bp = Blueprint("events", __name__, url_prefix="/events")


class EventListView(LoginRequiredMixin):
    def get(self):
        return jsonify([e.to_dict() for e in list_events(current_user)])

    def post(self):
        # creation is admin-only; listing is not
        if not is_admin_user():
            raise Unauthorized("Only admins can create events")
        event = create_event(json_body(), current_user)
        return jsonify(event.to_dict()), 201


class EventDetailView(LoginRequiredMixin):
    def get(self, event_id: str):
        return jsonify(get_event(event_id).to_dict())


class OpenEventView(AdminRequiredMixin):
    def post(self, event_id: str):
        return jsonify(open_event(event_id).to_dict())


class RevealEventView(AdminRequiredMixin):
    def post(self, event_id: str):
        return jsonify(enable_reveal(event_id).to_dict())


class CompleteEventView(AdminRequiredMixin):
    def post(self, event_id: str):
        return jsonify(complete_event(event_id).to_dict())


class ParticipantsView(LoginRequiredMixin):
    def get(self, event_id: str):
        return jsonify([p.to_dict() for p in list_participants(event_id, current_user)])


class JoinEventView(LoginRequiredMixin):
    def post(self, event_id: str):
        return jsonify(join_event(event_id, current_user).to_dict())


class LeaveEventView(LoginRequiredMixin):
    def post(self, event_id: str):
        return jsonify(leave_event(event_id, current_user).to_dict())


class ParticipantDetailView(AdminRequiredMixin):
    def patch(self, event_id: str, user_id: str):
        data = json_body()
        if not isinstance(data.get("is_active"), bool):
            raise ValidationError("is_active must be true or false")
        return jsonify(set_participant_active(event_id, user_id, data["is_active"]).to_dict())


# Register routes
events_bp.add_url_rule("", view_func=EventListView.as_view("list"), methods=["GET", "POST"])
events_bp.add_url_rule("/<event_id>", view_func=EventDetailView.as_view("detail"))
events_bp.add_url_rule("/<event_id>/open", view_func=OpenEventView.as_view("open"), methods=["POST"])
events_bp.add_url_rule("/<event_id>/reveal", view_func=RevealEventView.as_view("reveal"), methods=["POST"])
events_bp.add_url_rule("/<event_id>/complete", view_func=CompleteEventView.as_view("complete"), methods=["POST"])

events_bp.add_url_rule("/<event_id>/participants", view_func=ParticipantsView.as_view("participants"))
events_bp.add_url_rule("/<event_id>/join", view_func=JoinEventView.as_view("join"), methods=["POST"])
events_bp.add_url_rule("/<event_id>/leave", view_func=LeaveEventView.as_view("leave"), methods=["POST"])
events_bp.add_url_rule(
    "/<event_id>/participants/<user_id>",
    view_func=ParticipantDetailView.as_view("participant_detail"),
    methods=["PATCH"],
)

from __future__ import annotations

import logging

from flask import Blueprint, jsonify
from flask.views import MethodView
from flask_login import current_user

from ..errors import PortalError, Unauthorized, ValidationError
from ..policies import AdminRequiredMixin, LoginRequiredMixin, is_admin_user, json_body, require_login
from ..services.assignments import (
    generate_assignments,
    list_assignments,
    regenerate_assignments,
    revealed_assignment_for,
)
from ..services.wishlists import add_wishlist_item, delete_wishlist_item, get_wishlist

logger = logging.getLogger(__name__)

santa_bp = Blueprint("santa", __name__)


class AssignSecretSantaView(MethodView):
    """
    Generator endpoint for the web client.

    Always answers with the ``success`` envelope; 401/403 for auth failures,
    400 for everything else.
    """

    def post(self):
        try:
            require_login()
            if not is_admin_user():
                raise Unauthorized("Only admins can generate assignments")

            event_id = json_body().get("eventId")
            if not event_id:
                raise ValidationError("Event ID is required")

            count = generate_assignments(str(event_id), current_user)
        except PortalError as e:
            logger.error("Error: %s", e)
            status = e.status_code if e.status_code in (401, 403) else 400
            return jsonify(success=False, error=e.message, kind=e.kind), status

        return jsonify(
            success=True,
            message="Secret Santa assignments generated successfully",
            assignmentsCount=count,
        )


class RegenerateAssignmentsView(AdminRequiredMixin):
    def post(self, event_id: str):
        count = regenerate_assignments(event_id, current_user)
        return jsonify(
            success=True,
            message="Assignments regenerated successfully",
            assignmentsCount=count,
        )


class EventAssignmentsView(AdminRequiredMixin):
    def get(self, event_id: str):
        return jsonify([a.to_dict() for a in list_assignments(event_id, current_user)])


class MyAssignmentView(LoginRequiredMixin):
    def get(self, event_id: str):
        assignment = revealed_assignment_for(event_id, current_user)
        receiver = assignment.receiver
        return jsonify(
            event_id=event_id,
            receiver={"id": receiver.id, "name": receiver.name},
            wishlist=[i.to_dict() for i in get_wishlist(event_id, receiver.id)],
        )


class WishlistView(LoginRequiredMixin):
    def get(self, event_id: str):
        return jsonify([i.to_dict() for i in get_wishlist(event_id, current_user.id)])

    def post(self, event_id: str):
        item = add_wishlist_item(event_id, current_user, json_body())
        return jsonify(item.to_dict()), 201


class WishlistItemView(LoginRequiredMixin):
    def delete(self, event_id: str, item_id: int):
        delete_wishlist_item(event_id, item_id, current_user)
        return "", 204


# Register routes
santa_bp.add_url_rule(
    "/functions/assign-secret-santa",
    view_func=AssignSecretSantaView.as_view("assign_secret_santa"),
    methods=["POST"],
)
santa_bp.add_url_rule(
    "/events/<event_id>/assignments/regenerate",
    view_func=RegenerateAssignmentsView.as_view("regenerate_assignments"),
    methods=["POST"],
)
santa_bp.add_url_rule("/events/<event_id>/assignments", view_func=EventAssignmentsView.as_view("event_assignments"))
santa_bp.add_url_rule("/events/<event_id>/my-assignment", view_func=MyAssignmentView.as_view("my_assignment"))

santa_bp.add_url_rule(
    "/events/<event_id>/wishlist",
    view_func=WishlistView.as_view("wishlist"),
    methods=["GET", "POST"],
)
santa_bp.add_url_rule(
    "/events/<event_id>/wishlist/<int:item_id>",
    view_func=WishlistItemView.as_view("wishlist_item"),
    methods=["DELETE"],
)

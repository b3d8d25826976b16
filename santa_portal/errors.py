from __future__ import annotations

import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db

logger = logging.getLogger(__name__)


class PortalError(RuntimeError):
    """Base for failures reported to the caller as ``{error, kind}``."""

    kind = "Error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class Unauthenticated(PortalError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "No authorization header"


class Unauthorized(PortalError):
    kind = "Unauthorized"
    status_code = 403
    default_message = "Not authorized"


class NotFound(PortalError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class ValidationError(PortalError):
    kind = "ValidationError"
    default_message = "Invalid request"


class Conflict(PortalError):
    kind = "Conflict"
    status_code = 409
    default_message = "Already exists"


class InvalidState(PortalError):
    kind = "InvalidState"
    default_message = "Event is not in the right status for this action"


class StoreError(PortalError):
    kind = "StoreError"
    status_code = 500
    default_message = "Database error"


class AssignmentError(PortalError):
    pass


class InsufficientParticipants(AssignmentError):
    kind = "InsufficientParticipants"
    default_message = "Need at least 3 participants for Secret Santa"


class AlreadyAssigned(AssignmentError):
    kind = "AlreadyAssigned"
    default_message = "Assignments already exist for this event"


class GenerationFailed(AssignmentError):
    kind = "GenerationFailed"
    default_message = "Failed to generate valid Secret Santa assignments after multiple attempts"


def error_body(exc: PortalError) -> dict:
    return {"error": exc.message, "kind": exc.kind}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PortalError)
    def handle_portal_error(exc: PortalError):
        return jsonify(error_body(exc)), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(exc: SQLAlchemyError):
        logger.error("Database error: %s", exc, exc_info=True)
        db.session.rollback()
        return jsonify(error_body(StoreError())), StoreError.status_code

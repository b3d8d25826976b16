from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select

from ..errors import InvalidState, NotFound, Unauthorized, ValidationError
from ..extensions import db
from ..models import EventStatus, SantaEvent, SantaParticipant, User
from ..policies import json_str

logger = logging.getLogger(__name__)

# budget_limit is Numeric(10, 2)
MAX_BUDGET = Decimal("100000000")
CENT = Decimal("0.01")


def _parse_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)") from e


def _parse_budget(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError("budget_limit must be a number")
    try:
        budget = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValidationError("budget_limit must be a number") from e
    if not budget.is_finite():
        raise ValidationError("budget_limit must be a number")
    if budget < 0:
        raise ValidationError("budget_limit cannot be negative")
    if budget >= MAX_BUDGET or budget.quantize(CENT) >= MAX_BUDGET:
        raise ValidationError(f"budget_limit must be less than {MAX_BUDGET:,.0f}")
    return budget.quantize(CENT)


def get_event(event_id: str) -> SantaEvent:
    event = db.session.get(SantaEvent, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def list_events(user) -> list[SantaEvent]:
    """Admins see every event; everyone else only events that are not completed."""
    stmt = select(SantaEvent).order_by(SantaEvent.created_at.desc())
    if not user.is_admin:
        stmt = stmt.where(SantaEvent.status != EventStatus.COMPLETED)
    return list(db.session.scalars(stmt).all())


def enroll_all_users(event: SantaEvent, session=None) -> int:
    """Adds every registered user as an active participant. Existing rows are left alone."""
    session = session or db.session
    enrolled = set(
        session.scalars(select(SantaParticipant.user_id).where(SantaParticipant.event_id == event.id)).all()
    )
    added = 0
    for user_id in session.scalars(select(User.id).order_by(User.registered_at, User.id)).all():
        if user_id in enrolled:
            continue
        session.add(SantaParticipant(event_id=event.id, user_id=user_id, is_active=True))
        added += 1
    return added


def create_event(data: dict, creator: User) -> SantaEvent:
    name = json_str(data, "name")
    start_date = json_str(data, "start_date")
    end_date = json_str(data, "end_date")
    if not name or not start_date or not end_date:
        raise ValidationError("Please fill in all required fields")

    start = _parse_date(start_date, "start_date")
    end = _parse_date(end_date, "end_date")
    if end < start:
        raise ValidationError("end_date cannot be before start_date")

    try:
        status = EventStatus(json_str(data, "status") or EventStatus.DRAFT.value)
    except ValueError as e:
        raise ValidationError("status must be draft or open") from e
    if status not in (EventStatus.DRAFT, EventStatus.OPEN):
        raise ValidationError("status must be draft or open")

    event = SantaEvent(
        name=name,
        description=json_str(data, "description") or None,
        budget_limit=_parse_budget(data.get("budget_limit")),
        start_date=start,
        end_date=end,
        created_by=creator.id,
        status=status,
        reveal_enabled=False,
    )
    db.session.add(event)
    db.session.flush()

    if status == EventStatus.OPEN:
        added = enroll_all_users(event)
        logger.info("Enrolled %d users in event %s", added, event.id)

    db.session.commit()
    logger.info("Event %s created by %s with status %s", event.id, creator.id, status.value)
    return event


def open_event(event_id: str) -> SantaEvent:
    event = get_event(event_id)
    if event.status != EventStatus.DRAFT:
        raise InvalidState('Only "draft" events can be opened')

    event.status = EventStatus.OPEN
    added = enroll_all_users(event)
    db.session.commit()
    logger.info("Event %s opened, %d users enrolled", event.id, added)
    return event


def enable_reveal(event_id: str) -> SantaEvent:
    event = get_event(event_id)
    if event.status != EventStatus.ASSIGNED:
        raise InvalidState('Event must be in "assigned" status to reveal assignments')

    event.reveal_enabled = True
    db.session.commit()
    return event


def complete_event(event_id: str) -> SantaEvent:
    event = get_event(event_id)
    if event.status != EventStatus.ASSIGNED:
        raise InvalidState('Event must be in "assigned" status to be completed')

    event.status = EventStatus.COMPLETED
    event.completed_at = datetime.utcnow()
    db.session.commit()
    logger.info("Event %s completed", event.id)
    return event


# --------- Participants ----------

def get_participant(event_id: str, user_id: str) -> Optional[SantaParticipant]:
    return db.session.scalars(
        select(SantaParticipant).where(
            SantaParticipant.event_id == event_id,
            SantaParticipant.user_id == user_id,
        )
    ).first()


def is_participant(event_id: str, user_id: str) -> bool:
    """True for active participants only; someone who left is treated as an outsider."""
    participant = get_participant(event_id, user_id)
    return participant is not None and participant.is_active


def list_participants(event_id: str, user) -> list[SantaParticipant]:
    get_event(event_id)
    if not user.is_admin and not is_participant(event_id, user.id):
        raise Unauthorized("Only participants can view this event's participants")

    stmt = (
        select(SantaParticipant)
        .where(SantaParticipant.event_id == event_id)
        .order_by(SantaParticipant.joined_at, SantaParticipant.id)
    )
    return list(db.session.scalars(stmt).all())


def _require_open(event: SantaEvent) -> None:
    if event.status != EventStatus.OPEN:
        raise InvalidState("Participants can only change while the event is open")


def join_event(event_id: str, user: User) -> SantaParticipant:
    event = get_event(event_id)
    _require_open(event)

    participant = get_participant(event_id, user.id)
    if participant is None:
        participant = SantaParticipant(event_id=event_id, user_id=user.id, is_active=True)
        db.session.add(participant)
    else:
        participant.is_active = True
    db.session.commit()
    return participant


def leave_event(event_id: str, user: User) -> SantaParticipant:
    event = get_event(event_id)
    _require_open(event)

    participant = get_participant(event_id, user.id)
    if participant is None:
        raise NotFound("You are not part of this event")
    participant.is_active = False
    db.session.commit()
    return participant


def set_participant_active(event_id: str, user_id: str, is_active: bool) -> SantaParticipant:
    event = get_event(event_id)
    _require_open(event)

    participant = get_participant(event_id, user_id)
    if participant is None:
        raise NotFound("Participant not found")
    participant.is_active = bool(is_active)
    db.session.commit()
    return participant

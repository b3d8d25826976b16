from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import (
    AlreadyAssigned,
    GenerationFailed,
    InsufficientParticipants,
    InvalidState,
    NotFound,
    StoreError,
    Unauthorized,
)
from ..extensions import db
from ..models import EventStatus, SantaAssignment
from .events import enroll_all_users
from .locks import event_lock
from .store import AssignmentStore

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 3
MAX_ATTEMPTS = 100

_system_random = random.SystemRandom()


def create_derangement(
    participants: Sequence[str],
    rng: Optional[random.Random] = None,
    max_attempts: int = MAX_ATTEMPTS,
    min_participants: int = MIN_PARTICIPANTS,
) -> list[tuple[str, str]]:
    """
    Pair every participant with a receiver other than themselves.

    Rejection sampling over uniform shuffles, so every derangement is
    equally likely. Returns ``(giver, receiver)`` pairs in participant order.
    Raises GenerationFailed when ``max_attempts`` shuffles all had a fixed point.
    """
    if len(participants) < min_participants:
        raise InsufficientParticipants(f"Need at least {min_participants} participants for Secret Santa")

    rng = rng or _system_random
    givers = list(participants)

    for _ in range(max_attempts):
        receivers = givers[:]
        # Fisher-Yates
        rng.shuffle(receivers)
        if all(g != r for g, r in zip(givers, receivers)):
            return list(zip(givers, receivers))

    raise GenerationFailed()


def _require_admin(user, message: str) -> None:
    if user is None or not getattr(user, "is_authenticated", False) or not getattr(user, "is_admin", False):
        raise Unauthorized(message)


def _limits() -> tuple[int, int]:
    cfg = current_app.config
    return (
        int(cfg.get("SANTA_MIN_PARTICIPANTS", MIN_PARTICIPANTS)),
        int(cfg.get("SANTA_MAX_ATTEMPTS", MAX_ATTEMPTS)),
    )


def _generate_in_transaction(event_id: str, store: AssignmentStore, rng: Optional[random.Random]) -> int:
    """Checks the event preconditions and stages the batch plus the status flip. Caller commits."""
    min_participants, max_attempts = _limits()

    event = store.get_event(event_id)
    if event is None:
        raise NotFound("Event not found")

    if event.status != EventStatus.OPEN:
        raise InvalidState('Event must be in "open" status to generate assignments')

    participants = store.load_active_participants(event_id)
    if len(participants) < min_participants:
        raise InsufficientParticipants(f"Need at least {min_participants} participants for Secret Santa")

    logger.info("Found %d participants for event %s", len(participants), event_id)

    if store.has_assignments(event_id):
        raise AlreadyAssigned()

    pairs = create_derangement(
        participants, rng=rng, max_attempts=max_attempts, min_participants=min_participants
    )

    try:
        count = store.commit_assignments(event_id, pairs)
    except IntegrityError as e:
        # another writer got there first
        logger.warning("Assignment batch for event %s rejected by the store: %s", event_id, e)
        raise AlreadyAssigned() from e

    store.transition_event_status(event_id, EventStatus.ASSIGNED, reveal_enabled=True)
    return count


def generate_assignments(
    event_id: str,
    requesting_user,
    store: Optional[AssignmentStore] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """
    Generate and persist the Secret Santa pairs of an open event.

    Moves the event to ``assigned`` with reveal enabled. The batch insert and
    the status change share one transaction, so a failed insert leaves the
    event ``open`` with no rows. Returns the number of assignments created.
    """
    _require_admin(requesting_user, "Only admins can generate assignments")
    store = store or AssignmentStore(db.session)

    logger.info("Generating assignments for event: %s", event_id)
    with event_lock(event_id):
        try:
            count = _generate_in_transaction(event_id, store, rng)
            store.commit()
        except SQLAlchemyError as e:
            store.rollback()
            logger.error("Store error while generating assignments for %s: %s", event_id, e, exc_info=True)
            raise StoreError("Failed to save assignments") from e
        except Exception:
            store.rollback()
            raise

    logger.info("Created %d assignments for event %s", count, event_id)
    return count


def regenerate_assignments(
    event_id: str,
    requesting_user,
    store: Optional[AssignmentStore] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """
    Throw away the current pairs of an event and draw new ones.

    Deleting, reopening and generating run in one transaction: if the new
    draw fails the old pairs and status are kept. Moving an assigned event
    back to open enrols users who registered after it was opened, the same
    as opening a draft does.
    """
    _require_admin(requesting_user, "Only admins can regenerate assignments")
    store = store or AssignmentStore(db.session)

    logger.info("Regenerating assignments for event: %s", event_id)
    with event_lock(event_id):
        try:
            event = store.get_event(event_id)
            if event is None:
                raise NotFound("Event not found")
            if event.status not in (EventStatus.OPEN, EventStatus.ASSIGNED):
                raise InvalidState('Event must be "open" or "assigned" to regenerate assignments')

            reopening = event.status == EventStatus.ASSIGNED
            store.delete_assignments(event_id)
            store.transition_event_status(event_id, EventStatus.OPEN, reveal_enabled=False)
            if reopening:
                # back to open enrols everyone registered since the last draw
                added = enroll_all_users(event, store.session)
                store.session.flush()
                logger.info("Enrolled %d users in event %s", added, event_id)
            count = _generate_in_transaction(event_id, store, rng)
            store.commit()
        except SQLAlchemyError as e:
            store.rollback()
            logger.error("Store error while regenerating assignments for %s: %s", event_id, e, exc_info=True)
            raise StoreError("Failed to save assignments") from e
        except Exception:
            store.rollback()
            raise

    logger.info("Regenerated %d assignments for event %s", count, event_id)
    return count


def list_assignments(event_id: str, requesting_user) -> list[SantaAssignment]:
    _require_admin(requesting_user, "Only admins can view all assignments")
    store = AssignmentStore(db.session)
    if store.get_event(event_id) is None:
        raise NotFound("Event not found")
    return store.get_assignments(event_id)


def revealed_assignment_for(event_id: str, user) -> SantaAssignment:
    """The caller's own assignment as giver, visible once reveal is enabled."""
    store = AssignmentStore(db.session)
    event = store.get_event(event_id)
    if event is None:
        raise NotFound("Event not found")
    if not event.reveal_enabled:
        raise NotFound("Assignments have not been revealed yet")

    assignment = db.session.scalars(
        select(SantaAssignment).where(
            SantaAssignment.event_id == event_id,
            SantaAssignment.giver_id == user.id,
        )
    ).first()
    if assignment is None:
        raise NotFound("You do not have an assignment for this event")
    return assignment

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models import EventStatus, SantaAssignment, SantaEvent, SantaParticipant


class AssignmentStore:
    """
    Data access used by the assignment generator.

    Writes are staged in the session's transaction; nothing is durable until
    ``commit()``. Every method raises on failure (SQLAlchemyError).
    """

    def __init__(self, session: Session):
        self.session = session

    def get_event(self, event_id: str) -> Optional[SantaEvent]:
        return self.session.get(SantaEvent, event_id)

    def load_active_participants(self, event_id: str) -> list[str]:
        """User ids of the active participants, in join order."""
        stmt = (
            select(SantaParticipant.user_id)
            .where(SantaParticipant.event_id == event_id, SantaParticipant.is_active.is_(True))
            .order_by(SantaParticipant.joined_at, SantaParticipant.id)
        )
        return list(self.session.scalars(stmt).all())

    def has_assignments(self, event_id: str) -> bool:
        stmt = select(SantaAssignment.id).where(SantaAssignment.event_id == event_id).limit(1)
        return self.session.scalars(stmt).first() is not None

    def get_assignments(self, event_id: str) -> list[SantaAssignment]:
        stmt = select(SantaAssignment).where(SantaAssignment.event_id == event_id).order_by(SantaAssignment.id)
        return list(self.session.scalars(stmt).all())

    def commit_assignments(self, event_id: str, pairs: Sequence[tuple[str, str]]) -> int:
        """Stage the whole batch and flush it, so constraint violations surface here."""
        self.session.add_all(
            SantaAssignment(event_id=event_id, giver_id=giver, receiver_id=receiver)
            for giver, receiver in pairs
        )
        self.session.flush()
        return len(pairs)

    def delete_assignments(self, event_id: str) -> None:
        self.session.execute(delete(SantaAssignment).where(SantaAssignment.event_id == event_id))
        self.session.flush()

    def transition_event_status(self, event_id: str, status: EventStatus, reveal_enabled: bool) -> None:
        event = self.session.get(SantaEvent, event_id)
        event.status = status
        event.reveal_enabled = reveal_enabled
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from flask_login import UserMixin

from .extensions import db, login_manager
from .security import bearer_token, read_access_token


def _uuid() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class WishlistPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Sort key for wishlists: high first.
PRIORITY_ORDER = {WishlistPriority.HIGH: 0, WishlistPriority.MEDIUM: 1, WishlistPriority.LOW: 2}


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)

    # salted Passlib hash of SHA-256(passphrase) from the browser
    passkey_hash = db.Column(db.String(255), nullable=False)

    registered_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    roles = db.relationship("UserRole", back_populates="user", cascade="all, delete-orphan", lazy="selectin")

    @property
    def role_names(self) -> set[str]:
        return {r.role.value for r in self.roles}

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN.value in self.role_names

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "roles": sorted(self.role_names),
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }


class UserRole(db.Model):
    __tablename__ = "user_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.Enum(Role, values_callable=lambda e: [m.value for m in e]), nullable=False)

    user = db.relationship("User", back_populates="roles")

    __table_args__ = (
        db.UniqueConstraint("user_id", "role"),
    )


class SantaEvent(db.Model):
    __tablename__ = "secret_santa_events"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    budget_limit = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(
        db.Enum(EventStatus, values_callable=lambda e: [m.value for m in e]),
        default=EventStatus.DRAFT,
        nullable=False,
        index=True,
    )
    reveal_enabled = db.Column(db.Boolean, default=False, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    participants = db.relationship("SantaParticipant", back_populates="event", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "budget_limit": float(self.budget_limit) if self.budget_limit is not None else None,
            "status": self.status.value,
            "reveal_enabled": self.reveal_enabled,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class SantaParticipant(db.Model):
    __tablename__ = "secret_santa_participants"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.String(36), db.ForeignKey("secret_santa_events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    event = db.relationship("SantaEvent", back_populates="participants")
    user = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id"),
    )

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "user_id": self.user_id,
            "name": self.user.name if self.user else None,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
            "is_active": self.is_active,
        }


class SantaAssignment(db.Model):
    """
    One giver -> receiver pair of an event. Each user gives once and
    receives once per event; the unique constraints reject a second batch.
    """
    __tablename__ = "secret_santa_assignments"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.String(36), db.ForeignKey("secret_santa_events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    giver_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    giver = db.relationship("User", foreign_keys=[giver_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        db.UniqueConstraint("event_id", "giver_id"),
        db.UniqueConstraint("event_id", "receiver_id"),
    )

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "giver_id": self.giver_id,
            "receiver_id": self.receiver_id,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
        }


class WishlistItem(db.Model):
    __tablename__ = "secret_santa_wishlists"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.String(36), db.ForeignKey("secret_santa_events.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_title = db.Column(db.Text, nullable=False)
    item_description = db.Column(db.Text, nullable=True)
    item_url = db.Column(db.Text, nullable=True)
    priority = db.Column(
        db.Enum(WishlistPriority, values_callable=lambda e: [m.value for m in e]),
        default=WishlistPriority.MEDIUM,
        nullable=False,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_secret_santa_wishlists_event_user", "event_id", "user_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "user_id": self.user_id,
            "item_title": self.item_title,
            "item_description": self.item_description,
            "item_url": self.item_url,
            "priority": self.priority.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@login_manager.request_loader
def load_user_from_request(request):
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    try:
        user_id = read_access_token(token)
    except ValueError:
        return None
    return db.session.get(User, user_id)

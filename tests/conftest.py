from __future__ import annotations

import hashlib
from datetime import date, datetime, timedelta

import pytest
from flask import g

from santa_portal import create_app
from santa_portal.extensions import db as _db
from santa_portal.models import EventStatus, Role, SantaEvent, SantaParticipant, User, UserRole
from santa_portal.security import issue_access_token


def client_hash(passphrase: str) -> str:
    """What the browser sends: SHA-256 hex of the passphrase."""
    return hashlib.sha256(passphrase.encode("utf-8")).hexdigest()


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SECRET_KEY": "test-secret",
            "SANTA_ADMIN_NAME": "Admin",
        }
    )

    # test requests reuse the fixture's app context, and Flask-Login caches the user on g
    @app.before_request
    def _forget_loaded_user():
        g.pop("_login_user", None)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def make_user(session):
    def _make(name: str, admin: bool = False, registered_at: datetime | None = None) -> User:
        user = User(name=name, passkey_hash="unused", registered_at=registered_at or datetime.utcnow())
        user.roles.append(UserRole(role=Role.EMPLOYEE))
        if admin:
            user.roles.append(UserRole(role=Role.ADMIN))
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("Admin", admin=True)


@pytest.fixture
def make_event(session, admin):
    def _make(status: EventStatus = EventStatus.OPEN, users=(), inactive=()) -> SantaEvent:
        event = SantaEvent(
            name="Office Secret Santa",
            status=status,
            start_date=date(2026, 12, 1),
            end_date=date(2026, 12, 20),
            created_by=admin.id,
        )
        session.add(event)
        session.flush()
        joined = datetime(2026, 11, 1)
        for i, user in enumerate(list(users) + list(inactive)):
            session.add(
                SantaParticipant(
                    event_id=event.id,
                    user_id=user.id,
                    is_active=user not in inactive,
                    joined_at=joined + timedelta(minutes=i),
                )
            )
        session.commit()
        return event

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_access_token(user.id)}"}

    return _headers


@pytest.fixture
def employees(make_user):
    return [make_user(name) for name in ("Alice", "Bob", "Carol", "Dave")]

import threading
from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from santa_portal import create_app
from santa_portal.errors import InvalidState, PortalError
from santa_portal.extensions import db
from santa_portal.models import EventStatus, SantaAssignment, SantaEvent, SantaParticipant, User
from santa_portal.services.assignments import generate_assignments
from santa_portal.services.locks import is_locked
from santa_portal.services.store import AssignmentStore

# the service only needs these two attributes; an ORM user would be bound to another thread's session
ADMIN = SimpleNamespace(is_authenticated=True, is_admin=True)


@pytest.fixture
def file_app(tmp_path):
    # one connection per thread, which the in-memory database cannot give
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'santa.db'}",
            "SECRET_KEY": "test-secret",
            "SANTA_ADMIN_NAME": "Admin",
        }
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _seed_open_event(names) -> str:
    creator = User(name="Admin", passkey_hash="unused")
    users = [User(name=name, passkey_hash="unused") for name in names]
    db.session.add_all([creator, *users])
    db.session.flush()

    event = SantaEvent(
        name="Office Secret Santa",
        status=EventStatus.OPEN,
        start_date=date(2026, 12, 1),
        end_date=date(2026, 12, 20),
        created_by=creator.id,
    )
    db.session.add(event)
    db.session.flush()
    db.session.add_all(SantaParticipant(event_id=event.id, user_id=u.id, is_active=True) for u in users)
    db.session.commit()
    return event.id


def test_second_caller_waits_for_the_first_and_is_turned_away(file_app):
    with file_app.app_context():
        event_id = _seed_open_event(["Alice", "Bob", "Carol", "Dave"])

    inside = threading.Event()
    release = threading.Event()
    results = {}

    class PausingStore(AssignmentStore):
        """Holds the first caller after its batch is staged, before the status flip."""

        def commit_assignments(self, event_id, pairs):
            count = super().commit_assignments(event_id, pairs)
            inside.set()
            release.wait(5)
            return count

    def run(name, store_cls):
        with file_app.app_context():
            try:
                results[name] = generate_assignments(event_id, ADMIN, store=store_cls(db.session))
            except PortalError as e:
                results[name] = e

    first = threading.Thread(target=run, args=("first", PausingStore))
    second = threading.Thread(target=run, args=("second", AssignmentStore))

    first.start()
    assert inside.wait(5)
    second.start()

    second.join(0.2)
    assert second.is_alive()
    assert "second" not in results
    assert is_locked(event_id)

    release.set()
    first.join(5)
    second.join(5)

    assert results["first"] == 4
    assert isinstance(results["second"], InvalidState)
    assert not is_locked(event_id)

    with file_app.app_context():
        assert db.session.scalar(
            select(func.count(SantaAssignment.id)).where(SantaAssignment.event_id == event_id)
        ) == 4
        assert db.session.get(SantaEvent, event_id).status == EventStatus.ASSIGNED

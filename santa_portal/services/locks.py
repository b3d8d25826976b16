from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

_registry_lock = threading.Lock()
# event id -> [lock, number of callers holding or waiting for it]
_event_locks: dict[str, list] = {}


def is_locked(event_id: str) -> bool:
    """True while some caller holds or waits for the event's lock."""
    with _registry_lock:
        return event_id in _event_locks


@contextmanager
def event_lock(event_id: str) -> Iterator[None]:
    """
    Single-flight guard for one event inside this process.

    Serializes generate/regenerate calls for the same event so a double
    submit cannot pass the "no assignments yet" check twice. Across
    processes the unique constraints on the assignments table do the job.
    The entry is dropped when the last caller leaves.
    """
    with _registry_lock:
        entry = _event_locks.setdefault(event_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _event_locks[event_id]

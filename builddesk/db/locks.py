# builddesk/db/locks.py
"""
Per-project write serialization.

Estimation invariants (single active version, monotonic versions) only hold
if mutations for one project never interleave. Routes hold the lock across
the service call and the commit.

A project's entry lives only while someone holds or waits for its lock,
so the registry does not grow with the number of projects ever touched.
"""
import threading
from contextlib import contextmanager

_registry_lock = threading.Lock()
_project_locks = {}


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


def _acquire_entry(project_id: str) -> _LockEntry:
    with _registry_lock:
        entry = _project_locks.get(project_id)
        if entry is None:
            entry = _LockEntry()
            _project_locks[project_id] = entry
        entry.users += 1
        return entry


def _release_entry(project_id: str, entry: _LockEntry) -> None:
    with _registry_lock:
        entry.users -= 1
        if entry.users == 0:
            del _project_locks[project_id]


@contextmanager
def project_lock(project_id: str):
    entry = _acquire_entry(project_id)
    try:
        with entry.lock:
            yield
    finally:
        _release_entry(project_id, entry)

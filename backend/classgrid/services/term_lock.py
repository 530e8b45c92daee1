from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import hashlib
from threading import Lock

from sqlalchemy import text
from sqlalchemy.orm import Session


class TermLockRegistry:
    """One mutex per (school, term) so lesson writes for a term run one at a time."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], Lock] = {}
        self._guard = Lock()

    def lock_for(self, school_id: str, term_id: str) -> Lock:
        key = (school_id, term_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            return lock

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


_registry = TermLockRegistry()


def advisory_lock_key(school_id: str, term_id: str) -> int:
    digest = hashlib.sha256(f"lessons:{school_id}:{term_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


@contextmanager
def term_write_lock(db: Session, school_id: str, term_id: str) -> Iterator[None]:
    """Serialize lesson writes for one term.

    The in-process mutex covers threads of this worker. On PostgreSQL a
    transaction-scoped advisory lock also covers other workers; it is
    released when the caller commits or rolls back.
    """
    with _registry.lock_for(school_id, term_id):
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": advisory_lock_key(school_id, term_id)})
        yield


def clear_term_locks() -> None:
    _registry.clear()

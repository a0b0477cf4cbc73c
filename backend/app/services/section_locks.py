from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock


class SectionWriteLocks:
    """One lock per (school, section); writes to different sections never wait on each other."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], Lock] = {}
        self._guard = Lock()

    def lock_for(self, school_id: str, section_id: str) -> Lock:
        key = (school_id, section_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            return lock

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


_locks = SectionWriteLocks()


@contextmanager
def section_write_lock(school_id: str, section_id: str) -> Iterator[None]:
    with _locks.lock_for(school_id, section_id):
        yield


def clear_section_locks() -> None:
    _locks.clear()

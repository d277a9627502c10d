"""In-process serialisation and caller deadlines."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caseflow.domain.errors import DeadlineExceededError

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator


@dataclass(frozen=True, slots=True)
class Deadline:
    """Absolute point on the monotonic clock by which an operation must commit."""

    expires_at: float

    @classmethod
    def within(cls, seconds: float) -> Deadline:
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, what: str = "operation") -> None:
        if self.expired:
            raise DeadlineExceededError(f"Deadline exceeded before {what} completed")


def check_deadline(deadline: Deadline | None, what: str) -> None:
    if deadline is not None:
        deadline.check(what)


@dataclass(slots=True)
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLocks:
    """One lock per key, created on demand and dropped when nobody holds or waits."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable, *, deadline: Deadline | None = None) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.users += 1
        try:
            timeout = -1 if deadline is None else deadline.remaining()
            if not entry.lock.acquire(timeout=timeout):
                raise DeadlineExceededError(f"Timed out waiting for lock on {key!r}")
            try:
                check_deadline(deadline, "lock acquisition")
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

"""
Per-session mutual exclusion.

At most one action mutates a given session at a time; actions on different sessions never wait for each other.
Locks are created on first use and dropped again once nobody holds or waits for them.
The same registry serializes counter updates per user when sessions finish.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Iterator, Optional

from src.core.exceptions import SessionBusyError

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0  # holders + waiters


class SessionLocks:
    """Registry of one lock per key (session id, or user id for the user registry)."""

    def __init__(self, name: str = "Session") -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: dict[Hashable, _LockEntry] = {}

    @contextmanager
    def hold(
        self,
        key: Hashable,
        timeout: Optional[float] = None,
        action: Optional[str] = None,
    ) -> Iterator[None]:
        """
        Hold the lock of one key for the duration of the `with` block.

        Waits at most `timeout` seconds (forever if None) and raises SessionBusyError when that runs out.
        The lock is released on every exit path, exceptions included.
        """
        with self._guard:
            entry = self._locks.setdefault(key, _LockEntry())
            entry.users += 1

        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                logger.warning(f"gave up waiting {timeout}s for lock of {self.name.lower()} {key!r} ({action=})")
                raise SessionBusyError(
                    f"{self.name} {key} is busy, try again later.", action=action
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    @contextmanager
    def hold_all(
        self,
        keys: Iterable[Hashable],
        timeout: Optional[float] = None,
        action: Optional[str] = None,
    ) -> Iterator[None]:
        """Hold the locks of several keys. Always taken in sorted order, so two callers never wait on each other in a cycle."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key, timeout, action))
            yield

    def is_locked(self, key: Hashable) -> bool:
        with self._guard:
            entry = self._locks.get(key)
            return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        """Number of keys that currently have a lock (held or waited for)."""
        with self._guard:
            return len(self._locks)


# Shared by every SessionService of the process (one service instance is built per database session).
SESSION_LOCKS = SessionLocks()
USER_LOCKS = SessionLocks("User")

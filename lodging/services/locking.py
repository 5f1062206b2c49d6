"""In-process lock registry for hotel and client scopes."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from lodging.domain.errors import LockTimeoutError
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)

LockKey = tuple[str, int]


def hotel_key(hotel_id: int) -> LockKey:
    return ("hotel", hotel_id)


def client_key(client_id: int) -> LockKey:
    return ("client", client_id)


class LockRegistry:
    """Hands out one lock per hotel/client and acquires sets of them in order.

    Keys are sorted before acquisition so two operations touching the same
    hotels always lock them in the same sequence and cannot deadlock.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._guard = threading.Lock()
        self._locks: dict[LockKey, threading.RLock] = {}
        self._holders: dict[LockKey, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: LockKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: LockKey) -> None:
        # Entries nobody holds or waits on are dropped so the registry stays small.
        with self._guard:
            remaining = self._holders.get(key, 0) - 1
            if remaining > 0:
                self._holders[key] = remaining
            else:
                self._holders.pop(key, None)
                self._locks.pop(key, None)

    @contextmanager
    def hold(
        self,
        keys: Iterable[LockKey],
        timeout: Optional[float] = None,
    ) -> Iterator[None]:
        ordered = sorted(set(keys))
        wait_seconds = self._settings.lock_timeout_seconds if timeout is None else timeout
        acquired: list[tuple[LockKey, threading.RLock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                if not lock.acquire(timeout=wait_seconds):
                    self._checkin(key)
                    logger.warning(
                        "Lock acquisition timed out | %s",
                        log_fields(scope=key[0], id=key[1], timeout=wait_seconds),
                    )
                    raise LockTimeoutError(
                        f"Timed out waiting for {key[0]} {key[1]}; retry the operation"
                    )
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

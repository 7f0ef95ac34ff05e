"""
In-process one-time code store.

Holds one pending forgot-password code per username. Codes live only as
long as the process; use ``RedisOneTimeCodeStore`` when several workers serve
the same users.
"""

from dataclasses import dataclass
from typing import AsyncContextManager, Callable, Dict, Optional
import time

import structlog

from ...core.locks import KeyedLock
from ...interfaces.code_store_interface import IOneTimeCodeStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class PendingCode:
    code: str
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryOneTimeCodeStore(IOneTimeCodeStore):
    """Process-wide keyed code store with per-username locking."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._codes: Dict[str, PendingCode] = {}
        self._locks = KeyedLock()

    async def put(self, username: str, code: str) -> None:
        async with self._locks(username):
            expires_at = None
            if self.ttl_seconds is not None:
                expires_at = self._clock() + self.ttl_seconds
            superseded = username in self._codes
            self._codes[username] = PendingCode(code=code, expires_at=expires_at)
        logger.debug("One-time code stored", username=username, superseded=superseded)

    async def get(self, username: str) -> Optional[str]:
        entry = self._codes.get(username)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            # Only drop the entry we looked at; a newer put may have replaced it.
            if self._codes.get(username) is entry:
                del self._codes[username]
            logger.debug("One-time code expired", username=username)
            return None
        return entry.code

    async def remove(self, username: str) -> None:
        self._codes.pop(username, None)

    def locked(self, username: str) -> AsyncContextManager[None]:
        return self._locks(username)

    def __len__(self) -> int:
        return len(self._codes)

"""
Redis-backed storage for forgot-password codes.
Shares the one-time code contract with the in-memory store so several
service instances can validate each other's codes.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import LockNotOwnedError
import structlog

from ..interfaces.code_store_interface import IOneTimeCodeStore
from .exceptions import CodeStoreBusyError

logger = structlog.get_logger()


def create_redis_client(redis_url: str) -> redis.Redis:
    """Create a Redis client from a connection URL."""
    return redis.Redis.from_url(redis_url, decode_responses=True)


class RedisOneTimeCodeStore(IOneTimeCodeStore):
    """One-time code store using plain string keys with an optional TTL."""

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_seconds: Optional[int] = None,
        key_prefix: str = "account:forgot:",
        lock_timeout: float = 10.0,
        lock_blocking_timeout: float = 5.0,
    ):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.lock_timeout = lock_timeout
        self.lock_blocking_timeout = lock_blocking_timeout

    def _make_key(self, username: str) -> str:
        return f"{self.key_prefix}code:{username}"

    def _make_lock_key(self, username: str) -> str:
        return f"{self.key_prefix}lock:{username}"

    async def put(self, username: str, code: str) -> None:
        async with self.locked(username):
            await self.redis.set(self._make_key(username), code, ex=self.ttl_seconds)
        logger.debug("One-time code stored", username=username, backend="redis")

    async def get(self, username: str) -> Optional[str]:
        value = await self.redis.get(self._make_key(username))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def remove(self, username: str) -> None:
        await self.redis.delete(self._make_key(username))

    @asynccontextmanager
    async def locked(self, username: str) -> AsyncIterator[None]:
        """
        Distributed per-username lock.

        Raises:
            CodeStoreBusyError: The lock stayed taken for ``lock_blocking_timeout``
        """
        lock = self.redis.lock(
            self._make_lock_key(username),
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_blocking_timeout,
        )
        if not await lock.acquire():
            logger.warning("One-time code lock unavailable", username=username)
            raise CodeStoreBusyError()
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                # Held past lock_timeout; the guarded writes are already done.
                logger.warning("One-time code lock expired before release", username=username)

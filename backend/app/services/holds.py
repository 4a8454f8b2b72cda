import logging
from datetime import date
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from backend.app.services.errors import StoreTimeoutError

logger = logging.getLogger(__name__)


def hold_key(table_id: int, reservation_date: date, time_slot: str) -> str:
    return f"hold:table:{table_id}:{reservation_date.strftime('%Y%m%d')}:{time_slot.replace(':', '')}"


class TableHold(Protocol):
    async def acquire(self, key: str) -> bool: ...

    async def release(self, key: str) -> None: ...


class RedisTableHold:
    """Short-lived SET NX hold taken on a table slot before inserting."""

    def __init__(self, client: redis.Redis, *, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_ms = ttl_seconds * 1000

    async def acquire(self, key: str) -> bool:
        try:
            acquired = await self._client.set(key, "1", nx=True, px=self._ttl_ms)
        except (RedisTimeoutError, RedisConnectionError) as exc:
            raise StoreTimeoutError(f"Redis hold unavailable: {exc}") from exc
        return bool(acquired)

    async def release(self, key: str) -> None:
        # Runs while another error is propagating; the hold expires on its TTL anyway.
        try:
            await self._client.delete(key)
        except RedisError as exc:
            logger.warning("Could not release hold %s: %s", key, exc)

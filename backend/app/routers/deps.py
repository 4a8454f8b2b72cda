from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.db.session import get_session
from backend.app.services.allocator import TableAllocator
from backend.app.services.holds import RedisTableHold, TableHold
from backend.app.services.policy import BookingPolicy
from backend.app.services.store import ReservationStore, SqlReservationStore


@lru_cache
def get_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(settings)


def get_store(session: AsyncSession = Depends(get_session)) -> ReservationStore:
    return SqlReservationStore(session, timeout_seconds=settings.STORE_TIMEOUT_SECONDS)


def get_table_hold() -> TableHold | None:
    if redis_module.redis_client is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis unavailable")
    return RedisTableHold(redis_module.redis_client, ttl_seconds=settings.HOLD_TTL_SECONDS)


def get_allocator(
    store: ReservationStore = Depends(get_store),
    hold: TableHold | None = Depends(get_table_hold),
) -> TableAllocator:
    return TableAllocator(store, hold)


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Opaque id of the caller, set by the identity provider in front of us."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Sign in to make a reservation")
    return x_user_id.strip()

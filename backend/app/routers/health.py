import asyncio

from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.db.session import get_session


router = APIRouter()

# Each relation the allocator reads or writes on every booking.
SCHEMA_CHECKS = ("dining_table", "reservation")


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """Liveness: the process is up and serving."""
    return {"ok": True}


@router.get("/readiness")
async def readiness(session: AsyncSession = Depends(get_session)) -> dict[str, object]:
    """Ensure both reservation tables and the Redis hold store answer in time."""
    if redis_module.redis_client is None:
        raise HTTPException(status_code=503, detail="Redis unavailable")

    for relation in SCHEMA_CHECKS:
        try:
            await asyncio.wait_for(
                session.execute(text(f"SELECT 1 FROM {relation} LIMIT 1")),
                timeout=settings.STORE_TIMEOUT_SECONDS,
            )
        except (asyncio.TimeoutError, SQLAlchemyError) as exc:
            raise HTTPException(status_code=503, detail=f"{relation} unavailable") from exc

    try:
        await redis_module.redis_client.ping()
    except RedisError as exc:
        raise HTTPException(status_code=503, detail="Redis unavailable") from exc

    return {"ready": True, "checked": [*SCHEMA_CHECKS, "redis"]}

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.app.core.config import settings


# Postgres cancels statements that outlive the store deadline; the store maps
# the resulting QueryCanceledError to StoreTimeoutError.
engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    connect_args={
        "server_settings": {
            "statement_timeout": str(int(settings.STORE_TIMEOUT_SECONDS * 1000)),
        },
    },
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for one request; the reservation store owns its transaction."""
    async with SessionLocal() as session:
        yield session

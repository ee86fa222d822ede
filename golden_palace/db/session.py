from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from golden_palace.core.config import Settings


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build the async engine for DATABASE_URL with the configured pool."""
    options = {"pool_pre_ping": True, "echo": settings.DB_ECHO}
    # SQLite (local runs and tests) manages its own pool
    if make_url(settings.DATABASE_URL).get_backend_name() != "sqlite":
        options.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)
    return create_async_engine(settings.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # rows stay readable after commit; the endpoint builds mail details from them
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped AsyncSession from the factory the lifespan installed."""
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield session

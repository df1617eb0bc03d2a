from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mesabot.config import get_settings


engine = create_async_engine(
    get_settings().database_url,
    echo=get_settings().debug,
    pool_size=10,
    max_overflow=5,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an AsyncSession with commit/rollback semantics."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def asyncpg_dsn(database_url: str) -> str:
    """SQLAlchemy DSN -> plain asyncpg DSN (used by the LISTEN connection)."""
    return database_url.replace("postgresql+asyncpg://", "postgresql://")

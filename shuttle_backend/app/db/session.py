"""
Database engine and session factory.

PostgreSQL (asyncpg) in deployment; any SQLAlchemy async URL works, which
is how the test suite runs on in-memory SQLite.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from shuttle_backend.app.core.config import settings


def _engine_options(url: str) -> dict:
    # SQLite's single-connection pools reject sizing arguments
    if url.startswith("sqlite"):
        return {"echo": settings.db_echo}
    return {
        "echo": settings.db_echo,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Sessions keep loaded rows usable after commit; endpoints serialize them afterwards
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        yield session

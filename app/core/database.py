from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.config import settings

# Pool sizing: one long-running sync holds a session for its whole run,
# so keep headroom above the typical request concurrency.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,  # Detects stale connections before use
    pool_recycle=300,
    pool_timeout=30,
    connect_args={
        "command_timeout": 60,  # Query timeout in seconds (prevents hung queries)
    },
)

async_session_maker = sessionmaker(  # type: ignore[call-overload]
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an async database session.

    Commits when the request handler returns, rolls back if it raises.
    Sync runs commit on their own after every repository, so the final
    commit here only flushes the job bookkeeping.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables (development only - schema migrations are managed outside the app)."""
    import app.models  # noqa: F401  (register tables on the metadata)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

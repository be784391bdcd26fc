"""Database connection and session management."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..orm.base import Base


def resolve_database_url(database_url: str) -> str:
    """Expand `~` in SQLite paths and make sure the parent directory exists."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return database_url

    database_path = Path(url.database).expanduser()
    database_path.parent.mkdir(parents=True, exist_ok=True)
    return url.set(database=str(database_path)).render_as_string(hide_password=False)


class DatabaseService:
    """Manages database connection and session lifecycle."""

    def __init__(self, database_url: str):
        self.database_url = resolve_database_url(database_url)

        connect_args = {}
        if self.database_url.startswith("sqlite"):
            # Concurrent writers wait on the SQLite lock instead of failing fast
            connect_args["timeout"] = 30

        self.engine: AsyncEngine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
            connect_args=connect_args,
        )

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def initialize(self):
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close database engine."""
        await self.engine.dispose()

"""
Authcore - Database Connection Management
Async engine and session factory
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from authcore.models.database import Base
from authcore.utils.logger import get_logger

logger = get_logger(__name__)


class Database:
    """
    Async database engine and session factory

    Nothing connects until first use. At startup create_tables() and
    health_check() are the calls that reach the database.
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_recycle: int = 3600,
    ):
        self.database_url = database_url

        engine_config: Dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            # In-memory SQLite must share one connection across sessions
            engine_config["connect_args"] = {"check_same_thread": False}
            engine_config["poolclass"] = StaticPool
        else:
            engine_config["pool_pre_ping"] = True
            engine_config["pool_recycle"] = pool_recycle

        self.engine: AsyncEngine = create_async_engine(database_url, **engine_config)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def health_check(self) -> bool:
        """Check if the database answers a trivial query"""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close all connections and dispose engine"""
        await self.engine.dispose()
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session

        Usage:
        async with database.session() as session:
            result = await session.execute(query)

        Commit is left to the caller; anything uncommitted is rolled back
        when the session closes.
        """
        async with self.session_factory() as session:
            yield session

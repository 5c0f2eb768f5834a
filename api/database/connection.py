"""
Database Connection Management

Handles async database connections, session management, and engine configuration.
Tables are created from the SQLModel metadata on startup.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel


# Get the project root directory (two levels up from api/database/)
PROJECT_ROOT = Path(__file__).parent.parent.parent


class DatabaseSettings(BaseSettings):
    """Database configuration from environment variables"""

    # Local history and validation cursors; any async SQLAlchemy URL works
    database_url: str = "sqlite+aiosqlite:///./ecocredit.db"
    database_echo: bool = False

    # Connection pool settings (ignored for SQLite)
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"), env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and (":memory:" in self.database_url or self.database_url.endswith("://"))


class DatabaseManager:
    """
    Database connection and session management

    Provides async database connections with proper lifecycle management.
    """

    def __init__(self, settings: DatabaseSettings | None = None):
        """
        Initialize database manager

        Args:
            settings: Database settings (loads from environment if not provided)
        """
        self.settings = settings or DatabaseSettings()
        self._engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None

    def get_async_engine(self) -> AsyncEngine:
        """
        Get async database engine

        Returns:
            SQLAlchemy async engine
        """
        if self._engine is None:
            if self.settings.is_memory:
                # One shared connection, otherwise every session sees an empty database
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.database_echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
            elif self.settings.is_sqlite:
                self._engine = create_async_engine(self.settings.database_url, echo=self.settings.database_echo)
            else:
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.database_echo,
                    pool_size=self.settings.pool_size,
                    max_overflow=self.settings.max_overflow,
                    pool_timeout=self.settings.pool_timeout,
                    pool_recycle=self.settings.pool_recycle,
                )
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """
        Get async session factory

        Returns:
            SQLAlchemy async session factory
        """
        if self._async_session_factory is None:
            self._async_session_factory = async_sessionmaker(
                bind=self.get_async_engine(), class_=AsyncSession, expire_on_commit=False
            )
        return self._async_session_factory

    async def create_tables(self) -> None:
        """Create missing tables for every registered SQLModel table"""
        # Register table models on the metadata
        from api.database import models  # noqa: F401

        async with self.get_async_engine().begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get async database session with automatic cleanup

        Usage:
            async with db_manager.get_session() as session:
                # Use session here
                result = await session.execute(query)

        Yields:
            AsyncSession instance
        """
        session_factory = self.get_session_factory()
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self) -> None:
        """Close database connections"""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._async_session_factory = None


# ============================================================================
# Global database manager instance
# ============================================================================

# Singleton instance for application-wide use
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """
    Get global database manager instance

    Returns:
        DatabaseManager singleton
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def set_db_manager(manager: DatabaseManager) -> None:
    """Replace the global manager (tests, alternative databases)"""
    global _db_manager
    _db_manager = manager


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI to inject database sessions

    Yields:
        AsyncSession instance
    """
    db_manager = get_db_manager()
    async with db_manager.get_session() as session:
        yield session

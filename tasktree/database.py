"""
Database layer for tasktree.

Provides SQLAlchemy ORM models, async engine/session management, and database
initialization for SQLite persistence.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncGenerator, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tasktree.config import DEFAULT_DATABASE_URL
from tasktree.logging_config import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class ProjectORM(Base):
    """
    SQLAlchemy ORM model for projects.

    Corresponds to the Project Pydantic model.
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<ProjectORM(id={self.id}, name={self.name})>"


class TaskORM(Base):
    """
    SQLAlchemy ORM model for tasks.

    Corresponds to the Task Pydantic model. ``parent_id`` is a plain indexed
    lookup key; all tree traversal goes through explicit id queries.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_siblings", "project_id", "parent_id", "sort_order"),
        Index("ix_tasks_project_depth", "project_id", "depth"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")

    # Hierarchy
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    path: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Reorder bookkeeping
    initial_order_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_order_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    move_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_moved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<TaskORM(id={self.id}, title={self.title}, depth={self.depth})>"


class DatabaseManager:
    """
    Manages database connections and session lifecycle.

    Handles async engine creation, session management, and database
    initialization for both production and testing scenarios.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False):
        """
        Initialize database manager with connection URL.

        Args:
            database_url: SQLAlchemy database URL (default: local SQLite file)
            echo: Log every SQL statement
        """
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """
        Initialize the database engine and create tables.

        Creates the async engine, session maker, and all tables defined
        in the Base metadata.
        """
        try:
            logger.info(f"Initializing database: {self.database_url}")
            self.engine = create_async_engine(
                self.database_url,
                echo=self.echo,
            )

            self.session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    async def close(self) -> None:
        """
        Close the database engine and cleanup resources.
        """
        if self.engine:
            logger.info("Closing database connection")
            try:
                await self.engine.dispose()
                self.engine = None
                self.session_maker = None
                logger.info("Database connection closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connection: {e}", exc_info=True)
                raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic transaction management.

        One session is one unit of mutation: everything done inside the
        block is committed together or rolled back together.

        Yields:
            AsyncSession for database operations

        Example:
            async with db_manager.get_session() as session:
                service = TaskService(session)
                await service.reorder_task(task_id, new_position=2, confirmed=True)
        """
        if not self.session_maker:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Database session error, rolling back: {e}", exc_info=True)
                await session.rollback()
                raise


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_database_manager(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> DatabaseManager:
    """
    Get or create the global database manager instance.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log every SQL statement

    Returns:
        DatabaseManager instance
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager(database_url, echo=echo)
    return _db_manager


async def init_database(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> DatabaseManager:
    """
    Initialize the database and return the manager instance.

    Convenience function for application startup.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log every SQL statement

    Returns:
        Initialized DatabaseManager instance
    """
    db_manager = get_database_manager(database_url, echo=echo)
    await db_manager.initialize()
    return db_manager

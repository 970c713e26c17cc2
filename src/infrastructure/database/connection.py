# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile database connection management using SQLAlchemy async.

This module provides async database connections for the profile store, which
holds students, teachers, guardians, enrollments and document metadata.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Example:
    from src.infrastructure.database.connection import (
        init_profile_database,
        get_profile_session,
    )

    # Initialize at application startup
    await init_profile_database(settings)

    # Use in request handlers
    async with get_profile_session() as session:
        result = await session.execute(select(Student))
        students = result.scalars().all()
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Module-level state for the profile database connection
_profile_engine: Optional[AsyncEngine] = None
_profile_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_profile_database(settings: "Settings") -> None:
    """Initialize the profile database connection pool.

    This should be called once at application startup to create
    the connection pool for the profile database.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _profile_engine, _profile_sessionmaker

    try:
        _profile_engine = create_async_engine(
            settings.profile_db.url,
            pool_size=settings.profile_db.pool_size,
            max_overflow=settings.profile_db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=False,
            connect_args={
                "server_settings": {
                    "statement_timeout": str(int(settings.profile_db.statement_timeout * 1000)),
                },
            },
        )

        _profile_sessionmaker = async_sessionmaker(
            bind=_profile_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize profile database connection", e) from e


async def close_profile_database() -> None:
    """Close the profile database connection pool.

    This should be called at application shutdown to properly
    close all connections in the pool.
    """
    global _profile_engine, _profile_sessionmaker

    if _profile_engine is not None:
        await _profile_engine.dispose()
        _profile_engine = None
        _profile_sessionmaker = None


def get_profile_engine() -> AsyncEngine:
    """Get the profile database async engine.

    Returns:
        The SQLAlchemy async engine for the profile database.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _profile_engine is None:
        raise DatabaseError(
            "Profile database not initialized. Call init_profile_database() first."
        )
    return _profile_engine


def get_profile_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the profile database sessionmaker.

    Returns:
        The SQLAlchemy async sessionmaker for the profile database.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _profile_sessionmaker is None:
        raise DatabaseError(
            "Profile database not initialized. Call init_profile_database() first."
        )
    return _profile_sessionmaker


@asynccontextmanager
async def get_profile_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the profile database.

    This is the primary way to interact with the profile database.
    The session is automatically committed on success and rolled back
    on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.

    Example:
        async with get_profile_session() as session:
            result = await session.execute(select(Student))
            students = result.scalars().all()
    """
    sessionmaker = get_profile_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_profile_database_connection() -> bool:
    """Check if the profile database is reachable.

    Performs a simple query to verify database connectivity.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _profile_engine is None:
        return False

    try:
        async with _profile_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


async def create_profile_schema() -> None:
    """Create all profile tables that do not exist yet.

    Intended for local development and integration tests; there is no
    migration tooling for the profile store.

    Raises:
        DatabaseError: If the database has not been initialized or
            schema creation fails.
    """
    from src.infrastructure.database.models import Base

    engine = get_profile_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create profile schema", e) from e

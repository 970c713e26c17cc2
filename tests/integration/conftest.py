# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for profile store integration tests.

Provides an engine and session against a real PostgreSQL database. The
schema is created before and dropped after every test. Tests are skipped
when TEST_DATABASE_URL is not set.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config.settings import ProvisioningSettings
from src.domains.profile.store import ProfileRecordStore
from src.infrastructure.database.models.base import Base


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test in this directory as an integration test."""
    for item in items:
        if "tests/integration" in str(item.fspath).replace(os.sep, "/"):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def profile_db_url() -> str:
    """Get profile database URL for tests."""
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL is not set")
    return url


@pytest_asyncio.fixture(scope="function")
async def profile_db_engine(profile_db_url: str):
    """Create async engine for profile database tests."""
    engine = create_async_engine(profile_db_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def profile_db_session(profile_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for profile database tests."""
    async_session = async_sessionmaker(
        profile_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(profile_db_session) -> ProfileRecordStore:
    """Provide a store bound to the test session."""
    return ProfileRecordStore(profile_db_session, ProvisioningSettings())

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the profile store.

Example:
    from src.infrastructure.database import get_profile_session

    async with get_profile_session() as session:
        result = await session.execute(select(Teacher))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_profile_database_connection,
    close_profile_database,
    create_profile_schema,
    get_profile_engine,
    get_profile_session,
    get_profile_sessionmaker,
    init_profile_database,
)

__all__ = [
    "DatabaseError",
    "check_profile_database_connection",
    "close_profile_database",
    "create_profile_schema",
    "get_profile_engine",
    "get_profile_session",
    "get_profile_sessionmaker",
    "init_profile_database",
]

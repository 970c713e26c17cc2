# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific profile kind.

Modules:
    students: Student profiles and admission applications.
    teachers: Teacher profiles.
"""

from fastapi import APIRouter

from src.api.v1 import students, teachers
from src.core.config import get_settings

# Create the main v1 router
router = APIRouter(prefix=get_settings().api.prefix)

# Include domain routers
router.include_router(students.router, prefix="/students", tags=["Students"])
router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])

__all__ = ["router"]

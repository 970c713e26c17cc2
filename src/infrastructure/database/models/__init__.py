# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the profile store."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.profile import (
    Document,
    Guardian,
    Student,
    StudentEnrollment,
    StudentGuardian,
    Teacher,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Document",
    "Guardian",
    "Student",
    "StudentEnrollment",
    "StudentGuardian",
    "Teacher",
]

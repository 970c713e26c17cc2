# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware package."""

from src.api.middleware.school import (
    SchoolContext,
    SchoolContextMiddleware,
    get_school_from_request,
)

__all__ = [
    "SchoolContext",
    "SchoolContextMiddleware",
    "get_school_from_request",
]

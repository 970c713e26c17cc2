# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile domain package.

Provisioning of student and teacher profiles:
- store: Transactional profile persistence
- saga: Identity provisioning with compensation for direct creation
- lifecycle: Admission applications (PENDING -> ACCEPTED / REJECTED)
- deletion: Bulk deletion with per-item outcomes
- service: ProfileService facade used by the HTTP adapter

Only the error taxonomy and permission types are re-exported here; the
infrastructure clients import the errors, so the orchestration modules are
imported from their own modules.
"""

from src.domains.profile.errors import (
    CompensationStatus,
    ConflictError,
    DownstreamFailure,
    DownstreamServiceError,
    NotFoundError,
    PartialFailure,
    PermissionDeniedError,
    ProfilePersistenceError,
    ProfileServiceError,
    ValidationError,
)
from src.domains.profile.permissions import Actor, Permission, require_permission

__all__ = [
    "CompensationStatus",
    "ConflictError",
    "DownstreamFailure",
    "DownstreamServiceError",
    "NotFoundError",
    "PartialFailure",
    "PermissionDeniedError",
    "ProfilePersistenceError",
    "ProfileServiceError",
    "ValidationError",
    "Actor",
    "Permission",
    "require_permission",
]

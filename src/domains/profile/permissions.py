# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability checks for profile operations.

The gateway authenticates the caller and forwards the acting user, role and
granted permissions. This module only answers "may this actor do X".
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domains.profile.errors import PermissionDeniedError


class Permission:
    """Permission names understood by the profile service."""

    STUDENT_CREATE = "student.create"
    STUDENT_UPDATE = "student.update"
    STUDENT_DELETE = "student.delete"
    STUDENT_VIEW = "student.view"
    TEACHER_CREATE = "teacher.create"
    TEACHER_UPDATE = "teacher.update"
    TEACHER_DELETE = "teacher.delete"
    TEACHER_VIEW = "teacher.view"
    ADMISSION_APPROVE = "admission.approve"
    ADMISSION_REJECT = "admission.reject"
    ADMISSION_VIEW = "admission.view"


# Roles that implicitly hold every permission.
SUPERUSER_ROLES = frozenset({"ADMIN", "SUPER_ADMIN"})


@dataclass(frozen=True)
class Actor:
    """Authenticated caller acting on behalf of a school.

    Attributes:
        user_id: Identity of the acting user.
        role: Role name as issued by the identity service.
        permissions: Explicitly granted permission names.
    """

    user_id: str
    role: str = ""
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_superuser(self) -> bool:
        return self.role.upper() in SUPERUSER_ROLES

    def has_permission(self, permission: str) -> bool:
        """Check whether the actor holds a permission."""
        return self.is_superuser or permission in self.permissions


def require_permission(actor: Actor | None, permission: str, message: str | None = None) -> Actor:
    """Ensure the actor holds a permission.

    Args:
        actor: The calling actor, or None for anonymous callers.
        permission: Required permission name.
        message: Optional error message.

    Returns:
        The actor, for chaining.

    Raises:
        PermissionDeniedError: If the actor is missing or lacks the permission.
    """
    if actor is None or not actor.has_permission(permission):
        raise PermissionDeniedError(
            message or "You do not have permission to perform this action",
            details={"required": permission},
        )
    return actor

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School context middleware.

The gateway in front of this service authenticates the caller and forwards
the resolved school and user as headers. This middleware reads them into a
SchoolContext on request.state and binds them to the logging context, so
every log line of the request carries the school and the acting user.

Headers:
    X-School-Id: School the request operates on.
    X-User-Id: Acting user (absent for public application submission).
    X-User-Role: Acting user's role.
    X-User-Permissions: Comma-separated permission names.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.domains.profile.permissions import Actor
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

SCHOOL_HEADER = "x-school-id"
USER_HEADER = "x-user-id"
ROLE_HEADER = "x-user-role"
PERMISSIONS_HEADER = "x-user-permissions"

# Paths that don't need school context
PUBLIC_PATHS = {
    "/health",
    "/health/ready",
    "/health/live",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class SchoolContext:
    """Resolved school and actor of a request.

    Attributes:
        school_id: School the request operates on.
        user_id: Acting user, if any.
        role: Acting user's role.
        permissions: Permission names granted to the acting user.
    """

    def __init__(
        self,
        school_id: str | None,
        user_id: str | None = None,
        role: str = "",
        permissions: frozenset[str] = frozenset(),
    ) -> None:
        self.school_id = school_id
        self.user_id = user_id
        self.role = role
        self.permissions = permissions

    @property
    def actor(self) -> Actor | None:
        """The acting user as seen by permission checks, if any."""
        if not self.user_id:
            return None
        return Actor(user_id=self.user_id, role=self.role, permissions=self.permissions)

    @classmethod
    def from_headers(cls, request: Request) -> "SchoolContext":
        """Build a context from the forwarded gateway headers."""
        headers = request.headers
        raw_permissions = headers.get(PERMISSIONS_HEADER, "")
        return cls(
            school_id=headers.get(SCHOOL_HEADER) or None,
            user_id=headers.get(USER_HEADER) or None,
            role=headers.get(ROLE_HEADER, "").strip(),
            permissions=frozenset(p.strip() for p in raw_permissions.split(",") if p.strip()),
        )


class SchoolContextMiddleware(BaseHTTPMiddleware):
    """Resolve the school context and bind it to the log context.

    The resolved context is stored in request.state.school.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Process the request with its school context bound.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response.
        """
        request.state.school = None

        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        context = SchoolContext.from_headers(request)
        request.state.school = context
        bind_context(school_id=context.school_id, user_id=context.user_id)
        try:
            return await call_next(request)
        finally:
            clear_context()


def get_school_from_request(request: Request) -> SchoolContext | None:
    """Get the school context resolved by the middleware.

    Args:
        request: HTTP request.

    Returns:
        SchoolContext if the middleware ran for this path, None otherwise.
    """
    return getattr(request.state, "school", None)

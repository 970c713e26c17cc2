# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get profile database sessions
- Get the shared identity client and notification dispatcher
- Get the school context and the acting user
- Get service instances

Example:
    @router.get("/students/{student_id}")
    async def get_student(
        school_id: str = Depends(require_school),
        actor: Actor | None = Depends(get_actor),
        service: ProfileService = Depends(get_profile_service),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.school import SchoolContext, get_school_from_request
from src.core.config import get_settings
from src.domains.profile.errors import ValidationError
from src.domains.profile.permissions import Actor
from src.domains.profile.service import ProfileService
from src.infrastructure.database.connection import (
    close_profile_database,
    create_profile_schema,
    get_profile_session,
    init_profile_database,
)
from src.infrastructure.identity.client import IdentityProvisioningClient
from src.infrastructure.notifications.service import NotificationDispatcher

logger = logging.getLogger(__name__)

# Downstream client singletons, shared by all requests
_identity_client: IdentityProvisioningClient | None = None
_notifier: NotificationDispatcher | None = None


async def init_resources() -> None:
    """Initialize the profile database and the downstream clients.

    In development the profile tables are created when missing.
    """
    global _identity_client, _notifier
    settings = get_settings()

    await init_profile_database(settings)
    if settings.is_development:
        await create_profile_schema()

    _identity_client = IdentityProvisioningClient(settings.identity_service)
    _notifier = NotificationDispatcher()


async def close_resources() -> None:
    """Close downstream clients and the profile database."""
    global _identity_client, _notifier

    if _notifier is not None:
        await _notifier.close()
        _notifier = None

    if _identity_client is not None:
        await _identity_client.close()
        _identity_client = None

    await close_profile_database()


async def get_profile_db() -> AsyncGenerator[AsyncSession, None]:
    """Get profile database session.

    Yields:
        AsyncSession for the profile database.
    """
    async with get_profile_session() as session:
        yield session


def get_identity_client() -> IdentityProvisioningClient:
    """Get the shared identity service client, creating it on first use."""
    global _identity_client
    if _identity_client is None:
        _identity_client = IdentityProvisioningClient(get_settings().identity_service)
    return _identity_client


def get_notifier() -> NotificationDispatcher:
    """Get the shared notification dispatcher, creating it on first use."""
    global _notifier
    if _notifier is None:
        _notifier = NotificationDispatcher()
    return _notifier


def get_profile_service(
    db: Annotated[AsyncSession, Depends(get_profile_db)],
    identity_client: Annotated[IdentityProvisioningClient, Depends(get_identity_client)],
    notifier: Annotated[NotificationDispatcher, Depends(get_notifier)],
) -> ProfileService:
    """Get a profile service bound to the request's database session."""
    return ProfileService(db=db, identity_client=identity_client, notifier=notifier)


# =========================================================================
# School Context Dependencies
# =========================================================================


def get_school_context(request: Request) -> SchoolContext:
    """Get the school context of the request.

    Falls back to reading the headers when the middleware did not run
    (e.g. in tests that mount routers without it).
    """
    context = get_school_from_request(request)
    if context is None:
        context = SchoolContext.from_headers(request)
    return context


def require_school(
    context: Annotated[SchoolContext, Depends(get_school_context)],
) -> str:
    """Require a resolved school id.

    Raises:
        ValidationError: If the request carries no school id.
    """
    if not context.school_id:
        raise ValidationError("School ID is required")
    return context.school_id


def get_actor(
    context: Annotated[SchoolContext, Depends(get_school_context)],
) -> Actor | None:
    """Get the acting user, None for anonymous requests.

    Permission checks in the service turn a missing actor into a 403.
    """
    return context.actor

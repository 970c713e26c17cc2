# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for unit tests.

Provides an in-memory identity service served through httpx.MockTransport,
so the real IdentityProvisioningClient and credentials e-mail channel can be
exercised without network access.
"""

import json
from itertools import count
from typing import Any

import httpx
import pytest
import pytest_asyncio

from src.core.config.settings import IdentityServiceSettings, NotificationSettings
from src.infrastructure.identity.client import IdentityProvisioningClient
from src.infrastructure.notifications.channels.email import CredentialsEmailChannel

IDENTITY_BASE_URL = "http://identity.test"


class FakeIdentityService:
    """In-memory stand-in for the identity service's internal endpoints.

    Attributes:
        users: Created users by id.
        requests: Every request received, in order.
        sent_emails: Bodies of the credentials e-mail requests.
        fail_create_with: Status code to answer create calls with, if set.
        fail_delete_with: Status code to answer delete calls with, if set.
        raise_on_delete: Transport error raised on delete calls, if set.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.sent_emails: list[dict[str, Any]] = []
        self.fail_create_with: int | None = None
        self.fail_delete_with: int | None = None
        self.raise_on_delete: Exception | None = None
        self.fail_email_with: int | None = None
        self._ids = count(1)

    def find_by_username(self, username: str) -> dict[str, Any] | None:
        return next((u for u in self.users.values() if u["username"] == username), None)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.headers.get("X-Internal-Request") != "true":
            return httpx.Response(403, json={"success": False, "error": {"message": "Forbidden"}})

        if request.method == "POST" and path.startswith("/api/v1/internal/create-user-for-"):
            if self.fail_create_with is not None:
                return httpx.Response(
                    self.fail_create_with,
                    json={"success": False, "error": {"message": "User already exists"}},
                )
            body = json.loads(request.content)
            user_id = f"user-{next(self._ids)}"
            self.users[user_id] = {"id": user_id, **body}
            return httpx.Response(
                201,
                json={"success": True, "data": {"user": {"id": user_id, "username": body["username"]}}},
            )

        if request.method == "DELETE" and path.startswith("/api/v1/internal/users/"):
            if self.raise_on_delete is not None:
                raise self.raise_on_delete
            if self.fail_delete_with is not None:
                return httpx.Response(
                    self.fail_delete_with,
                    json={"success": False, "error": {"message": "Delete refused"}},
                )
            user_id = path.rsplit("/", 1)[-1]
            if self.users.pop(user_id, None) is None:
                return httpx.Response(404, json={"success": False, "error": {"message": "User not found"}})
            return httpx.Response(200, json={"success": True, "data": {"deleted": True}})

        if request.method == "POST" and path.endswith("-credentials-email"):
            if self.fail_email_with is not None:
                return httpx.Response(self.fail_email_with, json={"success": False})
            self.sent_emails.append({"path": path, **json.loads(request.content)})
            return httpx.Response(200, json={"success": True})

        return httpx.Response(404, json={"success": False, "error": {"message": "Not found"}})


@pytest.fixture
def fake_identity_service() -> FakeIdentityService:
    """Provide an empty in-memory identity service."""
    return FakeIdentityService()


@pytest.fixture
def identity_settings() -> IdentityServiceSettings:
    """Provide identity settings pointing at the fake service."""
    return IdentityServiceSettings(base_url=IDENTITY_BASE_URL, timeout=2.0)


@pytest_asyncio.fixture
async def identity_client(fake_identity_service, identity_settings):
    """Provide a real identity client talking to the fake service."""
    client = IdentityProvisioningClient(
        identity_settings,
        transport=httpx.MockTransport(fake_identity_service.handler),
    )
    yield client
    await client.close()


@pytest_asyncio.fixture
async def email_channel(fake_identity_service, identity_settings):
    """Provide a real credentials e-mail channel talking to the fake service."""
    channel = CredentialsEmailChannel(
        settings=NotificationSettings(base_url=IDENTITY_BASE_URL, timeout=2.0),
        identity_settings=identity_settings,
        transport=httpx.MockTransport(fake_identity_service.handler),
    )
    yield channel
    await channel.close()

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP client for the external identity (auth) service.

The identity service owns user accounts. The profile service only asks it to
create an account for a new student or teacher and to delete that account
again, through internal endpoints guarded by an internal-request header:

- ``POST {base}/api/v1/internal/create-user-for-{student|teacher}``
- ``DELETE {base}/api/v1/internal/users/{id}``

Every call is bounded by the configured timeout and never retried here.
Failures surface as DownstreamServiceError, tagged with whether the request
failed, timed out or was answered with a rejection.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from src.core.config.settings import IdentityServiceSettings, get_settings
from src.domains.profile.errors import DownstreamFailure, DownstreamServiceError
from src.models.profile import ProfileKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityHandle:
    """Reference to an identity created in the identity service.

    Attributes:
        id: Identity id, stored on the profile as ``external_identity_id``.
        username: Username the identity was created with.
        role: Role name the identity was created with.
    """

    id: str
    username: str
    role: str


class IdentityProvisioningClient:
    """Client for the identity service's internal provisioning endpoints.

    Attributes:
        settings: Identity service settings.

    Example:
        client = IdentityProvisioningClient()
        handle = await client.create_identity(
            username="ravisharma00042",
            email="ravi@example.com",
            phone="9876543210",
            temporary_password="k3j9x0qa",
            first_name="Ravi",
            last_name="Sharma",
            school_id=school_id,
            kind=ProfileKind.STUDENT,
        )
        await client.delete_identity(handle.id)
    """

    def __init__(
        self,
        settings: IdentityServiceSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Identity service settings (defaults to global settings).
            transport: Optional httpx transport, used to plug in test doubles.
        """
        self.settings = settings or get_settings().identity_service
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        """Get the internal API root of the identity service."""
        return self.settings.internal_api_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.settings.timeout,
                headers=self.settings.internal_headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "IdentityProvisioningClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def create_identity(
        self,
        username: str,
        email: str,
        phone: str,
        temporary_password: str,
        first_name: str,
        last_name: str,
        school_id: str,
        kind: ProfileKind,
    ) -> IdentityHandle:
        """Create an identity for a student or teacher.

        Args:
            username: Generated username.
            email: Contact e-mail.
            phone: Contact phone.
            temporary_password: Generated temporary password.
            first_name: Profile first name.
            last_name: Profile last name.
            school_id: School the identity belongs to.
            kind: Profile kind, selects the endpoint and role name.

        Returns:
            Handle of the created identity.

        Raises:
            DownstreamServiceError: If the call fails, times out, or the
                service rejects the request or answers without a user id.
        """
        operation = "Create identity"
        payload = {
            "username": username,
            "email": email,
            "phone": phone,
            "password": temporary_password,
            "firstName": first_name,
            "lastName": last_name,
            "schoolId": school_id,
            "roleName": kind.identity_role,
        }

        response = await self._send(
            operation,
            "POST",
            f"/create-user-for-{kind.endpoint_suffix}",
            json=payload,
        )
        body = self._handle_response(response, operation)

        if body.get("success") is False:
            raise DownstreamServiceError(
                f"{operation} rejected: {self._error_message(body)}",
                failure=DownstreamFailure.REJECTED,
                remote_status=response.status_code,
            )

        user = (body.get("data") or {}).get("user") or {}
        identity_id = user.get("id")
        if not identity_id:
            raise DownstreamServiceError(
                f"{operation} returned no user id",
                failure=DownstreamFailure.REJECTED,
                remote_status=response.status_code,
            )

        logger.info(
            "Identity created: id=%s, username=%s, role=%s, school=%s",
            identity_id,
            username,
            kind.identity_role,
            school_id,
        )
        return IdentityHandle(id=str(identity_id), username=username, role=kind.identity_role)

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity.

        An identity that no longer exists counts as deleted.

        Args:
            identity_id: Identity to delete.

        Raises:
            DownstreamServiceError: If the call fails, times out, or the
                service refuses the deletion.
        """
        operation = "Delete identity"
        response = await self._send(operation, "DELETE", f"/users/{identity_id}")

        if response.status_code == 404:
            logger.warning("Identity already absent: id=%s", identity_id)
            return

        body = self._handle_response(response, operation)
        if body.get("success") is False:
            raise DownstreamServiceError(
                f"{operation} rejected: {self._error_message(body)}",
                failure=DownstreamFailure.REJECTED,
                remote_status=response.status_code,
            )

        logger.info("Identity deleted: id=%s", identity_id)

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request, converting transport errors to domain errors."""
        try:
            return await self._get_client().request(method, url, json=json)
        except httpx.TimeoutException as e:
            logger.error("%s timed out after %ss: %s", operation, self.settings.timeout, e)
            raise DownstreamServiceError(
                f"{operation} timed out",
                failure=DownstreamFailure.TIMEOUT,
            ) from e
        except httpx.RequestError as e:
            logger.error("Connection error to identity service: %s", e)
            raise DownstreamServiceError(
                f"Identity service not available: {e}",
                failure=DownstreamFailure.REQUEST_FAILED,
            ) from e

    def _handle_response(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        """Handle HTTP response and raise appropriate errors."""
        if response.is_success:
            if not response.content:
                return {}
            try:
                body = response.json()
            except ValueError as e:
                raise DownstreamServiceError(
                    f"{operation} returned an unreadable response",
                    failure=DownstreamFailure.REQUEST_FAILED,
                    remote_status=response.status_code,
                ) from e
            return body if isinstance(body, dict) else {}

        try:
            error_detail = self._error_message(response.json())
        except ValueError:
            error_detail = response.text or response.reason_phrase

        logger.warning(
            "%s rejected by identity service: status=%s, detail=%s",
            operation,
            response.status_code,
            error_detail,
        )
        raise DownstreamServiceError(
            f"{operation} failed: {error_detail}",
            failure=DownstreamFailure.REJECTED,
            remote_status=response.status_code,
        )

    @staticmethod
    def _error_message(body: Any) -> str:
        """Extract the error message from an identity service envelope."""
        if not isinstance(body, dict):
            return str(body)
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
        return "Unknown error"

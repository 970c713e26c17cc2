# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credentials e-mail channel relayed through the identity service.

The identity service owns the mail templates and SMTP delivery. This channel
posts the credentials to its internal endpoint:

- ``POST {base}/api/v1/internal/send-student-credentials-email``
- ``POST {base}/api/v1/internal/send-teacher-credentials-email``

with body ``{email, username, password}`` and the internal-request header.
"""

import logging

import httpx

from src.core.config.settings import (
    IdentityServiceSettings,
    NotificationSettings,
    get_settings,
)
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    CredentialsPayload,
)

logger = logging.getLogger(__name__)


class CredentialsEmailChannel(BaseChannel):
    """E-mail channel for generated login credentials.

    Sends through the relay endpoint of the identity service. Delivery
    problems are reported in the returned ChannelResult, never raised.
    """

    def __init__(
        self,
        settings: NotificationSettings | None = None,
        identity_settings: IdentityServiceSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the email channel.

        Args:
            settings: Notification settings (defaults to global settings).
            identity_settings: Provides the internal-request header.
            transport: Optional httpx transport, used to plug in test doubles.
        """
        super().__init__()
        app_settings = get_settings() if settings is None or identity_settings is None else None
        self._settings = settings or app_settings.notifications
        self._identity_settings = identity_settings or app_settings.identity_service
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self._settings.base_url.rstrip('/')}/api/v1/internal",
                timeout=self._settings.timeout,
                headers=self._identity_settings.internal_headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, payload: CredentialsPayload) -> ChannelResult:
        """Send a credentials e-mail.

        Args:
            payload: The credentials payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self._settings.enabled:
            return self.create_skipped_result("Credentials e-mails disabled")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        metadata = {"recipient": payload.recipient_email, "kind": payload.kind.value}
        try:
            response = await self._get_client().post(
                f"/send-{payload.kind.endpoint_suffix}-credentials-email",
                json={
                    "email": payload.recipient_email,
                    "username": payload.username,
                    "password": payload.password,
                },
            )
        except httpx.HTTPError as e:
            self.logger.error(
                "Failed to send credentials email to %s: %s",
                payload.recipient_email,
                str(e),
            )
            return self.create_failure_result(f"Relay error: {e!s}", metadata=metadata)

        if not response.is_success:
            self.logger.error(
                "Credentials email relay refused %s: status=%s",
                payload.recipient_email,
                response.status_code,
            )
            return self.create_failure_result(
                f"Relay returned HTTP {response.status_code}",
                metadata=metadata,
            )

        self.logger.info(
            "Credentials email sent to %s for %s",
            payload.recipient_email,
            payload.kind.value.lower(),
        )
        return self.create_success_result(metadata=metadata)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification dispatcher for provisioning events.

The dispatcher runs after a profile and its identity are committed. Its
outcome is informational only: it never raises, so a delivery problem can
never undo a successful provisioning.
"""

import logging

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    CredentialsEmailChannel,
    CredentialsPayload,
)
from src.models.profile import ProfileKind

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Best-effort delivery of generated credentials.

    Attributes:
        channels: Dictionary of available channels.
    """

    def __init__(self, email_channel: BaseChannel | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            email_channel: Channel used for credentials e-mails.
        """
        self._email = email_channel or CredentialsEmailChannel()
        self.channels: dict[ChannelType, BaseChannel] = {
            ChannelType.EMAIL: self._email,
        }

    async def send_credentials(
        self,
        kind: ProfileKind,
        email: str | None,
        username: str,
        password: str,
        profile_id: str | None = None,
    ) -> ChannelResult:
        """Send login credentials to a newly provisioned profile owner.

        Args:
            kind: Student or teacher.
            email: Recipient address.
            username: Generated username.
            password: Generated temporary password.
            profile_id: Local profile id, for logging.

        Returns:
            Result of the delivery attempt.
        """
        payload = CredentialsPayload(
            kind=kind,
            recipient_email=email or "",
            username=username,
            password=password,
            profile_id=profile_id,
        )

        try:
            result = await self._email.send(payload)
        except Exception as e:
            logger.warning(
                "Credentials notification raised for profile %s: %s",
                profile_id,
                str(e),
                exc_info=True,
            )
            return self._email.create_failure_result(str(e))

        if not result.is_sent:
            logger.warning(
                "Credentials notification not delivered for profile %s: status=%s, reason=%s",
                profile_id,
                result.status.value,
                result.error_message,
            )
        return result

    async def close(self) -> None:
        """Release channel resources."""
        for channel in self.channels.values():
            close = getattr(channel, "close", None)
            if close is not None:
                await close()

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credentials notifications.

Delivers generated usernames and temporary passwords to new students and
teachers. Delivery is best-effort and happens after provisioning succeeded.

Usage:
    from src.infrastructure.notifications import NotificationDispatcher

    dispatcher = NotificationDispatcher()
    result = await dispatcher.send_credentials(
        kind=ProfileKind.STUDENT,
        email="student@example.com",
        username="ravisharma00042",
        password="k3j9x0qa",
    )

Configuration (environment variables):
- NOTIFICATION_ENABLED: Turn credentials e-mails on or off
- NOTIFICATION_BASE_URL: Base URL of the relaying identity service
- NOTIFICATION_TIMEOUT: Request timeout in seconds
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    CredentialsEmailChannel,
    CredentialsPayload,
    DeliveryStatus,
)
from src.infrastructure.notifications.service import NotificationDispatcher

__all__ = [
    # Service
    "NotificationDispatcher",
    # Channel types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "CredentialsPayload",
    "DeliveryStatus",
    # Channels
    "CredentialsEmailChannel",
]

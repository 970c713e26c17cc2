# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering credentials.

Usage:
    from src.infrastructure.notifications.channels import (
        CredentialsEmailChannel,
        CredentialsPayload,
    )

    channel = CredentialsEmailChannel()
    result = await channel.send(
        CredentialsPayload(
            kind=ProfileKind.TEACHER,
            recipient_email="teacher@example.com",
            username="anitaverma12007",
            password="x8k2m1qz",
        )
    )
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    CredentialsPayload,
    DeliveryStatus,
)
from src.infrastructure.notifications.channels.email import CredentialsEmailChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "CredentialsPayload",
    "DeliveryStatus",
    # Channels
    "CredentialsEmailChannel",
]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for credentials notifications."""

import httpx
import pytest

from src.core.config.settings import NotificationSettings
from src.infrastructure.notifications import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    CredentialsEmailChannel,
    CredentialsPayload,
    DeliveryStatus,
    NotificationDispatcher,
)
from src.models.profile import ProfileKind


class ExplodingChannel(BaseChannel):
    """Channel whose send raises instead of reporting."""

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.EMAIL

    async def send(self, payload: CredentialsPayload) -> ChannelResult:
        raise RuntimeError("relay crashed")


def _payload(kind: ProfileKind = ProfileKind.STUDENT, email: str = "ravi@example.com") -> CredentialsPayload:
    return CredentialsPayload(
        kind=kind,
        recipient_email=email,
        username="ravisharmaadm00042",
        password="k3j9x0qa",
        profile_id="student-1",
    )


class TestCredentialsPayload:
    """Tests for the payload container."""

    def test_repr_hides_password(self) -> None:
        assert "k3j9x0qa" not in repr(_payload())


class TestCredentialsEmailChannel:
    """Tests for the relayed credentials e-mail."""

    @pytest.mark.asyncio
    async def test_sends_student_credentials(self, email_channel, fake_identity_service) -> None:
        result = await email_channel.send(_payload())

        assert result.status is DeliveryStatus.SENT
        assert result.is_sent
        assert fake_identity_service.sent_emails == [
            {
                "path": "/api/v1/internal/send-student-credentials-email",
                "email": "ravi@example.com",
                "username": "ravisharmaadm00042",
                "password": "k3j9x0qa",
            }
        ]
        assert fake_identity_service.requests[0].headers["X-Internal-Request"] == "true"

    @pytest.mark.asyncio
    async def test_teacher_endpoint(self, email_channel, fake_identity_service) -> None:
        await email_channel.send(_payload(ProfileKind.TEACHER, "kavita.rao@example.com"))

        assert fake_identity_service.sent_emails[0]["path"] == "/api/v1/internal/send-teacher-credentials-email"

    @pytest.mark.asyncio
    async def test_missing_recipient_is_skipped(self, email_channel, fake_identity_service) -> None:
        result = await email_channel.send(_payload(email=""))

        assert result.status is DeliveryStatus.SKIPPED
        assert fake_identity_service.requests == []

    @pytest.mark.asyncio
    async def test_disabled_channel_is_skipped(self, identity_settings, fake_identity_service) -> None:
        channel = CredentialsEmailChannel(
            settings=NotificationSettings(enabled=False),
            identity_settings=identity_settings,
            transport=httpx.MockTransport(fake_identity_service.handler),
        )

        result = await channel.send(_payload())

        assert result.status is DeliveryStatus.SKIPPED
        assert fake_identity_service.requests == []

    @pytest.mark.asyncio
    async def test_relay_error_status_is_failure(self, email_channel, fake_identity_service) -> None:
        fake_identity_service.fail_email_with = 503

        result = await email_channel.send(_payload())

        assert result.status is DeliveryStatus.FAILED
        assert "503" in result.error_message

    @pytest.mark.asyncio
    async def test_transport_error_is_failure(self, identity_settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        channel = CredentialsEmailChannel(
            settings=NotificationSettings(),
            identity_settings=identity_settings,
            transport=httpx.MockTransport(handler),
        )
        try:
            result = await channel.send(_payload())
        finally:
            await channel.close()

        assert result.status is DeliveryStatus.FAILED
        assert result.to_dict()["status"] == "failed"


class TestNotificationDispatcher:
    """Tests for the best-effort dispatcher."""

    @pytest.mark.asyncio
    async def test_delivers_through_email_channel(self, email_channel, fake_identity_service) -> None:
        dispatcher = NotificationDispatcher(email_channel=email_channel)

        result = await dispatcher.send_credentials(
            kind=ProfileKind.STUDENT,
            email="ravi@example.com",
            username="ravisharmaadm00042",
            password="k3j9x0qa",
            profile_id="student-1",
        )

        assert result.is_sent
        assert len(fake_identity_service.sent_emails) == 1

    @pytest.mark.asyncio
    async def test_channel_exception_is_reported_not_raised(self) -> None:
        dispatcher = NotificationDispatcher(email_channel=ExplodingChannel())

        result = await dispatcher.send_credentials(
            kind=ProfileKind.TEACHER,
            email="kavita.rao@example.com",
            username="kavitaraoemp7007",
            password="abcd1234",
        )

        assert result.status is DeliveryStatus.FAILED
        assert result.error_message == "relay crashed"

    @pytest.mark.asyncio
    async def test_close_releases_channels(self, email_channel) -> None:
        dispatcher = NotificationDispatcher(email_channel=email_channel)
        await dispatcher.send_credentials(
            kind=ProfileKind.STUDENT,
            email="ravi@example.com",
            username="u",
            password="p",
        )

        await dispatcher.close()

        assert email_channel._client is None

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for bulk profile deletion."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError

from src.domains.profile.deletion import BulkDeletionCoordinator, BulkDeletionResult, BulkOutcome
from src.domains.profile.errors import (
    DownstreamFailure,
    DownstreamServiceError,
    NotFoundError,
    PartialFailure,
    ProfilePersistenceError,
)
from src.models.profile import ProfileKind


def _profile(profile_id: str, identity_id: str | None) -> MagicMock:
    return MagicMock(id=profile_id, external_identity_id=identity_id, first_name="Test", last_name=profile_id)


@pytest.fixture
def mock_store():
    store = AsyncMock()
    store.find_profiles.return_value = [
        _profile("s1", "u1"),
        _profile("s2", "u2"),
        _profile("s3", "u3"),
    ]
    store.find_orphan_candidate_guardians.return_value = []
    return store


@pytest.fixture
def mock_identity():
    return AsyncMock()


@pytest.fixture
def coordinator(mock_store, mock_identity):
    return BulkDeletionCoordinator(mock_store, mock_identity)


class TestDeleteStudents:
    """Tests for per-item student deletion."""

    @pytest.mark.asyncio
    async def test_all_succeed(self, coordinator, mock_store, mock_identity, school_id) -> None:
        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert result.outcome is BulkOutcome.SUCCESS
        assert result.status_code == 200
        assert result.success
        assert result.deleted_profiles == ["s1", "s2", "s3"]
        assert result.deleted_identities == ["u1", "u2", "u3"]
        assert mock_store.delete_profile_transaction.await_count == 3
        mock_store.find_profiles.assert_awaited_once_with(ProfileKind.STUDENT, school_id, ["s1", "s2", "s3"])

    @pytest.mark.asyncio
    async def test_partial_success(self, coordinator, mock_store, mock_identity, school_id) -> None:
        """Test one failed local deletion among three."""

        async def delete(kind, profile_id, orphan_ids):
            if profile_id == "s2":
                raise ProfilePersistenceError("Failed to delete student")

        mock_store.delete_profile_transaction.side_effect = delete

        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert result.outcome is BulkOutcome.PARTIAL
        assert result.status_code == 207
        assert result.deleted_profiles == ["s1", "s3"]
        assert result.failed_profile_deletions == [{"profileId": "s2", "error": "Failed to delete student"}]
        # The identity of a profile that survived locally is kept.
        assert [c.args[0] for c in mock_identity.delete_identity.await_args_list] == ["u1", "u3"]
        assert result.summary() == {
            "totalRequested": 3,
            "successfulDeletions": 2,
            "failedDeletions": 1,
            "deletedIdentities": 2,
            "failedIdentityDeletions": 0,
        }

    @pytest.mark.asyncio
    async def test_all_fail(self, coordinator, mock_store, mock_identity, school_id) -> None:
        mock_store.delete_profile_transaction.side_effect = ProfilePersistenceError("Failed to delete student")

        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert result.outcome is BulkOutcome.FAILURE
        assert result.status_code == 500
        assert not result.success
        assert result.message == "No students could be deleted"
        mock_identity.delete_identity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_id_deletes_nothing(self, coordinator, mock_store, mock_identity, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("s1", "u1")]

        with pytest.raises(NotFoundError) as exc_info:
            await coordinator.delete_students(school_id, ["s1", "other-school"])

        assert exc_info.value.details == {"notFound": ["other-school"]}
        mock_store.delete_profile_transaction.assert_not_awaited()
        mock_identity.delete_identity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_identity_failure_is_reported(self, coordinator, mock_store, mock_identity, school_id) -> None:
        """Test that a profile deleted locally keeps its place in the result."""

        async def delete_identity(identity_id):
            if identity_id == "u2":
                raise DownstreamServiceError("Delete identity timed out", failure=DownstreamFailure.TIMEOUT)

        mock_identity.delete_identity.side_effect = delete_identity

        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert result.deleted_profiles == ["s1", "s2", "s3"]
        assert result.deleted_identities == ["u1", "u3"]
        assert result.failed_identity_deletions == [
            {"identityId": "u2", "profileId": "s2", "error": "Delete identity timed out"}
        ]
        assert result.status_code == 207

    @pytest.mark.asyncio
    async def test_orphan_guardians_are_passed_on(self, coordinator, mock_store, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("s1", "u1")]
        mock_store.find_orphan_candidate_guardians.return_value = ["g1"]

        await coordinator.delete_students(school_id, ["s1"])

        mock_store.find_orphan_candidate_guardians.assert_awaited_once_with("s1")
        mock_store.delete_profile_transaction.assert_awaited_once_with(ProfileKind.STUDENT, "s1", ["g1"])

    @pytest.mark.asyncio
    async def test_application_without_identity(self, coordinator, mock_store, mock_identity, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("s1", None)]

        result = await coordinator.delete_students(school_id, ["s1"])

        assert result.deleted_profiles == ["s1"]
        assert result.deleted_identities == []
        assert result.status_code == 200
        mock_identity.delete_identity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_deleted_once(self, coordinator, mock_store, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("s1", "u1")]

        result = await coordinator.delete_students(school_id, ["s1", "s1"])

        assert result.total_requested == 1
        mock_store.delete_profile_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self, coordinator, mock_store, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("s1", "u1"), _profile("s2", "u2")]
        mock_store.delete_profile_transaction.side_effect = [RuntimeError("connection reset"), None]

        result = await coordinator.delete_students(school_id, ["s1", "s2"])

        assert result.failed_profile_deletions == [{"profileId": "s1", "error": "connection reset"}]
        assert result.deleted_profiles == ["s2"]
        mock_store.db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_orphan_lookup_does_not_poison_later_items(
        self, coordinator, mock_store, mock_identity, school_id
    ) -> None:
        """Test that the session is rolled back before the next item runs."""
        rollbacks_before: dict[str, int] = {}

        async def lookup(student_id: str) -> list[str]:
            rollbacks_before[student_id] = mock_store.db.rollback.await_count
            if student_id == "s2":
                raise DBAPIError(
                    "SELECT student_guardians", {}, Exception("canceling statement due to statement timeout")
                )
            return []

        mock_store.find_orphan_candidate_guardians.side_effect = lookup

        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert rollbacks_before == {"s1": 0, "s2": 0, "s3": 1}
        assert result.deleted_profiles == ["s1", "s3"]
        assert [f["profileId"] for f in result.failed_profile_deletions] == ["s2"]
        assert result.deleted_identities == ["u1", "u3"]
        assert result.status_code == 207
        mock_store.db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_identity_error_is_recorded(
        self, coordinator, mock_store, mock_identity, school_id
    ) -> None:
        """Test that a non-downstream identity error never aborts the batch."""
        mock_identity.delete_identity.side_effect = [None, KeyError("user"), None]

        result = await coordinator.delete_students(school_id, ["s1", "s2", "s3"])

        assert result.deleted_profiles == ["s1", "s2", "s3"]
        assert result.deleted_identities == ["u1", "u3"]
        assert result.failed_identity_deletions == [
            {"identityId": "u2", "profileId": "s2", "error": "'user'"}
        ]
        assert result.status_code == 207


class TestDeleteTeachers:
    """Tests for teacher deletion."""

    @pytest.mark.asyncio
    async def test_no_guardian_lookup(self, coordinator, mock_store, mock_identity, school_id) -> None:
        mock_store.find_profiles.return_value = [_profile("t1", "u7")]

        result = await coordinator.delete_teachers(school_id, ["t1"])

        assert result.kind is ProfileKind.TEACHER
        assert result.message == "All teachers deleted successfully"
        mock_store.find_orphan_candidate_guardians.assert_not_awaited()
        mock_store.delete_profile_transaction.assert_awaited_once_with(ProfileKind.TEACHER, "t1", [])
        mock_identity.delete_identity.assert_awaited_once_with("u7")


class TestBulkDeletionResult:
    """Tests for result rendering."""

    def test_to_dict(self) -> None:
        result = BulkDeletionResult(
            kind=ProfileKind.STUDENT,
            total_requested=2,
            deleted_profiles=["s1"],
            failed_profile_deletions=[{"profileId": "s2", "error": "boom"}],
            deleted_identities=["u1"],
        )

        data = result.to_dict()

        assert data["summary"]["successfulDeletions"] == 1
        assert data["results"]["failedProfileDeletions"] == [{"profileId": "s2", "error": "boom"}]
        assert data["message"] == "Some students were deleted successfully, but there were failures"

    def test_partial_failure_error(self) -> None:
        result = BulkDeletionResult(
            kind=ProfileKind.TEACHER,
            total_requested=1,
            failed_identity_deletions=[{"identityId": "u1", "profileId": "t1", "error": "down"}],
            deleted_profiles=["t1"],
        )

        error = PartialFailure(result)

        assert error.status_code == 207
        assert error.to_dict() == {
            "message": "Some teachers were deleted successfully, but there were failures",
            "details": {
                "failedProfileDeletions": [],
                "failedIdentityDeletions": [{"identityId": "u1", "profileId": "t1", "error": "down"}],
            },
        }

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the HTTP adapter: routing, envelopes and status codes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_profile_service
from src.domains.profile.deletion import BulkDeletionResult
from src.domains.profile.errors import (
    CompensationStatus,
    NotFoundError,
    PermissionDeniedError,
    ProfilePersistenceError,
)
from src.models.profile import ApplicationStatus, ProfileKind, StudentResponse

STUDENT_ID = "550e8400-e29b-41d4-a716-446655440700"


@pytest.fixture
def mock_service():
    """Create a mock profile service."""
    return MagicMock(
        submit_application=AsyncMock(),
        create_student=AsyncMock(),
        get_student=AsyncMock(),
        delete_students=AsyncMock(),
        delete_teachers=AsyncMock(),
        accept_application=AsyncMock(),
        reject_application=AsyncMock(),
    )


@pytest.fixture
def client(mock_service):
    """Create a test client without running the lifespan (no database)."""
    app = create_app()
    app.dependency_overrides[get_profile_service] = lambda: mock_service
    return TestClient(app)


@pytest.fixture
def headers(school_id, admin_actor) -> dict[str, str]:
    return {
        "X-School-Id": school_id,
        "X-User-Id": admin_actor.user_id,
        "X-User-Role": admin_actor.role,
        "X-User-Permissions": ",".join(sorted(admin_actor.permissions)),
    }


def _student_response(school_id: str, **overrides) -> StudentResponse:
    values = {
        "id": STUDENT_ID,
        "school_id": school_id,
        "first_name": "Asha",
        "last_name": "Patil",
        "status": ApplicationStatus.PENDING,
    }
    values.update(overrides)
    return StudentResponse(**values)


class TestSchoolContext:
    """Tests for header handling."""

    def test_missing_school_header(self, client, mock_service, application_payload) -> None:
        response = client.post("/api/v1/students/applications", json=application_payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["message"] == "School ID is required"
        mock_service.submit_application.assert_not_awaited()

    def test_headers_become_actor(self, client, mock_service, headers, school_id) -> None:
        mock_service.get_student.return_value = _student_response(school_id)
        headers["X-User-Permissions"] = "student.view, student.update"

        response = client.get(f"/api/v1/students/{STUDENT_ID}", headers=headers)

        assert response.status_code == 200
        called_school, actor, called_id = mock_service.get_student.await_args.args
        assert called_school == school_id
        assert called_id == STUDENT_ID
        assert actor.role == "SCHOOL_ADMIN"
        assert actor.permissions == frozenset({"student.view", "student.update"})

    def test_anonymous_request_has_no_actor(self, client, mock_service, school_id) -> None:
        mock_service.get_student.side_effect = PermissionDeniedError(
            "You do not have permission to view students", details={"required": "student.view"}
        )

        response = client.get(f"/api/v1/students/{STUDENT_ID}", headers={"X-School-Id": school_id})

        assert response.status_code == 403
        assert mock_service.get_student.await_args.args[1] is None
        assert response.json()["error"] == {
            "message": "You do not have permission to view students",
            "details": {"required": "student.view"},
        }


class TestStudentRoutes:
    """Tests for student endpoints."""

    def test_submit_application(self, client, mock_service, application_payload, school_id) -> None:
        mock_service.submit_application.return_value = _student_response(school_id)

        response = client.post(
            "/api/v1/students/applications",
            json=application_payload,
            headers={"X-School-Id": school_id},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["firstName"] == "Asha"
        assert body["data"]["status"] == "PENDING"
        assert "timestamp" in body
        request = mock_service.submit_application.await_args.args[1]
        assert request.parent_info.guardian_relation == "AUNT"

    def test_validation_error(self, client, mock_service, application_payload, school_id) -> None:
        del application_payload["firstName"]

        response = client.post(
            "/api/v1/students/applications",
            json=application_payload,
            headers={"X-School-Id": school_id},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Validation failed"
        assert error["details"][0]["field"] == "firstName"
        mock_service.submit_application.assert_not_awaited()

    def test_not_found(self, client, mock_service, headers) -> None:
        mock_service.get_student.side_effect = NotFoundError("Student not found")

        response = client.get(f"/api/v1/students/{STUDENT_ID}", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Student not found"

    def test_rollback_details(self, client, mock_service, headers, student_payload) -> None:
        error = ProfilePersistenceError("Create student failed")
        error.mark_compensation(CompensationStatus.FAILED, "user-1")
        mock_service.create_student.side_effect = error

        response = client.post("/api/v1/students", json=student_payload, headers=headers)

        assert response.status_code == 500
        assert response.json()["error"]["details"]["rollback"] == {
            "attempted": True,
            "status": "FAILED",
            "identityId": "user-1",
        }

    def test_reject_without_body(self, client, mock_service, headers, school_id) -> None:
        mock_service.reject_application.return_value = _student_response(
            school_id, status=ApplicationStatus.REJECTED
        )

        response = client.post(f"/api/v1/students/applications/{STUDENT_ID}/reject", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "REJECTED"
        assert mock_service.reject_application.await_args.args[3].reason is None


class TestBulkDelete:
    """Tests for bulk deletion status tiers."""

    def test_partial_success(self, client, mock_service, headers) -> None:
        mock_service.delete_students.return_value = BulkDeletionResult(
            kind=ProfileKind.STUDENT,
            total_requested=2,
            deleted_profiles=["s1"],
            deleted_identities=["u1"],
            failed_profile_deletions=[{"profileId": "s2", "error": "Failed to delete student"}],
        )

        response = client.post("/api/v1/students/bulk-delete", json={"ids": ["s1", "s2"]}, headers=headers)

        assert response.status_code == 207
        body = response.json()
        assert body["success"] is True
        assert body["data"]["summary"]["successfulDeletions"] == 1
        assert body["error"]["details"]["failedProfileDeletions"][0]["profileId"] == "s2"

    def test_total_failure(self, client, mock_service, headers) -> None:
        mock_service.delete_teachers.return_value = BulkDeletionResult(
            kind=ProfileKind.TEACHER,
            total_requested=1,
            failed_profile_deletions=[{"profileId": "t1", "error": "boom"}],
        )

        response = client.post("/api/v1/teachers/bulk-delete", json={"teacherIds": ["t1"]}, headers=headers)

        assert response.status_code == 500
        assert response.json()["success"] is False
        mock_service.delete_teachers.assert_awaited_once()
        assert mock_service.delete_teachers.await_args.args[2] == ["t1"]

    def test_all_deleted(self, client, mock_service, headers) -> None:
        mock_service.delete_students.return_value = BulkDeletionResult(
            kind=ProfileKind.STUDENT,
            total_requested=1,
            deleted_profiles=["s1"],
        )

        response = client.post("/api/v1/students/bulk-delete", json={"ids": ["s1"]}, headers=headers)

        assert response.status_code == 200
        assert "error" not in response.json()

    def test_empty_id_list_is_rejected(self, client, mock_service, headers) -> None:
        response = client.post("/api/v1/students/bulk-delete", json={"ids": []}, headers=headers)

        assert response.status_code == 400
        mock_service.delete_students.assert_not_awaited()


class TestHealth:
    """Tests for liveness."""

    def test_live(self, client) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

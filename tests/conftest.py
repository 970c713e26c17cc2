# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from typing import Any

import pytest

from src.core.config.settings import clear_settings_cache
from src.domains.profile.permissions import Actor, Permission


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "PROFILE_DB_HOST": "localhost",
        "PROFILE_DB_PORT": "5432",
        "IDENTITY_SERVICE_BASE_URL": "http://identity.test",
        "IDENTITY_SERVICE_TIMEOUT": "2",
        "NOTIFICATION_BASE_URL": "http://identity.test",
    }


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires PostgreSQL)"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def school_id() -> str:
    """Provide a sample school ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def other_school_id() -> str:
    """Provide a second school ID for scoping tests."""
    return "550e8400-e29b-41d4-a716-4466554400ff"


@pytest.fixture
def admin_actor() -> Actor:
    """Provide an actor holding every profile permission."""
    return Actor(
        user_id="550e8400-e29b-41d4-a716-446655440010",
        role="SCHOOL_ADMIN",
        permissions=frozenset(
            {
                Permission.STUDENT_CREATE,
                Permission.STUDENT_UPDATE,
                Permission.STUDENT_DELETE,
                Permission.STUDENT_VIEW,
                Permission.TEACHER_CREATE,
                Permission.TEACHER_UPDATE,
                Permission.TEACHER_DELETE,
                Permission.TEACHER_VIEW,
                Permission.ADMISSION_APPROVE,
                Permission.ADMISSION_REJECT,
                Permission.ADMISSION_VIEW,
            }
        ),
    )


@pytest.fixture
def viewer_actor() -> Actor:
    """Provide an actor that may only view students."""
    return Actor(
        user_id="550e8400-e29b-41d4-a716-446655440011",
        role="TEACHER",
        permissions=frozenset({Permission.STUDENT_VIEW}),
    )


@pytest.fixture
def student_payload() -> dict[str, Any]:
    """Provide a direct student creation payload (camelCase, as on the wire)."""
    return {
        "firstName": "Ravi",
        "lastName": "Sharma",
        "admissionNumber": "ADM-0042",
        "admissionDate": "2025-04-01",
        "gender": "MALE",
        "address": {"city": "Pune", "pincode": "411001"},
        "contactInfo": {"email": "ravi@example.com", "phone": "9876543210"},
        "parentInfo": {
            "fatherName": "Raj Kumar Sharma",
            "fatherPhone": "9822000001",
            "motherName": "Sunita Sharma",
            "motherPhone": "9822000002",
        },
        "classId": "550e8400-e29b-41d4-a716-446655440101",
        "sectionId": "550e8400-e29b-41d4-a716-446655440201",
        "rollNumber": "17",
    }


@pytest.fixture
def application_payload() -> dict[str, Any]:
    """Provide a public admission application payload."""
    return {
        "firstName": "Asha",
        "lastName": "Patil",
        "dateOfBirth": "2015-06-12",
        "address": {"city": "Nashik"},
        "contactInfo": {"email": "asha.parent@example.com", "primaryPhone": "9811111111"},
        "parentInfo": {
            "guardianName": "Meera Patil",
            "guardianPhone": "9811111111",
            "guardianRelation": "AUNT",
        },
        "documents": [
            {"name": "Birth certificate", "type": "BIRTH_CERTIFICATE", "storageKey": "docs/asha/birth.pdf"},
        ],
    }


@pytest.fixture
def teacher_payload() -> dict[str, Any]:
    """Provide a teacher creation payload."""
    return {
        "employeeId": "EMP-007",
        "firstName": "Kavita",
        "lastName": "Rao",
        "email": "kavita.rao@example.com",
        "phoneNumber": "9900000007",
        "qualifications": "M.Sc. Mathematics",
        "experienceYears": 6,
        "joiningDate": "2024-06-15",
        "subjectIds": ["550e8400-e29b-41d4-a716-446655440301"],
    }

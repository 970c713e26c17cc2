# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student profile API endpoints.

This module provides endpoints for student profiles:
- POST /applications - Submit a public admission application
- GET /applications - List applications by status
- POST /applications/{application_id}/accept - Accept an application
- POST /applications/{application_id}/reject - Reject an application
- POST / - Create an admitted student directly
- GET /{student_id} - Get student details
- PUT /{student_id} - Update student, guardians and enrollment
- POST /bulk-delete - Delete several students

Every endpoint except the application submission requires an acting user
with the matching permission. Domain errors are rendered by the
application's exception handlers.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from src.api.dependencies import get_actor, get_profile_service, require_school
from src.api.responses import bulk_response, success_response
from src.domains.profile.permissions import Actor
from src.domains.profile.service import ProfileService
from src.models.profile import (
    AcceptApplicationRequest,
    ApplicationStatus,
    BulkDeleteRequest,
    RejectApplicationRequest,
    StudentApplicationRequest,
    StudentCreateRequest,
    StudentUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SchoolId = Annotated[str, Depends(require_school)]
CurrentActor = Annotated[Actor | None, Depends(get_actor)]
Service = Annotated[ProfileService, Depends(get_profile_service)]


# =========================================================================
# Admission Applications
# =========================================================================


@router.post(
    "/applications",
    status_code=status.HTTP_201_CREATED,
    summary="Submit admission application",
)
async def submit_application(
    request: StudentApplicationRequest,
    school_id: SchoolId,
    service: Service,
) -> JSONResponse:
    """Submit a public admission application.

    Creates a PENDING student without a user account.
    """
    student = await service.submit_application(school_id, request)
    return success_response(student, status.HTTP_201_CREATED)


@router.get("/applications", summary="List applications")
async def list_applications(
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
    application_status: Annotated[ApplicationStatus, Query(alias="status")] = ApplicationStatus.PENDING,
) -> JSONResponse:
    """List the school's applications in a status (PENDING by default)."""
    students = await service.list_applications(school_id, actor, status=application_status)
    return success_response(students)


@router.post("/applications/{application_id}/accept", summary="Accept application")
async def accept_application(
    application_id: str,
    request: AcceptApplicationRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    """Accept a PENDING application.

    Provisions the student's user account, assigns the admission number and
    enrolls the student.
    """
    student = await service.accept_application(school_id, actor, application_id, request)
    return success_response(student)


@router.post("/applications/{application_id}/reject", summary="Reject application")
async def reject_application(
    application_id: str,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
    request: RejectApplicationRequest | None = None,
) -> JSONResponse:
    """Reject a PENDING application."""
    student = await service.reject_application(
        school_id, actor, application_id, request or RejectApplicationRequest()
    )
    return success_response(student)


# =========================================================================
# Students
# =========================================================================


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create student")
async def create_student(
    request: StudentCreateRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    """Create an admitted student with a user account."""
    student = await service.create_student(school_id, actor, request)
    return success_response(student, status.HTTP_201_CREATED)


@router.post("/bulk-delete", summary="Delete students")
async def delete_students(
    request: BulkDeleteRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    """Delete students and their user accounts.

    Answers 200 when every deletion succeeded, 207 when some did and 500
    when none did.
    """
    result = await service.delete_students(school_id, actor, request.ids)
    return bulk_response(result)


@router.get("/{student_id}", summary="Get student")
async def get_student(
    student_id: str,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    student = await service.get_student(school_id, actor, student_id)
    return success_response(student)


@router.put("/{student_id}", summary="Update student")
async def update_student(
    student_id: str,
    request: StudentUpdateRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    """Update a student, its guardians and its current enrollment."""
    student = await service.update_student(school_id, actor, student_id, request)
    return success_response(student)

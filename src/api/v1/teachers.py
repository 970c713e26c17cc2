# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher profile API endpoints.

- POST / - Create a teacher with a user account
- GET /{teacher_id} - Get teacher details
- PUT /{teacher_id} - Update teacher
- POST /bulk-delete - Delete several teachers
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.api.dependencies import get_actor, get_profile_service, require_school
from src.api.responses import bulk_response, success_response
from src.domains.profile.permissions import Actor
from src.domains.profile.service import ProfileService
from src.models.profile import BulkDeleteRequest, TeacherCreateRequest, TeacherUpdateRequest

router = APIRouter()

SchoolId = Annotated[str, Depends(require_school)]
CurrentActor = Annotated[Actor | None, Depends(get_actor)]
Service = Annotated[ProfileService, Depends(get_profile_service)]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create teacher")
async def create_teacher(
    request: TeacherCreateRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    teacher = await service.create_teacher(school_id, actor, request)
    return success_response(teacher, status.HTTP_201_CREATED)


@router.post("/bulk-delete", summary="Delete teachers")
async def delete_teachers(
    request: BulkDeleteRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    """Delete teachers and their user accounts (200, 207 or 500)."""
    result = await service.delete_teachers(school_id, actor, request.ids)
    return bulk_response(result)


@router.get("/{teacher_id}", summary="Get teacher")
async def get_teacher(
    teacher_id: str,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    teacher = await service.get_teacher(school_id, actor, teacher_id)
    return success_response(teacher)


@router.put("/{teacher_id}", summary="Update teacher")
async def update_teacher(
    teacher_id: str,
    request: TeacherUpdateRequest,
    school_id: SchoolId,
    actor: CurrentActor,
    service: Service,
) -> JSONResponse:
    teacher = await service.update_teacher(school_id, actor, teacher_id, request)
    return success_response(teacher)

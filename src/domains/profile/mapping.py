# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conversions between request/response models and ORM rows."""

from __future__ import annotations

from typing import Any

from src.infrastructure.database.models.profile import (
    Document,
    Student,
    StudentEnrollment,
    Teacher,
)
from src.models.profile import (
    DocumentResponse,
    EnrollmentResponse,
    GuardianResponse,
    StudentApplicationRequest,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
    TeacherCreateRequest,
    TeacherResponse,
    TeacherUpdateRequest,
)
from src.utils.datetime import start_of_day

# Date-only request fields stored as timestamps.
_DATE_FIELDS = frozenset({"admission_date", "date_of_birth", "joining_date"})

_STUDENT_APPLICATION_FIELDS = (
    "first_name",
    "last_name",
    "blood_group",
    "category",
    "religion",
    "date_of_birth",
    "gender",
    "address",
)

_STUDENT_UPDATE_FIELDS = (
    "first_name",
    "last_name",
    "admission_number",
    "blood_group",
    "category",
    "religion",
    "admission_date",
    "date_of_birth",
    "gender",
    "address",
)

_TEACHER_FIELDS = (
    "employee_id",
    "first_name",
    "last_name",
    "gender",
    "blood_group",
    "marital_status",
    "date_of_birth",
    "category",
    "religion",
    "qualifications",
    "experience_years",
    "joining_date",
    "salary",
    "address",
    "subject_ids",
)


def _column_value(name: str, value: Any) -> Any:
    if name in _DATE_FIELDS and value is not None:
        return start_of_day(value)
    return value


def student_application_fields(request: StudentApplicationRequest) -> dict[str, Any]:
    """Column values for a student created from an application form."""
    fields = {name: _column_value(name, getattr(request, name)) for name in _STUDENT_APPLICATION_FIELDS}
    fields["contact_info"] = (
        request.contact_info.model_dump(by_alias=True, exclude_none=True)
        if request.contact_info
        else None
    )
    return fields


def student_create_fields(request: StudentCreateRequest) -> dict[str, Any]:
    """Column values for a directly created student."""
    fields = student_application_fields(request)
    fields["admission_number"] = request.admission_number
    fields["admission_date"] = start_of_day(request.admission_date)
    fields["profile_photo"] = request.profile_photo
    return fields


def student_update_patch(request: StudentUpdateRequest) -> dict[str, Any]:
    """Column values for the fields an update actually provides.

    Empty strings count as "not provided", as the edit forms send them for
    untouched inputs.
    """
    patch: dict[str, Any] = {}
    for name in _STUDENT_UPDATE_FIELDS:
        value = getattr(request, name)
        if value is None or value == "":
            continue
        patch[name] = _column_value(name, value)
    if request.contact_info is not None:
        patch["contact_info"] = request.contact_info.model_dump(by_alias=True, exclude_none=True)
    return patch


def teacher_create_fields(request: TeacherCreateRequest) -> dict[str, Any]:
    """Column values for a new teacher; contact details go to metadata."""
    fields = {name: _column_value(name, getattr(request, name)) for name in _TEACHER_FIELDS}
    fields["meta_data"] = {"email": request.email, "phoneNumber": request.phone_number}
    return fields


def teacher_update_patch(request: TeacherUpdateRequest) -> dict[str, Any]:
    """Column values for the fields a teacher update actually provides."""
    patch: dict[str, Any] = {}
    for name in _TEACHER_FIELDS:
        value = getattr(request, name)
        if value is None or value == "":
            continue
        patch[name] = _column_value(name, value)
    return patch


# =============================================================================
# Responses
# =============================================================================


def _document_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        name=document.name,
        type=document.type,
        storage_key=document.storage_key,
        description=document.description,
        mime_type=document.mime_type,
        file_size=document.file_size,
        is_verified=document.is_verified,
        created_at=document.created_at,
    )


def _enrollment_response(enrollment: StudentEnrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        class_id=enrollment.class_id,
        section_id=enrollment.section_id,
        academic_year=enrollment.academic_year,
        roll_number=enrollment.roll_number,
        is_current=enrollment.is_current,
        from_date=enrollment.from_date,
    )


def student_to_response(student: Student, include_relations: bool = True) -> StudentResponse:
    """Build the API representation of a student.

    Args:
        student: Student row. Relations must be eagerly loaded when
            ``include_relations`` is set.
        include_relations: Whether to include guardians, enrollments and
            documents.
    """
    response = StudentResponse(
        id=student.id,
        school_id=student.school_id,
        external_identity_id=student.external_identity_id,
        admission_number=student.admission_number,
        first_name=student.first_name,
        last_name=student.last_name,
        status=student.status,
        admission_date=student.admission_date,
        date_of_birth=student.date_of_birth,
        gender=student.gender,
        blood_group=student.blood_group,
        category=student.category,
        religion=student.religion,
        address=student.address,
        contact_info=student.contact_info,
        metadata=student.meta_data or {},
        created_at=student.created_at,
        updated_at=student.updated_at,
    )
    if include_relations:
        response.guardians = [
            GuardianResponse(
                id=link.guardian.id,
                first_name=link.guardian.first_name,
                last_name=link.guardian.last_name,
                phone=link.guardian.phone,
                email=link.guardian.email,
                relation=link.relation,
            )
            for link in student.guardian_links
        ]
        response.enrollments = [_enrollment_response(e) for e in student.enrollments]
        response.documents = [_document_response(d) for d in student.documents]
    return response


def teacher_to_response(teacher: Teacher, include_relations: bool = True) -> TeacherResponse:
    """Build the API representation of a teacher."""
    response = TeacherResponse(
        id=teacher.id,
        school_id=teacher.school_id,
        external_identity_id=teacher.external_identity_id,
        employee_id=teacher.employee_id,
        first_name=teacher.first_name,
        last_name=teacher.last_name,
        gender=teacher.gender,
        blood_group=teacher.blood_group,
        marital_status=teacher.marital_status,
        date_of_birth=teacher.date_of_birth,
        category=teacher.category,
        religion=teacher.religion,
        qualifications=teacher.qualifications,
        experience_years=teacher.experience_years,
        joining_date=teacher.joining_date,
        salary=teacher.salary,
        address=teacher.address,
        subject_ids=list(teacher.subject_ids or []),
        metadata=teacher.meta_data or {},
        created_at=teacher.created_at,
        updated_at=teacher.updated_at,
    )
    if include_relations:
        response.documents = [_document_response(d) for d in teacher.documents]
    return response

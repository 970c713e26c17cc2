# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for student and teacher profiles.

Payloads use camelCase on the wire (``admissionNumber``, ``parentInfo``) and
snake_case in Python; both spellings are accepted on input.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApplicationStatus(str, Enum):
    """Admission status of a student profile.

    PENDING is the only non-terminal state: an application is either
    accepted (an identity is provisioned at that point) or rejected.
    Directly created students start out ACCEPTED.
    """

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self is not ApplicationStatus.PENDING

    def can_transition_to(self, target: "ApplicationStatus") -> bool:
        """Check whether ``self -> target`` is a legal transition."""
        return self is ApplicationStatus.PENDING and target.is_terminal


class ProfileKind(str, Enum):
    """Profile flavours handled by the provisioning saga."""

    STUDENT = "STUDENT"
    TEACHER = "TEACHER"

    @property
    def identity_role(self) -> str:
        """Role name registered with the identity service."""
        return self.value

    @property
    def endpoint_suffix(self) -> str:
        """Suffix used by the identity service's internal endpoints."""
        return self.value.lower()


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# Nested input payloads
# =============================================================================


class ContactInfo(CamelModel):
    """Student contact details; unknown keys are kept as-is."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    email: str | None = None
    phone: str | None = None
    primary_phone: str | None = None

    @property
    def resolved_phone(self) -> str | None:
        """Phone used for identity provisioning (primary phone first)."""
        return self.primary_phone or self.phone


class GuardianInput(CamelModel):
    """Explicit guardian entry."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    phone: str | None = None
    email: str | None = None
    address: dict[str, Any] | None = None
    relation: str = Field(default="GUARDIAN", min_length=1, max_length=50)


class ParentInfo(CamelModel):
    """Structured father / mother / guardian payload used by application forms."""

    father_name: str | None = None
    father_phone: str | None = None
    mother_name: str | None = None
    mother_phone: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    guardian_relation: str | None = None


class EnrollmentInput(CamelModel):
    """Class/section placement for one academic year."""

    class_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)
    academic_year: str | None = None
    roll_number: str | None = None
    from_date: date | None = None


class DocumentInput(CamelModel):
    """Metadata of an already stored document binary."""

    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=50)
    storage_key: str = Field(default="", validation_alias=AliasChoices("storageKey", "storage_key", "url"))
    description: str | None = None
    mime_type: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    uploaded_by: str | None = None


# =============================================================================
# Student requests
# =============================================================================


class StudentApplicationRequest(CamelModel):
    """Public admission application (no identity, no enrollment)."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    blood_group: str | None = None
    category: str | None = None
    religion: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    address: dict[str, Any] | None = None
    contact_info: ContactInfo | None = None
    guardians: list[GuardianInput] = Field(default_factory=list)
    parent_info: ParentInfo | None = None
    documents: list[DocumentInput] = Field(default_factory=list)


class StudentCreateRequest(StudentApplicationRequest):
    """Direct creation of an already admitted student."""

    admission_number: str = Field(min_length=1, max_length=50)
    admission_date: date
    profile_photo: str | None = None
    class_id: str | None = None
    section_id: str | None = None
    academic_year: str | None = None
    roll_number: str | None = None

    @property
    def enrollment(self) -> EnrollmentInput | None:
        """Enrollment requested alongside the profile, if any."""
        if not self.class_id or not self.section_id:
            return None
        return EnrollmentInput(
            class_id=self.class_id,
            section_id=self.section_id,
            academic_year=self.academic_year,
            roll_number=self.roll_number,
            from_date=self.admission_date,
        )


class AcceptApplicationRequest(CamelModel):
    """Admission details supplied when accepting an application."""

    admission_number: str = Field(min_length=1, max_length=50)
    admission_date: date
    class_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)
    roll_number: str | None = None
    academic_year: str | None = None


class RejectApplicationRequest(CamelModel):
    """Reason recorded when rejecting an application."""

    reason: str | None = Field(default=None, max_length=500)


class StudentUpdateRequest(CamelModel):
    """Partial student update; only provided fields change."""

    first_name: str | None = None
    last_name: str | None = None
    admission_number: str | None = None
    blood_group: str | None = None
    category: str | None = None
    religion: str | None = None
    admission_date: date | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    address: dict[str, Any] | None = None
    contact_info: ContactInfo | None = None
    parent_info: ParentInfo | None = None
    class_id: str | None = None
    section_id: str | None = None
    academic_year: str | None = None
    roll_number: str | None = None

    @property
    def enrollment(self) -> EnrollmentInput | None:
        """Enrollment upsert, only when both class and section are given."""
        if not self.class_id or not self.section_id:
            return None
        return EnrollmentInput(
            class_id=self.class_id,
            section_id=self.section_id,
            academic_year=self.academic_year,
            roll_number=self.roll_number,
        )


# =============================================================================
# Teacher requests
# =============================================================================


class TeacherCreateRequest(CamelModel):
    """Direct teacher creation."""

    employee_id: str = Field(min_length=1, max_length=50)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    gender: str | None = None
    blood_group: str | None = None
    marital_status: str | None = None
    date_of_birth: date | None = None
    category: str | None = None
    religion: str | None = None
    qualifications: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    joining_date: date | None = None
    salary: Decimal | None = Field(default=None, ge=0)
    address: dict[str, Any] | None = None
    subject_ids: list[str] = Field(default_factory=list)
    phone_number: str = Field(min_length=1)
    email: str = Field(min_length=3)
    documents: list[DocumentInput] = Field(default_factory=list)


class TeacherUpdateRequest(CamelModel):
    """Partial teacher update."""

    employee_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    blood_group: str | None = None
    marital_status: str | None = None
    date_of_birth: date | None = None
    category: str | None = None
    religion: str | None = None
    qualifications: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    joining_date: date | None = None
    salary: Decimal | None = Field(default=None, ge=0)
    address: dict[str, Any] | None = None
    subject_ids: list[str] | None = None


class BulkDeleteRequest(CamelModel):
    """Ids of the profiles to delete."""

    ids: list[str] = Field(
        min_length=1,
        validation_alias=AliasChoices("ids", "studentIds", "teacherIds"),
    )


# =============================================================================
# Responses
# =============================================================================


class GuardianResponse(CamelModel):
    """Guardian as seen through one student link."""

    id: str
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
    relation: str


class EnrollmentResponse(CamelModel):
    """Enrollment row."""

    id: str
    class_id: str
    section_id: str
    academic_year: str
    roll_number: str | None = None
    is_current: bool
    from_date: datetime | None = None


class DocumentResponse(CamelModel):
    """Document metadata."""

    id: str
    name: str
    type: str
    storage_key: str
    description: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    is_verified: bool = False
    created_at: datetime | None = None


class StudentResponse(CamelModel):
    """Student profile with guardians, enrollments and documents."""

    id: str
    school_id: str
    external_identity_id: str | None = None
    admission_number: str | None = None
    first_name: str
    last_name: str
    status: ApplicationStatus
    admission_date: datetime | None = None
    date_of_birth: datetime | None = None
    gender: str | None = None
    blood_group: str | None = None
    category: str | None = None
    religion: str | None = None
    address: dict[str, Any] | None = None
    contact_info: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    guardians: list[GuardianResponse] = Field(default_factory=list)
    enrollments: list[EnrollmentResponse] = Field(default_factory=list)
    documents: list[DocumentResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TeacherResponse(CamelModel):
    """Teacher profile with documents."""

    id: str
    school_id: str
    external_identity_id: str
    employee_id: str
    first_name: str
    last_name: str
    gender: str | None = None
    blood_group: str | None = None
    marital_status: str | None = None
    date_of_birth: datetime | None = None
    category: str | None = None
    religion: str | None = None
    qualifications: str | None = None
    experience_years: int | None = None
    joining_date: datetime | None = None
    salary: Decimal | None = None
    address: dict[str, Any] | None = None
    subject_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    documents: list[DocumentResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile service facade.

Entry point for callers (the HTTP adapter) into profile provisioning:
permission checks, then delegation to the saga, the application lifecycle
or the bulk deletion coordinator. Also hosts the plain updates and lookups
that involve no identity interaction.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import Settings, get_settings
from src.domains.profile.deletion import BulkDeletionCoordinator, BulkDeletionResult
from src.domains.profile.errors import ConflictError, NotFoundError
from src.domains.profile.guardians import guardian_upserts_from_parent_info
from src.domains.profile.lifecycle import ApplicationLifecycle
from src.domains.profile.mapping import (
    student_to_response,
    student_update_patch,
    teacher_to_response,
    teacher_update_patch,
)
from src.domains.profile.permissions import Actor, Permission, require_permission
from src.domains.profile.saga import EnrollmentSaga
from src.domains.profile.store import ProfileRecordStore
from src.infrastructure.identity.client import IdentityProvisioningClient
from src.infrastructure.notifications.service import NotificationDispatcher
from src.models.profile import (
    AcceptApplicationRequest,
    ApplicationStatus,
    RejectApplicationRequest,
    StudentApplicationRequest,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
    TeacherCreateRequest,
    TeacherResponse,
    TeacherUpdateRequest,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for student and teacher profile operations.

    Attributes:
        store: Profile record store.
        saga: Direct-creation saga.
        lifecycle: Application lifecycle.
        deletion: Bulk deletion coordinator.
    """

    def __init__(
        self,
        db: AsyncSession,
        identity_client: IdentityProvisioningClient,
        notifier: NotificationDispatcher,
        settings: Settings | None = None,
    ) -> None:
        """Initialize profile service.

        Args:
            db: Async database session for the profile database.
            identity_client: Identity service client.
            notifier: Credentials notification dispatcher.
            settings: Application settings (defaults to global settings).
        """
        settings = settings or get_settings()
        self.store = ProfileRecordStore(db, settings.provisioning)
        self.saga = EnrollmentSaga(self.store, identity_client, notifier, settings.provisioning)
        self.lifecycle = ApplicationLifecycle(self.store, self.saga)
        self.deletion = BulkDeletionCoordinator(self.store, identity_client)

    # =========================================================================
    # Students
    # =========================================================================

    async def submit_application(
        self,
        school_id: str,
        request: StudentApplicationRequest,
    ) -> StudentResponse:
        """Submit a public admission application (no actor required)."""
        student = await self.lifecycle.submit(school_id, request)
        return student_to_response(student)

    async def create_student(
        self,
        school_id: str,
        actor: Actor | None,
        request: StudentCreateRequest,
    ) -> StudentResponse:
        """Create an admitted student with identity.

        Raises:
            PermissionDeniedError: If the actor may not create students.
        """
        require_permission(actor, Permission.STUDENT_CREATE, "You do not have permission to create students")
        student = await self.saga.create_student(school_id, request, actor_id=actor.user_id)
        return student_to_response(student)

    async def accept_application(
        self,
        school_id: str,
        actor: Actor | None,
        application_id: str,
        request: AcceptApplicationRequest,
    ) -> StudentResponse:
        """Accept a PENDING application."""
        require_permission(
            actor,
            Permission.ADMISSION_APPROVE,
            "Insufficient permissions to accept student applications",
        )
        student = await self.lifecycle.accept(school_id, application_id, request, actor_id=actor.user_id)
        return student_to_response(student)

    async def reject_application(
        self,
        school_id: str,
        actor: Actor | None,
        application_id: str,
        request: RejectApplicationRequest,
    ) -> StudentResponse:
        """Reject a PENDING application."""
        require_permission(
            actor,
            Permission.ADMISSION_REJECT,
            "Insufficient permissions to reject student applications",
        )
        student = await self.lifecycle.reject(
            school_id, application_id, request.reason, actor_id=actor.user_id
        )
        return student_to_response(student)

    async def update_student(
        self,
        school_id: str,
        actor: Actor | None,
        student_id: str,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        """Update a student, its guardians and its current enrollment.

        Raises:
            PermissionDeniedError: If the actor may not update students.
            NotFoundError: If the student is not in this school.
            ConflictError: If a changed admission number is taken.
        """
        require_permission(actor, Permission.STUDENT_UPDATE, "User does not have permission to update students")

        student = await self.store.get_student(school_id, student_id)
        if student is None:
            raise NotFoundError("Student not found")

        if (
            request.admission_number
            and request.admission_number != student.admission_number
            and await self.store.admission_number_taken(
                school_id, request.admission_number, exclude_student_id=student_id
            )
        ):
            raise ConflictError(
                "Admission number already exists in this school",
                details={"admissionNumber": request.admission_number},
            )

        updated = await self.store.update_profile_transaction(
            student,
            student_update_patch(request),
            guardian_upserts=guardian_upserts_from_parent_info(request.parent_info),
            enrollment_upsert=request.enrollment,
        )
        return student_to_response(updated)

    async def delete_students(
        self,
        school_id: str,
        actor: Actor | None,
        student_ids: list[str],
    ) -> BulkDeletionResult:
        """Delete students; item failures are part of the result."""
        require_permission(actor, Permission.STUDENT_DELETE, "User does not have permission to delete students")
        return await self.deletion.delete_students(school_id, student_ids)

    async def get_student(self, school_id: str, actor: Actor | None, student_id: str) -> StudentResponse:
        """Get a student of the caller's school."""
        require_permission(actor, Permission.STUDENT_VIEW, "You do not have permission to view students")
        student = await self.store.get_student(school_id, student_id)
        if student is None:
            raise NotFoundError("Student not found")
        return student_to_response(student)

    async def list_applications(
        self,
        school_id: str,
        actor: Actor | None,
        status: ApplicationStatus | None = ApplicationStatus.PENDING,
    ) -> list[StudentResponse]:
        """List the school's students in a given status (PENDING by default)."""
        require_permission(
            actor,
            Permission.STUDENT_VIEW,
            "You do not have permission to view student applications",
        )
        students = await self.store.list_students(school_id, status=status)
        return [student_to_response(student) for student in students]

    # =========================================================================
    # Teachers
    # =========================================================================

    async def create_teacher(
        self,
        school_id: str,
        actor: Actor | None,
        request: TeacherCreateRequest,
    ) -> TeacherResponse:
        """Create a teacher with identity."""
        require_permission(actor, Permission.TEACHER_CREATE, "You do not have permission to create teachers")
        teacher = await self.saga.create_teacher(school_id, request, actor_id=actor.user_id)
        return teacher_to_response(teacher)

    async def update_teacher(
        self,
        school_id: str,
        actor: Actor | None,
        teacher_id: str,
        request: TeacherUpdateRequest,
    ) -> TeacherResponse:
        """Update a teacher.

        Raises:
            PermissionDeniedError: If the actor may not update teachers.
            NotFoundError: If the teacher is not in this school.
            ConflictError: If a changed employee id is taken.
        """
        require_permission(actor, Permission.TEACHER_UPDATE, "User does not have permission to update teachers")

        teacher = await self.store.get_teacher(school_id, teacher_id)
        if teacher is None:
            raise NotFoundError("Teacher not found")

        if (
            request.employee_id
            and request.employee_id != teacher.employee_id
            and await self.store.employee_id_taken(
                school_id, request.employee_id, exclude_teacher_id=teacher_id
            )
        ):
            raise ConflictError(
                "Employee ID already exists in this school",
                details={"employeeId": request.employee_id},
            )

        updated = await self.store.update_profile_transaction(teacher, teacher_update_patch(request))
        return teacher_to_response(updated)

    async def delete_teachers(
        self,
        school_id: str,
        actor: Actor | None,
        teacher_ids: list[str],
    ) -> BulkDeletionResult:
        """Delete teachers; item failures are part of the result."""
        require_permission(actor, Permission.TEACHER_DELETE, "User does not have permission to delete teachers")
        return await self.deletion.delete_teachers(school_id, teacher_ids)

    async def get_teacher(self, school_id: str, actor: Actor | None, teacher_id: str) -> TeacherResponse:
        """Get a teacher of the caller's school."""
        require_permission(actor, Permission.TEACHER_VIEW, "You do not have permission to view teachers")
        teacher = await self.store.get_teacher(school_id, teacher_id)
        if teacher is None:
            raise NotFoundError("Teacher not found")
        return teacher_to_response(teacher)

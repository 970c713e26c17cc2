# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission application lifecycle.

A public application creates a PENDING student without an identity. From
there an administrator either accepts it, which provisions the identity and
enrolls the student, or rejects it. Both transitions only apply to a PENDING
application of the caller's school; anything else is reported as not found.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.domains.profile.errors import ConflictError, NotFoundError, ValidationError
from src.domains.profile.guardians import resolve_guardians
from src.domains.profile.mapping import student_application_fields
from src.models.profile import (
    AcceptApplicationRequest,
    ApplicationStatus,
    ContactInfo,
    EnrollmentInput,
    ProfileKind,
)

if TYPE_CHECKING:
    from src.domains.profile.saga import EnrollmentSaga
    from src.domains.profile.store import ProfileRecordStore
    from src.infrastructure.database.models.profile import Student
    from src.models.profile import StudentApplicationRequest

logger = logging.getLogger(__name__)


def require_transition(student: Student, target: ApplicationStatus) -> None:
    """Ensure a student may move to ``target``.

    Raises:
        NotFoundError: If the student is not a PENDING application.
    """
    current = ApplicationStatus(student.status)
    if not current.can_transition_to(target):
        raise NotFoundError("Student application not found or already processed")


class ApplicationLifecycle:
    """State machine for student admission applications.

    Attributes:
        store: Profile record store.
        saga: Saga providing identity provisioning and compensation.
    """

    def __init__(self, store: ProfileRecordStore, saga: EnrollmentSaga) -> None:
        """Initialize the lifecycle.

        Args:
            store: Profile record store.
            saga: Saga used for the identity step of acceptance.
        """
        self.store = store
        self.saga = saga

    async def submit(self, school_id: str, request: StudentApplicationRequest) -> Student:
        """Store a public admission application as PENDING.

        No identity is provisioned, no admission number is assigned and no
        enrollment is created.

        Args:
            school_id: School the application is addressed to.
            request: Application form.

        Returns:
            The PENDING student with its guardians and documents.

        Raises:
            ValidationError: If no guardian results from the form.
        """
        guardians = resolve_guardians(request.guardians, request.parent_info, request.address)

        fields = student_application_fields(request)
        fields["status"] = ApplicationStatus.PENDING
        fields["external_identity_id"] = None

        student_id = await self.store.create_profile_transaction(
            ProfileKind.STUDENT,
            school_id,
            fields,
            guardians=guardians,
            documents=request.documents,
        )
        logger.info("Application submitted: id=%s, school=%s", student_id, school_id)
        return await self.store.load_profile(ProfileKind.STUDENT, school_id, student_id)

    async def accept(
        self,
        school_id: str,
        application_id: str,
        request: AcceptApplicationRequest,
        actor_id: str | None = None,
    ) -> Student:
        """Accept a PENDING application.

        Steps: admission-number check, contact check, identity provisioning,
        one local transaction (status, identity, admission data, enrollment),
        then the best-effort credentials notification. A failing local
        transaction deletes the identity again.

        Args:
            school_id: Caller's school.
            application_id: Student application id.
            request: Admission details.
            actor_id: User accepting the application.

        Returns:
            The ACCEPTED student.

        Raises:
            NotFoundError: If no PENDING application exists in this school.
            ConflictError: If the admission number is taken.
            ValidationError: If contact email or phone is missing.
            DownstreamServiceError: If the identity could not be created.
            ProfilePersistenceError: If the local write failed (compensated).
        """
        student = await self.store.get_pending_application(school_id, application_id)
        if student is None:
            raise NotFoundError("Student application not found or already processed")
        require_transition(student, ApplicationStatus.ACCEPTED)

        if await self.store.admission_number_taken(
            school_id, request.admission_number, exclude_student_id=application_id
        ):
            raise ConflictError(
                "Admission number already exists in this school",
                details={"admissionNumber": request.admission_number},
            )

        contact = ContactInfo.model_validate(student.contact_info or {})
        if not contact.email or not contact.resolved_phone:
            raise ValidationError(
                "Student contact information (email and phone) is required to create a user account"
            )

        provisioned = await self.saga.provision_identity(
            ProfileKind.STUDENT,
            school_id,
            student.first_name,
            student.last_name,
            request.admission_number,
            contact.email,
            contact.resolved_phone,
        )

        enrollment = EnrollmentInput(
            class_id=request.class_id,
            section_id=request.section_id,
            academic_year=request.academic_year,
            roll_number=request.roll_number,
            from_date=request.admission_date,
        )
        await self.saga.commit_or_compensate(
            provisioned,
            lambda: self.store.accept_application_transaction(
                school_id,
                application_id,
                provisioned.identity_id,
                request.admission_number,
                request.admission_date,
                enrollment,
            ),
        )

        logger.info(
            "Application accepted: id=%s, school=%s, by=%s, identity_id=%s",
            application_id,
            school_id,
            actor_id,
            provisioned.identity_id,
        )
        await self.saga.notify(provisioned, application_id)
        return await self.store.load_profile(ProfileKind.STUDENT, school_id, application_id)

    async def reject(
        self,
        school_id: str,
        application_id: str,
        reason: str | None,
        actor_id: str | None = None,
    ) -> Student:
        """Reject a PENDING application.

        Raises:
            NotFoundError: If no PENDING application exists in this school.
        """
        student = await self.store.get_pending_application(school_id, application_id)
        if student is None:
            raise NotFoundError("Student application not found or already processed")
        require_transition(student, ApplicationStatus.REJECTED)

        rejected = await self.store.reject_application(student, reason, actor_id)
        logger.info("Application rejected: id=%s, school=%s, by=%s", application_id, school_id, actor_id)
        return rejected

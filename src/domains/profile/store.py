# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Relational persistence boundary for student and teacher profiles.

Every write is one transaction on the session: it either commits all of its
rows or rolls back and raises. Integrity errors are translated into the
profile error taxonomy:

- unique violations become ConflictError
- anything else the database refuses becomes ProfilePersistenceError

Lookups are always scoped to a school.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator, Sequence

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from src.core.config.settings import ProvisioningSettings, get_settings
from src.domains.profile.errors import (
    ConflictError,
    NotFoundError,
    ProfilePersistenceError,
    ProfileServiceError,
)
from src.infrastructure.database.models.profile import (
    Document,
    Guardian,
    Student,
    StudentEnrollment,
    StudentGuardian,
    Teacher,
)
from src.models.profile import (
    ApplicationStatus,
    DocumentInput,
    EnrollmentInput,
    GuardianInput,
    ProfileKind,
)
from src.utils.datetime import start_of_day, utc_now

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION = "23505"

# Constraint name fragments mapped to caller-facing conflict messages.
_CONFLICT_MESSAGES = {
    "uq_students_school_admission_number": "Admission number already exists in this school",
    "uq_teachers_school_employee_id": "Employee ID already exists in this school",
    "external_identity_id": "Identity is already linked to another profile",
    "uq_student_enrollments_current": "Student already has a current enrollment",
}

_STUDENT_DETAIL = (
    selectinload(Student.guardian_links).selectinload(StudentGuardian.guardian),
    selectinload(Student.enrollments),
    selectinload(Student.documents),
)

_TEACHER_DETAIL = (selectinload(Teacher.documents),)


class ProfileRecordStore:
    """Transactional store for profiles and their related rows.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, settings: ProvisioningSettings | None = None) -> None:
        """Initialize the store.

        Args:
            db: Async database session for the profile database.
            settings: Provisioning settings (defaults to global settings).
        """
        self._db = db
        self._settings = settings or get_settings().provisioning

    @property
    def db(self) -> AsyncSession:
        return self._db

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_student(
        self,
        school_id: str,
        student_id: str,
        status: ApplicationStatus | None = None,
        with_relations: bool = True,
    ) -> Student | None:
        """Get a student of a school.

        Args:
            school_id: Owning school.
            student_id: Student identifier.
            status: Only match a student in this status.
            with_relations: Eagerly load guardians, enrollments and documents.

        Returns:
            The student, or None when it does not exist in this school.
        """
        stmt = select(Student).where(Student.id == student_id, Student.school_id == school_id)
        if status is not None:
            stmt = stmt.where(Student.status == status)
        if with_relations:
            stmt = stmt.options(*_STUDENT_DETAIL).execution_options(populate_existing=True)
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_application(self, school_id: str, student_id: str) -> Student | None:
        """Get a PENDING application of a school."""
        return await self.get_student(
            school_id, student_id, status=ApplicationStatus.PENDING, with_relations=False
        )

    async def get_teacher(
        self,
        school_id: str,
        teacher_id: str,
        with_relations: bool = True,
    ) -> Teacher | None:
        """Get a teacher of a school."""
        stmt = select(Teacher).where(Teacher.id == teacher_id, Teacher.school_id == school_id)
        if with_relations:
            stmt = stmt.options(*_TEACHER_DETAIL).execution_options(populate_existing=True)
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_profiles(
        self,
        kind: ProfileKind,
        school_id: str,
        profile_ids: Sequence[str],
    ) -> list[Student] | list[Teacher]:
        """Get the profiles of a school among the given ids."""
        model = Student if kind is ProfileKind.STUDENT else Teacher
        stmt = select(model).where(model.id.in_(list(profile_ids)), model.school_id == school_id)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def list_students(
        self,
        school_id: str,
        status: ApplicationStatus | None = None,
    ) -> list[Student]:
        """List the students of a school, newest first."""
        stmt = (
            select(Student)
            .where(Student.school_id == school_id)
            .options(*_STUDENT_DETAIL)
            .order_by(Student.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(Student.status == status)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def admission_number_taken(
        self,
        school_id: str,
        admission_number: str,
        exclude_student_id: str | None = None,
    ) -> bool:
        """Check whether an admission number is used in a school."""
        stmt = select(Student.id).where(
            Student.school_id == school_id,
            Student.admission_number == admission_number,
        )
        if exclude_student_id is not None:
            stmt = stmt.where(Student.id != exclude_student_id)
        result = await self._db.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def employee_id_taken(
        self,
        school_id: str,
        employee_id: str,
        exclude_teacher_id: str | None = None,
    ) -> bool:
        """Check whether an employee id is used in a school."""
        stmt = select(Teacher.id).where(
            Teacher.school_id == school_id,
            Teacher.employee_id == employee_id,
        )
        if exclude_teacher_id is not None:
            stmt = stmt.where(Teacher.id != exclude_teacher_id)
        result = await self._db.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def find_orphan_candidate_guardians(self, student_id: str) -> list[str]:
        """Find guardians linked to this student and to no other student.

        Computed before the delete transaction so that the transaction works
        on a fixed deletion set.

        Args:
            student_id: Student about to be deleted.

        Returns:
            Guardian ids that become orphaned once the student is deleted.
        """
        other_link = aliased(StudentGuardian)
        stmt = select(StudentGuardian.guardian_id).where(
            StudentGuardian.student_id == student_id,
            ~exists().where(
                other_link.guardian_id == StudentGuardian.guardian_id,
                other_link.student_id != student_id,
            ),
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def load_profile(self, kind: ProfileKind, school_id: str, profile_id: str) -> Student | Teacher:
        """Load a profile with its relations, typically after a committed write.

        Raises:
            NotFoundError: If the profile does not exist in this school.
        """
        if kind is ProfileKind.STUDENT:
            profile: Student | Teacher | None = await self.get_student(school_id, profile_id)
        else:
            profile = await self.get_teacher(school_id, profile_id)
        if profile is None:
            raise NotFoundError(f"{kind.value.title()} not found")
        return profile

    # =========================================================================
    # Transactions
    # =========================================================================

    async def create_profile_transaction(
        self,
        kind: ProfileKind,
        school_id: str,
        fields: dict[str, Any],
        guardians: Sequence[GuardianInput] = (),
        enrollment: EnrollmentInput | None = None,
        documents: Sequence[DocumentInput] = (),
        uploaded_by: str | None = None,
    ) -> str:
        """Create a profile with its guardians, enrollment and documents.

        All rows are written in one transaction. Nothing is read back after
        the commit; use load_profile for the profile with its relations.

        Args:
            kind: Student or teacher.
            school_id: Owning school.
            fields: Profile column values.
            guardians: Guardians to create and link (students only).
            enrollment: Current enrollment to create (students only).
            documents: Document metadata to attach.
            uploaded_by: Actor recorded on the documents.

        Returns:
            Id of the committed profile.

        Raises:
            ConflictError: On a uniqueness violation.
            ProfilePersistenceError: If the transaction fails otherwise.
        """
        async with self._transaction(f"Create {kind.value.lower()}"):
            if kind is ProfileKind.STUDENT:
                profile: Student | Teacher = Student(school_id=school_id, **fields)
                self._db.add(profile)
                await self._db.flush()
                for guardian_input in guardians:
                    self._add_guardian_link(profile.id, school_id, guardian_input)
                if enrollment is not None:
                    self._add_enrollment(profile.id, school_id, enrollment)
            else:
                if guardians or enrollment is not None:
                    raise ProfilePersistenceError("Teachers have no guardians or enrollments")
                profile = Teacher(school_id=school_id, **fields)
                self._db.add(profile)
                await self._db.flush()

            for document in documents:
                self._add_document(kind, profile.id, school_id, document, uploaded_by)

        logger.info(
            "Created %s profile: id=%s, school=%s, guardians=%d, documents=%d",
            kind.value.lower(),
            profile.id,
            school_id,
            len(guardians),
            len(documents),
        )
        return profile.id

    async def update_profile_transaction(
        self,
        profile: Student | Teacher,
        patch: dict[str, Any],
        guardian_upserts: Sequence[GuardianInput] = (),
        enrollment_upsert: EnrollmentInput | None = None,
    ) -> Student | Teacher:
        """Apply a patch plus guardian and enrollment upserts in one transaction.

        Guardians are matched to existing links by relation, ignoring case: a
        match updates the guardian, otherwise a new guardian is linked. The
        enrollment upsert updates the current enrollment when class, section
        or roll number differ, or creates one when there is none.

        Args:
            profile: Profile loaded with its relations.
            patch: Column values to set.
            guardian_upserts: Guardians to upsert (students only).
            enrollment_upsert: Current enrollment to upsert (students only).

        Returns:
            The updated profile with its relations loaded.

        Raises:
            ConflictError: On a uniqueness violation.
            ProfilePersistenceError: If the transaction fails otherwise.
        """
        kind = ProfileKind.STUDENT if isinstance(profile, Student) else ProfileKind.TEACHER
        profile_id = profile.id
        school_id = profile.school_id

        async with self._transaction(f"Update {kind.value.lower()}"):
            for name, value in patch.items():
                setattr(profile, name, value)

            if isinstance(profile, Student):
                for guardian_input in guardian_upserts:
                    self._upsert_guardian(profile, guardian_input)
                if enrollment_upsert is not None:
                    self._upsert_enrollment(profile, enrollment_upsert)

        logger.info(
            "Updated %s profile: id=%s, fields=%s, guardian_upserts=%d, enrollment=%s",
            kind.value.lower(),
            profile_id,
            sorted(patch),
            len(guardian_upserts),
            enrollment_upsert is not None,
        )
        return await self.load_profile(kind, school_id, profile_id)

    async def accept_application_transaction(
        self,
        school_id: str,
        student_id: str,
        identity_id: str,
        admission_number: str,
        admission_date: date,
        enrollment: EnrollmentInput,
    ) -> None:
        """Mark a PENDING application accepted and enroll the student.

        The status change is conditional on the row still being PENDING, so
        two concurrent acceptances cannot both succeed. Nothing is read back
        after the commit.

        Raises:
            NotFoundError: If the application is no longer PENDING.
            ConflictError: On a uniqueness violation.
            ProfilePersistenceError: If the transaction fails otherwise.
        """
        async with self._transaction("Accept application"):
            result = await self._db.execute(
                update(Student)
                .where(
                    Student.id == student_id,
                    Student.school_id == school_id,
                    Student.status == ApplicationStatus.PENDING,
                )
                .values(
                    status=ApplicationStatus.ACCEPTED,
                    external_identity_id=identity_id,
                    admission_number=admission_number,
                    admission_date=start_of_day(admission_date),
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError("Student application not found or already processed")
            self._add_enrollment(student_id, school_id, enrollment)

        logger.info(
            "Accepted application: id=%s, school=%s, admission_number=%s",
            student_id,
            school_id,
            admission_number,
        )

    async def reject_application(
        self,
        student: Student,
        reason: str | None,
        rejected_by: str | None,
    ) -> Student:
        """Mark a PENDING application rejected.

        The rejection reason, time and actor are merged into the existing
        metadata.

        Raises:
            NotFoundError: If the application is no longer PENDING.
            ProfilePersistenceError: If the update fails.
        """
        metadata = {
            **(student.meta_data or {}),
            "rejectionReason": reason,
            "rejectedAt": utc_now().isoformat(),
            "rejectedBy": rejected_by,
        }
        student_id = student.id
        school_id = student.school_id

        async with self._transaction("Reject application"):
            result = await self._db.execute(
                update(Student)
                .where(
                    Student.id == student_id,
                    Student.school_id == school_id,
                    Student.status == ApplicationStatus.PENDING,
                )
                .values(
                    status=ApplicationStatus.REJECTED,
                    meta_data=metadata,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError("Student application not found or already processed")

        logger.info("Rejected application: id=%s, school=%s, by=%s", student_id, school_id, rejected_by)
        return await self.load_profile(ProfileKind.STUDENT, school_id, student_id)

    async def delete_profile_transaction(
        self,
        kind: ProfileKind,
        profile_id: str,
        orphan_guardian_ids: Sequence[str] = (),
    ) -> None:
        """Delete a profile and the rows that only exist for it.

        For students: enrollments, guardian links, the given orphaned
        guardians, then the student. Documents are removed by the database
        cascade.

        Args:
            kind: Student or teacher.
            profile_id: Profile to delete.
            orphan_guardian_ids: Guardians to delete along with the student.

        Raises:
            NotFoundError: If the profile vanished in the meantime.
            ProfilePersistenceError: If the transaction fails.
        """
        async with self._transaction(f"Delete {kind.value.lower()}"):
            if kind is ProfileKind.STUDENT:
                await self._db.execute(
                    delete(StudentEnrollment).where(StudentEnrollment.student_id == profile_id)
                )
                await self._db.execute(
                    delete(StudentGuardian).where(StudentGuardian.student_id == profile_id)
                )
                if orphan_guardian_ids:
                    await self._db.execute(
                        delete(Guardian).where(Guardian.id.in_(list(orphan_guardian_ids)))
                    )
                result = await self._db.execute(delete(Student).where(Student.id == profile_id))
            else:
                result = await self._db.execute(delete(Teacher).where(Teacher.id == profile_id))

            if result.rowcount != 1:
                raise NotFoundError(f"{kind.value.title()} {profile_id} no longer exists")

        logger.info(
            "Deleted %s profile: id=%s, orphaned_guardians=%d",
            kind.value.lower(),
            profile_id,
            len(orphan_guardian_ids),
        )

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[None]:
        """Commit on success, roll back and translate errors on failure."""
        try:
            yield
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            raise self._translate_integrity_error(e, operation) from e
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error("%s failed: %s", operation, str(e))
            raise ProfilePersistenceError(f"{operation} failed", details={"cause": type(e).__name__}) from e
        except Exception:
            await self._db.rollback()
            raise

    @staticmethod
    def _translate_integrity_error(error: IntegrityError, operation: str) -> ProfileServiceError:
        """Map a database integrity error onto the error taxonomy."""
        orig = error.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        text = str(orig)

        if sqlstate == UNIQUE_VIOLATION or "duplicate key" in text or "UNIQUE constraint" in text:
            for fragment, message in _CONFLICT_MESSAGES.items():
                if fragment in text:
                    break
            else:
                message = "Profile conflicts with an existing record"
            logger.warning("%s hit a unique constraint: %s", operation, message)
            return ConflictError(message)

        logger.error("%s violated an integrity constraint: %s", operation, text)
        return ProfilePersistenceError(f"{operation} failed", details={"cause": "integrity"})

    def _add_guardian_link(self, student_id: str, school_id: str, guardian_input: GuardianInput) -> None:
        guardian = Guardian(
            school_id=school_id,
            first_name=guardian_input.first_name,
            last_name=guardian_input.last_name,
            phone=guardian_input.phone,
            email=guardian_input.email,
            address=guardian_input.address,
        )
        self._db.add(guardian)
        self._db.add(
            StudentGuardian(
                student_id=student_id,
                guardian=guardian,
                relation=guardian_input.relation,
            )
        )

    def _add_enrollment(self, student_id: str, school_id: str, enrollment: EnrollmentInput) -> None:
        self._db.add(
            StudentEnrollment(
                student_id=student_id,
                school_id=school_id,
                class_id=enrollment.class_id,
                section_id=enrollment.section_id,
                academic_year=enrollment.academic_year or self._settings.current_academic_year,
                roll_number=enrollment.roll_number,
                is_current=True,
                from_date=start_of_day(enrollment.from_date),
            )
        )

    def _add_document(
        self,
        kind: ProfileKind,
        profile_id: str,
        school_id: str,
        document: DocumentInput,
        uploaded_by: str | None,
    ) -> None:
        owner = {"student_id": profile_id} if kind is ProfileKind.STUDENT else {"teacher_id": profile_id}
        self._db.add(
            Document(
                school_id=school_id,
                name=document.name,
                type=document.type,
                storage_key=document.storage_key,
                description=document.description,
                mime_type=document.mime_type,
                file_size=document.file_size,
                uploaded_by=document.uploaded_by or uploaded_by,
                is_verified=False,
                **owner,
            )
        )

    def _upsert_guardian(self, student: Student, guardian_input: GuardianInput) -> None:
        relation = guardian_input.relation.lower()
        link = next(
            (l for l in student.guardian_links if (l.relation or "").lower() == relation),
            None,
        )
        if link is None:
            self._add_guardian_link(student.id, student.school_id, guardian_input)
            return

        guardian = link.guardian
        if guardian_input.first_name:
            guardian.first_name = guardian_input.first_name
        if guardian_input.last_name:
            guardian.last_name = guardian_input.last_name
        if guardian_input.phone:
            guardian.phone = guardian_input.phone

    def _upsert_enrollment(self, student: Student, enrollment: EnrollmentInput) -> None:
        current = next((e for e in student.enrollments if e.is_current), None)
        if current is None:
            self._add_enrollment(student.id, student.school_id, enrollment)
            return

        if (
            current.class_id != enrollment.class_id
            or current.section_id != enrollment.section_id
            or current.roll_number != enrollment.roll_number
        ):
            current.class_id = enrollment.class_id
            current.section_id = enrollment.section_id
            if enrollment.roll_number:
                current.roll_number = enrollment.roll_number
            if enrollment.academic_year:
                current.academic_year = enrollment.academic_year


# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provisioning saga for profiles backed by an external identity.

The profile store and the identity service share no transaction. Creating a
profile therefore runs as an ordered list of steps with one compensation:

1. Pre-flight checks (uniqueness, guardians, contact details). Local only.
2. Create the identity in the identity service.
3. Commit the local profile transaction with the new identity id.
4. If step 3 fails, delete the identity again (best-effort, not retried).
   The step-3 error is re-raised, tagged with the compensation outcome.
5. Send the credentials notification (best-effort, never undoes 2-3).

Only the local transaction itself runs inside the compensated region. The
profile is read back after it, so a failing read can never delete the
identity of a committed profile.

The identity is created first because a directly created profile must
reference an existing identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from src.core.config.settings import ProvisioningSettings, get_settings
from src.domains.profile.errors import (
    CompensationStatus,
    ConflictError,
    DownstreamServiceError,
    ProfilePersistenceError,
    ProfileServiceError,
    ValidationError,
)
from src.domains.profile.guardians import resolve_guardians
from src.domains.profile.mapping import student_create_fields, teacher_create_fields
from src.infrastructure.identity.credentials import (
    generate_temporary_password,
    generate_username,
)
from src.models.profile import ApplicationStatus, ProfileKind

if TYPE_CHECKING:
    from src.domains.profile.store import ProfileRecordStore
    from src.infrastructure.database.models.profile import Student, Teacher
    from src.infrastructure.identity.client import IdentityHandle, IdentityProvisioningClient
    from src.infrastructure.notifications.service import NotificationDispatcher
    from src.models.profile import StudentCreateRequest, TeacherCreateRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProvisionedIdentity:
    """Identity created in step 2, with the credentials it was created with.

    Attributes:
        handle: Identity service reference.
        kind: Profile kind the identity was created for.
        username: Generated username.
        temporary_password: Generated temporary password.
        email: Contact e-mail used for the identity and the notification.
    """

    handle: IdentityHandle
    kind: ProfileKind
    username: str
    temporary_password: str
    email: str

    @property
    def identity_id(self) -> str:
        return self.handle.id

    def __repr__(self) -> str:
        return (
            f"ProvisionedIdentity(identity_id={self.handle.id!r}, kind={self.kind.value}, "
            f"username={self.username!r})"
        )


class EnrollmentSaga:
    """Orchestrates identity provisioning and the local profile write.

    Attributes:
        store: Profile record store.
        identity_client: Identity service client.
        notifier: Credentials notification dispatcher.
    """

    def __init__(
        self,
        store: ProfileRecordStore,
        identity_client: IdentityProvisioningClient,
        notifier: NotificationDispatcher,
        settings: ProvisioningSettings | None = None,
    ) -> None:
        """Initialize the saga.

        Args:
            store: Profile record store.
            identity_client: Identity service client.
            notifier: Credentials notification dispatcher.
            settings: Provisioning settings (defaults to global settings).
        """
        self.store = store
        self.identity_client = identity_client
        self.notifier = notifier
        self._settings = settings or get_settings().provisioning

    async def create_student(
        self,
        school_id: str,
        request: StudentCreateRequest,
        actor_id: str | None = None,
    ) -> Student:
        """Create an admitted student with identity, guardians and enrollment.

        Args:
            school_id: Owning school.
            request: Student creation payload.
            actor_id: User performing the creation.

        Returns:
            The created student with relations loaded.

        Raises:
            ConflictError: If the admission number is taken.
            ValidationError: If no guardian results or contact details are missing.
            DownstreamServiceError: If the identity could not be created.
            ProfilePersistenceError: If the local write failed (compensated).
        """
        # Pre-flight
        if await self.store.admission_number_taken(school_id, request.admission_number):
            raise ConflictError(
                "Admission number already exists in this school",
                details={"admissionNumber": request.admission_number},
            )
        guardians = resolve_guardians(request.guardians, request.parent_info, request.address)
        contact = request.contact_info
        email, phone = self._require_contact(
            contact.email if contact else None,
            contact.resolved_phone if contact else None,
        )

        provisioned = await self.provision_identity(
            ProfileKind.STUDENT,
            school_id,
            request.first_name,
            request.last_name,
            request.admission_number,
            email,
            phone,
        )

        fields = student_create_fields(request)
        fields["status"] = ApplicationStatus.ACCEPTED
        fields["external_identity_id"] = provisioned.identity_id

        student_id = await self.commit_or_compensate(
            provisioned,
            lambda: self.store.create_profile_transaction(
                ProfileKind.STUDENT,
                school_id,
                fields,
                guardians=guardians,
                enrollment=request.enrollment,
                documents=request.documents,
                uploaded_by=actor_id,
            ),
        )

        await self.notify(provisioned, student_id)
        return await self.store.load_profile(ProfileKind.STUDENT, school_id, student_id)

    async def create_teacher(
        self,
        school_id: str,
        request: TeacherCreateRequest,
        actor_id: str | None = None,
    ) -> Teacher:
        """Create a teacher with identity and documents.

        Raises:
            ConflictError: If the employee id is taken.
            DownstreamServiceError: If the identity could not be created.
            ProfilePersistenceError: If the local write failed (compensated).
        """
        if await self.store.employee_id_taken(school_id, request.employee_id):
            raise ConflictError(
                "Employee ID already exists in this school",
                details={"employeeId": request.employee_id},
            )
        email, phone = self._require_contact(request.email, request.phone_number)

        provisioned = await self.provision_identity(
            ProfileKind.TEACHER,
            school_id,
            request.first_name,
            request.last_name,
            request.employee_id,
            email,
            phone,
        )

        fields = teacher_create_fields(request)
        fields["external_identity_id"] = provisioned.identity_id

        teacher_id = await self.commit_or_compensate(
            provisioned,
            lambda: self.store.create_profile_transaction(
                ProfileKind.TEACHER,
                school_id,
                fields,
                documents=request.documents,
                uploaded_by=actor_id,
            ),
        )

        await self.notify(provisioned, teacher_id)
        return await self.store.load_profile(ProfileKind.TEACHER, school_id, teacher_id)

    async def provision_identity(
        self,
        kind: ProfileKind,
        school_id: str,
        first_name: str,
        last_name: str,
        discriminator: str,
        email: str,
        phone: str,
    ) -> ProvisionedIdentity:
        """Generate credentials and create the identity.

        Nothing local has happened yet when this fails, so its
        DownstreamServiceError propagates without compensation.
        """
        username = generate_username(
            first_name,
            last_name,
            discriminator,
            base_length=self._settings.username_base_length,
            suffix_modulus=self._settings.username_suffix_modulus,
        )
        temporary_password = generate_temporary_password(self._settings.temporary_password_length)

        try:
            handle = await self.identity_client.create_identity(
                username=username,
                email=email,
                phone=phone,
                temporary_password=temporary_password,
                first_name=first_name,
                last_name=last_name,
                school_id=school_id,
                kind=kind,
            )
        except DownstreamServiceError as e:
            logger.warning(
                "Identity provisioning failed: kind=%s, school=%s, failure=%s, error=%s",
                kind.value,
                school_id,
                e.failure.value,
                e.message,
            )
            raise

        logger.info(
            "Identity provisioned: kind=%s, school=%s, identity_id=%s, username=%s",
            kind.value,
            school_id,
            handle.id,
            username,
        )
        return ProvisionedIdentity(
            handle=handle,
            kind=kind,
            username=username,
            temporary_password=temporary_password,
            email=email,
        )

    async def commit_or_compensate(
        self,
        provisioned: ProvisionedIdentity,
        commit: Callable[[], Awaitable[T]],
    ) -> T:
        """Run the local transaction, deleting the identity if it fails.

        Args:
            provisioned: Identity created in the previous step.
            commit: Coroutine factory running the local transaction.

        Returns:
            Whatever the local transaction returns.

        Raises:
            ProfileServiceError: The local failure, tagged with the
                compensation outcome.
        """
        try:
            return await commit()
        except ProfileServiceError as e:
            logger.error(
                "Local commit failed after identity provisioning: identity_id=%s, error=%s",
                provisioned.identity_id,
                e.message,
            )
            await self._compensate(provisioned, e)
            raise
        except Exception as e:
            logger.error(
                "Local commit failed after identity provisioning: identity_id=%s, error=%s",
                provisioned.identity_id,
                str(e),
                exc_info=True,
            )
            error = ProfilePersistenceError("Failed to save profile")
            await self._compensate(provisioned, error)
            raise error from e

    async def notify(self, provisioned: ProvisionedIdentity, profile_id: str) -> None:
        """Send the credentials notification; failures are only logged."""
        await self.notifier.send_credentials(
            kind=provisioned.kind,
            email=provisioned.email,
            username=provisioned.username,
            password=provisioned.temporary_password,
            profile_id=profile_id,
        )

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _compensate(self, provisioned: ProvisionedIdentity, error: ProfileServiceError) -> None:
        """Delete the provisioned identity and record the outcome on the error."""
        identity_id = provisioned.identity_id
        try:
            await self.identity_client.delete_identity(identity_id)
        except DownstreamServiceError as e:
            error.mark_compensation(CompensationStatus.FAILED, identity_id)
            logger.error(
                "Compensation failed, identity left orphaned: identity_id=%s, username=%s, error=%s",
                identity_id,
                provisioned.username,
                e.message,
            )
            return
        except Exception as e:
            error.mark_compensation(CompensationStatus.FAILED, identity_id)
            logger.error(
                "Compensation failed unexpectedly, identity left orphaned: identity_id=%s, username=%s, error=%s",
                identity_id,
                provisioned.username,
                str(e) or type(e).__name__,
                exc_info=True,
            )
            return

        error.mark_compensation(CompensationStatus.SUCCEEDED, identity_id)
        logger.info("Compensation succeeded, identity deleted: identity_id=%s", identity_id)

    @staticmethod
    def _require_contact(email: str | None, phone: str | None) -> tuple[str, str]:
        """Ensure contact details needed by the identity service are present."""
        missing = [name for name, value in (("email", email), ("phone", phone)) if not value]
        if missing:
            raise ValidationError(
                "Contact email and phone are required to create a user account",
                details={"missing": missing},
            )
        return email, phone  # type: ignore[return-value]

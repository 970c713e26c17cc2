# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk deletion of student and teacher profiles.

Each profile is deleted in its own transaction, followed by a request to
delete its identity. Profile and identity outcomes are recorded separately:
a profile deleted locally whose identity deletion failed leaves an orphaned
identity, which is reported for manual reconciliation instead of hidden.
One profile's failure never stops or rolls back another's deletion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

from src.domains.profile.errors import (
    DownstreamServiceError,
    NotFoundError,
    ProfileServiceError,
)
from src.models.profile import ProfileKind

if TYPE_CHECKING:
    from src.domains.profile.store import ProfileRecordStore
    from src.infrastructure.identity.client import IdentityProvisioningClient

logger = logging.getLogger(__name__)


class BulkOutcome(str, Enum):
    """Aggregate outcome of a bulk deletion."""

    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class _DeletionTarget:
    """Plain snapshot of a profile, taken before any transaction runs."""

    id: str
    identity_id: str | None
    display_name: str


@dataclass
class BulkDeletionResult:
    """Per-item outcomes of a bulk deletion.

    Attributes:
        kind: Student or teacher.
        total_requested: Number of distinct ids requested.
        deleted_profiles: Ids of profiles deleted locally.
        failed_profile_deletions: ``{profileId, error}`` per failed profile.
        deleted_identities: Identity ids deleted remotely.
        failed_identity_deletions: ``{identityId, profileId, error}`` per
            identity that could not be deleted.
    """

    kind: ProfileKind
    total_requested: int
    deleted_profiles: list[str] = field(default_factory=list)
    failed_profile_deletions: list[dict[str, str]] = field(default_factory=list)
    deleted_identities: list[str] = field(default_factory=list)
    failed_identity_deletions: list[dict[str, str]] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_profile_deletions or self.failed_identity_deletions)

    @property
    def success(self) -> bool:
        """At least one profile was deleted."""
        return len(self.deleted_profiles) > 0

    @property
    def outcome(self) -> BulkOutcome:
        if not self.has_failures:
            return BulkOutcome.SUCCESS
        return BulkOutcome.PARTIAL if self.success else BulkOutcome.FAILURE

    @property
    def status_code(self) -> int:
        """HTTP-style status tier: 200, 207 or 500."""
        return {
            BulkOutcome.SUCCESS: 200,
            BulkOutcome.PARTIAL: 207,
            BulkOutcome.FAILURE: 500,
        }[self.outcome]

    @property
    def message(self) -> str:
        noun = f"{self.kind.value.lower()}s"
        if self.outcome is BulkOutcome.SUCCESS:
            return f"All {noun} deleted successfully"
        if self.outcome is BulkOutcome.PARTIAL:
            return f"Some {noun} were deleted successfully, but there were failures"
        return f"No {noun} could be deleted"

    def summary(self) -> dict[str, int]:
        """Counts per outcome."""
        return {
            "totalRequested": self.total_requested,
            "successfulDeletions": len(self.deleted_profiles),
            "failedDeletions": len(self.failed_profile_deletions),
            "deletedIdentities": len(self.deleted_identities),
            "failedIdentityDeletions": len(self.failed_identity_deletions),
        }

    def failure_details(self) -> dict[str, Any]:
        """Failures only, for the error part of a response envelope."""
        return {
            "failedProfileDeletions": list(self.failed_profile_deletions),
            "failedIdentityDeletions": list(self.failed_identity_deletions),
        }

    def to_dict(self) -> dict[str, Any]:
        """Payload for the data part of a response envelope."""
        return {
            "summary": self.summary(),
            "results": {
                "deletedProfiles": list(self.deleted_profiles),
                "failedProfileDeletions": list(self.failed_profile_deletions),
                "deletedIdentities": list(self.deleted_identities),
                "failedIdentityDeletions": list(self.failed_identity_deletions),
            },
            "message": self.message,
        }


class BulkDeletionCoordinator:
    """Deletes many profiles, each independently.

    Attributes:
        store: Profile record store.
        identity_client: Identity service client.
    """

    def __init__(
        self,
        store: ProfileRecordStore,
        identity_client: IdentityProvisioningClient,
    ) -> None:
        self.store = store
        self.identity_client = identity_client

    async def delete_students(self, school_id: str, student_ids: Sequence[str]) -> BulkDeletionResult:
        """Delete students of a school, with their orphaned guardians."""
        return await self.delete_many(ProfileKind.STUDENT, school_id, student_ids)

    async def delete_teachers(self, school_id: str, teacher_ids: Sequence[str]) -> BulkDeletionResult:
        """Delete teachers of a school."""
        return await self.delete_many(ProfileKind.TEACHER, school_id, teacher_ids)

    async def delete_many(
        self,
        kind: ProfileKind,
        school_id: str,
        profile_ids: Sequence[str],
    ) -> BulkDeletionResult:
        """Delete profiles one by one and aggregate the outcomes.

        Args:
            kind: Student or teacher.
            school_id: Caller's school; every id must belong to it.
            profile_ids: Profiles to delete. Duplicates are ignored.

        Returns:
            Per-item outcomes. Item failures are recorded, never raised.

        Raises:
            NotFoundError: If any id does not resolve within the school.
                Nothing is deleted in that case.
        """
        requested = list(dict.fromkeys(profile_ids))
        targets = await self._resolve_targets(kind, school_id, requested)
        result = BulkDeletionResult(kind=kind, total_requested=len(requested))

        logger.info(
            "Bulk deletion started: kind=%s, school=%s, requested=%d",
            kind.value,
            school_id,
            len(requested),
        )

        for target in targets:
            if not await self._delete_profile(kind, target, result):
                continue
            await self._delete_identity(target, result)

        log = logger.info if result.outcome is BulkOutcome.SUCCESS else logger.warning
        log(
            "Bulk deletion finished: kind=%s, school=%s, outcome=%s, summary=%s",
            kind.value,
            school_id,
            result.outcome.value,
            result.summary(),
        )
        return result

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _resolve_targets(
        self,
        kind: ProfileKind,
        school_id: str,
        requested: list[str],
    ) -> list[_DeletionTarget]:
        """Resolve every requested id or fail the whole call."""
        profiles = await self.store.find_profiles(kind, school_id, requested)
        by_id = {
            profile.id: _DeletionTarget(
                id=profile.id,
                identity_id=profile.external_identity_id,
                display_name=f"{profile.first_name} {profile.last_name}".strip(),
            )
            for profile in profiles
        }

        missing = [profile_id for profile_id in requested if profile_id not in by_id]
        if missing:
            noun = "Students" if kind is ProfileKind.STUDENT else "Teachers"
            raise NotFoundError(
                f"{noun} not found or don't belong to this school: {', '.join(missing)}",
                details={"notFound": missing},
            )
        return [by_id[profile_id] for profile_id in requested]

    async def _delete_profile(
        self,
        kind: ProfileKind,
        target: _DeletionTarget,
        result: BulkDeletionResult,
    ) -> bool:
        """Delete one profile locally and record the outcome."""
        try:
            orphan_ids: list[str] = []
            if kind is ProfileKind.STUDENT:
                orphan_ids = await self.store.find_orphan_candidate_guardians(target.id)
            await self.store.delete_profile_transaction(kind, target.id, orphan_ids)
        except ProfileServiceError as e:
            await self._rollback(target)
            self._record_profile_failure(target, e.message, result)
            return False
        except Exception as e:
            logger.error("Unexpected error deleting profile %s", target.id, exc_info=True)
            await self._rollback(target)
            self._record_profile_failure(target, str(e) or type(e).__name__, result)
            return False

        result.deleted_profiles.append(target.id)
        return True

    async def _delete_identity(self, target: _DeletionTarget, result: BulkDeletionResult) -> None:
        """Delete the identity of a locally deleted profile and record the outcome."""
        if target.identity_id is None:
            return

        try:
            await self.identity_client.delete_identity(target.identity_id)
        except DownstreamServiceError as e:
            logger.error(
                "Identity deletion failed, identity left orphaned: identity_id=%s, profile=%s, error=%s",
                target.identity_id,
                target.id,
                e.message,
            )
            result.failed_identity_deletions.append(
                {"identityId": target.identity_id, "profileId": target.id, "error": e.message}
            )
            return
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(
                "Unexpected error deleting identity, identity left orphaned: identity_id=%s, profile=%s",
                target.identity_id,
                target.id,
                exc_info=True,
            )
            result.failed_identity_deletions.append(
                {"identityId": target.identity_id, "profileId": target.id, "error": error}
            )
            return

        result.deleted_identities.append(target.identity_id)

    async def _rollback(self, target: _DeletionTarget) -> None:
        """Discard the failed item's work so the next item starts a clean transaction.

        A failed statement outside the store's own transaction (the orphan
        lookup) leaves a PostgreSQL transaction aborted until rolled back.
        """
        try:
            await self.store.db.rollback()
        except Exception:
            logger.error("Rollback after failed deletion of profile %s failed", target.id, exc_info=True)

    @staticmethod
    def _record_profile_failure(target: _DeletionTarget, error: str, result: BulkDeletionResult) -> None:
        logger.warning("Failed to delete profile %s (%s): %s", target.id, target.display_name, error)
        result.failed_profile_deletions.append({"profileId": target.id, "error": error})

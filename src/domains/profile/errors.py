# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy for profile provisioning.

Every error carries the HTTP-style status it maps to, so callers can render
the response envelope without inspecting the error type. Errors raised after
an identity was provisioned also carry the outcome of the compensating
identity deletion.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.domains.profile.deletion import BulkDeletionResult


class CompensationStatus(str, Enum):
    """Outcome of the compensating identity deletion."""

    NOT_ATTEMPTED = "NOT_ATTEMPTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class DownstreamFailure(str, Enum):
    """How a call to a downstream service failed."""

    REQUEST_FAILED = "REQUEST_FAILED"
    TIMEOUT = "TIMEOUT"
    REJECTED = "REJECTED"


class ProfileServiceError(Exception):
    """Base exception for profile service errors.

    Attributes:
        message: Human-readable error description.
        details: Optional structured details for the caller.
        compensation: Outcome of the compensating identity deletion.
        compensated_identity_id: Identity the compensation targeted.
    """

    status_code: int = 500

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.compensation = CompensationStatus.NOT_ATTEMPTED
        self.compensated_identity_id: str | None = None

    def mark_compensation(self, status: CompensationStatus, identity_id: str) -> None:
        """Attach the outcome of a compensation attempt to this error."""
        self.compensation = status
        self.compensated_identity_id = identity_id

    @property
    def compensation_failed(self) -> bool:
        """Whether an identity may have been left orphaned."""
        return self.compensation is CompensationStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Render the error part of the response envelope."""
        body: dict[str, Any] = {"message": self.message}
        details: Any = self.details
        if self.compensation is not CompensationStatus.NOT_ATTEMPTED:
            details = dict(details) if isinstance(details, dict) else (
                {"cause": details} if details is not None else {}
            )
            details["rollback"] = {
                "attempted": True,
                "status": self.compensation.value,
                "identityId": self.compensated_identity_id,
            }
        if details is not None:
            body["details"] = details
        return body


class ValidationError(ProfileServiceError):
    """Raised when input is malformed or incomplete."""

    status_code = 400


class PermissionDeniedError(ProfileServiceError):
    """Raised when the caller lacks a required capability."""

    status_code = 403


class NotFoundError(ProfileServiceError):
    """Raised when a school-scoped lookup finds nothing."""

    status_code = 404


class ConflictError(ProfileServiceError):
    """Raised on admission/employee number uniqueness violations."""

    status_code = 409


class ProfilePersistenceError(ProfileServiceError):
    """Raised when a local store transaction fails."""

    status_code = 500


class DownstreamServiceError(ProfileServiceError):
    """Raised when a downstream service is unreachable or rejects a request.

    Attributes:
        failure: Whether the request failed, timed out or was rejected.
        remote_status: HTTP status returned by the service, if any.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        failure: DownstreamFailure,
        remote_status: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, details)
        self.failure = failure
        self.remote_status = remote_status

    @property
    def is_rejection(self) -> bool:
        """Whether the service answered but refused the request."""
        return self.failure is DownstreamFailure.REJECTED

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        extra = {"failure": self.failure.value}
        if self.remote_status is not None:
            extra["remoteStatus"] = self.remote_status
        existing = body.get("details")
        if isinstance(existing, dict):
            body["details"] = {**existing, **extra}
        elif existing is None:
            body["details"] = extra
        else:
            body["details"] = {"cause": existing, **extra}
        return body


class PartialFailure(ProfileServiceError):
    """Mixed outcome of a bulk operation.

    Only used to render the error part of a bulk response; bulk operations
    return their result instead of raising.
    """

    status_code = 207

    def __init__(self, result: BulkDeletionResult) -> None:
        super().__init__(result.message, details=result.failure_details())
        self.result = result
        self.status_code = result.status_code

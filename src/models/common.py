# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Common response models shared by every profile operation.

Every operation answers with the same envelope::

    {"success": true, "data": {...}, "timestamp": "..."}
    {"success": false, "error": {"message": "...", "details": ...}, "timestamp": "..."}

Bulk operations may carry both ``data`` and ``error`` when only some items
succeeded.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.utils.datetime import utc_now


class ErrorBody(BaseModel):
    """Error part of the response envelope."""

    message: str
    details: Any | None = None


class ApiEnvelope(BaseModel):
    """Caller-facing response envelope.

    Attributes:
        success: Whether the operation succeeded (for bulk operations: whether
            at least one item succeeded).
        data: Operation payload.
        error: Error description.
        timestamp: When the response was produced.
    """

    success: bool
    data: Any | None = None
    error: ErrorBody | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def ok(cls, data: Any) -> "ApiEnvelope":
        """Build a successful envelope."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, details: Any | None = None) -> "ApiEnvelope":
        """Build a failed envelope."""
        return cls(success=False, error=ErrorBody(message=message, details=details))

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response envelope helpers for the HTTP adapter."""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.domains.profile.deletion import BulkDeletionResult
from src.domains.profile.errors import PartialFailure, ProfileServiceError
from src.models.common import ApiEnvelope, ErrorBody


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def _render(envelope: ApiEnvelope, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", exclude_none=True),
    )


def success_response(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Render a successful envelope."""
    return _render(ApiEnvelope.ok(_dump(data)), status_code)


def error_response(error: ProfileServiceError) -> JSONResponse:
    """Render a failed envelope with the error's own status code."""
    envelope = ApiEnvelope(success=False, error=ErrorBody(**error.to_dict()))
    return _render(envelope, error.status_code)


def bulk_response(result: BulkDeletionResult) -> JSONResponse:
    """Render a bulk deletion result.

    The status tier is 200, 207 or 500. Whenever an item failed, the failures
    are repeated in the error part next to the full result in data.
    """
    error = None
    if result.has_failures:
        error = ErrorBody(**PartialFailure(result).to_dict())
    envelope = ApiEnvelope(success=result.success, data=result.to_dict(), error=error)
    return _render(envelope, result.status_code)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import time
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.infrastructure.database.connection import check_profile_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class ComponentsHealth(BaseModel):
    """All components health status."""
    database: ComponentHealth | None = None
    identity_service: ComponentHealth | None = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check PostgreSQL profile database connection."""
    start = time.time()
    healthy = await check_profile_database_connection()
    latency = (time.time() - start) * 1000
    if not healthy:
        logger.error("Profile database health check failed")
        return ComponentHealth(status="unhealthy", message="Profile database unreachable")
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


async def check_identity_service() -> ComponentHealth:
    """Check that the identity service answers at all."""
    settings = get_settings().identity_service
    start = time.time()
    try:
        async with httpx.AsyncClient(timeout=settings.timeout) as client:
            response = await client.get(f"{settings.base_url.rstrip('/')}/health")
    except httpx.HTTPError as e:
        logger.error("Identity service health check failed: %s", str(e))
        return ComponentHealth(status="unhealthy", message=str(e) or type(e).__name__)

    latency = round((time.time() - start) * 1000, 2)
    if response.status_code >= 500:
        return ComponentHealth(
            status="degraded",
            latency_ms=latency,
            message=f"HTTP {response.status_code}",
        )
    return ComponentHealth(status="healthy", latency_ms=latency)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    uptime = int(time.time() - _server_start_time)

    db_health = await check_database()
    identity_health = await check_identity_service()

    # Determine overall status
    component_statuses = [db_health.status, identity_health.status]
    if all(s == "healthy" for s in component_statuses):
        overall_status = "healthy"
    elif db_health.status == "unhealthy":
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=now,
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=uptime,
        components=ComponentsHealth(database=db_health, identity_service=identity_health),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Only the profile database gates readiness; identity service outages
    surface per request as downstream errors.
    """
    db_health = await check_database()
    checks: dict[str, Any] = {
        "database": {"status": db_health.status, "latency_ms": db_health.latency_ms},
    }
    return ReadinessResponse(ready=db_health.status == "healthy", checks=checks)


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Report that the process is up."""
    return {"status": "alive"}

"""Shared response envelopes."""

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import API_TITLE, API_VERSION


class HealthCheckResponse(BaseModel):
    """Standard health check response."""

    status: str = Field(description="Service health status", pattern="^(healthy|degraded|unhealthy)$")
    service: str = Field(default=API_TITLE, description="Service name")
    version: str = Field(default=API_VERSION, description="API version")
    timestamp: datetime = Field(description="Check timestamp")
    checks: Dict[str, bool] = Field(description="Individual component health checks")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "service": API_TITLE,
                "version": API_VERSION,
                "timestamp": "2026-01-20T10:30:00Z",
                "checks": {"database": True, "cache": True},
            }
        }
    )

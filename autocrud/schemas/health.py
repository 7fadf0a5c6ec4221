"""
Response models of the /health endpoints.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness answer: the process is up."""

    status: Literal["ok"]
    timestamp: datetime = Field(description="Server time (UTC)")


class HealthCheckDetail(BaseModel):
    """Outcome of one dependency probe."""

    healthy: bool
    latency_ms: Optional[float] = Field(default=None, description="Probe duration")
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    """
    Readiness answer.

    status is "ready" only when every entry of checks is healthy; the
    endpoint then answers 200, otherwise 503.
    """

    status: Literal["ready", "not_ready"]
    checks: Dict[str, HealthCheckDetail] = Field(
        description="Probe results keyed by dependency name (currently only 'db')"
    )
    timestamp: datetime = Field(description="Server time (UTC)")

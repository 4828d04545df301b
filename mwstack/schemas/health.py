"""
mwstack: Response Schemas
===========================
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="mwstack version", examples=["1.0.0"])
    uptime_seconds: float = Field(..., description="Seconds since the process started")

"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import Field

from app.schemas.base import ApiModel


class HealthResponse(ApiModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Database connectivity status when check is performed",
    )
    admin_sessions: int = Field(
        default=0,
        description="Admin sockets currently joined to the notification channel",
    )

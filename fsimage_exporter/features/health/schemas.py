"""Health endpoint schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class RefreshStatus(BaseModel):
    """State of the background fsimage refresh."""

    phase: str = Field(description="Current refresh phase (idle/locating/parsing/publishing/backoff)")
    has_snapshot: bool = Field(description="True once statistics have been published")
    last_identity: str | None = Field(default=None, description="fsimage behind the published statistics")
    last_attempted_identity: str | None = Field(default=None, description="Most recently attempted fsimage")
    snapshot_age_seconds: float | None = Field(default=None, description="Age of the published statistics")
    last_attempt_at: datetime | None = Field(default=None, description="When the last cycle finished")
    last_error: str | None = Field(default=None, description="Error of the last cycle, if it failed")
    last_error_type: str | None = Field(default=None, description="Exception type of last_error")
    success_count: int = Field(default=0, description="Successful refresh cycles since start")
    failure_count: int = Field(default=0, description="Failed refresh cycles since start")


class HealthResponse(BaseModel):
    """Health check response.

    Status is "ok" once statistics have been published and "starting" before.
    A failed refresh does not make the exporter unhealthy: metrics stay at
    their last published values.
    """

    status: str = Field(examples=["ok"])
    version: str = Field(examples=["0.1.0"])
    app_name: str = Field(examples=["fsimage-exporter"])
    refresh: RefreshStatus

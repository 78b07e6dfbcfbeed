"""Output model for AEM health checks."""

from datetime import datetime

from pydantic import Field

from aem_ops.data_model.base import OutputModel


class HealthCheckOutput(OutputModel):
    """Result of probing one or more AEM health endpoints."""

    ok: bool
    status_code: int = Field(ge=0, le=599)
    latency_ms: int = Field(ge=0)
    checked_url: str
    timestamp: datetime
    notes: list[str] = Field(default_factory=list)

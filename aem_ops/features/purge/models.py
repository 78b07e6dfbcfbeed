"""Output models for cache purge."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from aem_ops.data_model.base import OutputModel
from aem_ops.features.batch.models import BatchOutput, OperationResult


PurgeMethod = Literal["PURGE", "POST"]


class PurgeUrlResult(OutputModel):
    """Outcome of purging one URL."""

    url: str
    method: PurgeMethod
    requested: bool
    ok: bool
    status_code: int = Field(ge=0, le=599)
    message: str
    timestamp: datetime

    @classmethod
    def from_result(cls, result: OperationResult) -> "PurgeUrlResult":
        """Build from a generic batch item result."""
        return cls(
            url=result.target,
            method=result.action,
            requested=result.requested,
            ok=result.ok,
            status_code=result.status_code,
            message=result.message,
            timestamp=result.timestamp,
        )


class CachePurgeOutput(OutputModel):
    """Aggregate result of a cache purge run."""

    ok: bool
    total_urls: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    dry_run: bool
    results: list[PurgeUrlResult]
    timestamp: datetime

    @classmethod
    def from_batch(cls, batch: BatchOutput) -> "CachePurgeOutput":
        """Build from a batch engine output."""
        return cls(
            ok=batch.ok,
            total_urls=batch.total_items,
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            dry_run=batch.dry_run,
            results=[PurgeUrlResult.from_result(r) for r in batch.results],
            timestamp=batch.timestamp,
        )

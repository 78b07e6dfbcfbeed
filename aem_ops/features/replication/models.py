"""Output models for content replication."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from aem_ops.data_model.base import OutputModel
from aem_ops.features.batch.models import BatchOutput, OperationResult


ReplicationAction = Literal["activate", "deactivate"]


class ReplicationPathResult(OutputModel):
    """Outcome of replicating one content path."""

    path: str
    action: ReplicationAction
    requested: bool
    ok: bool
    status_code: int = Field(ge=0, le=599)
    message: str
    duration_ms: int = Field(ge=0)
    timestamp: datetime

    @classmethod
    def from_result(cls, result: OperationResult) -> "ReplicationPathResult":
        """Build from a generic batch item result."""
        return cls(
            path=result.target,
            action=result.action,
            requested=result.requested,
            ok=result.ok,
            status_code=result.status_code,
            message=result.message,
            duration_ms=result.duration_ms,
            timestamp=result.timestamp,
        )


class ReplicationOutput(OutputModel):
    """Aggregate result of a replication run."""

    ok: bool
    total_paths: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    dry_run: bool
    results: list[ReplicationPathResult]
    timestamp: datetime

    @classmethod
    def from_batch(cls, batch: BatchOutput) -> "ReplicationOutput":
        """Build from a batch engine output."""
        return cls(
            ok=batch.ok,
            total_paths=batch.total_items,
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            dry_run=batch.dry_run,
            results=[ReplicationPathResult.from_result(r) for r in batch.results],
            timestamp=batch.timestamp,
        )


class ReplicationQueueStatus(OutputModel):
    """Snapshot of a replication agent queue."""

    ok: bool
    queue_length: int = Field(ge=-1)
    is_blocked: bool = False
    is_paused: bool = False

"""Data models for batched AEM operations."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OperationResult(BaseModel):
    """Outcome of one unit of work (one path or one URL).

    Created once per item and never mutated.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str = Field(description="Path or URL the item acted on")
    action: str = Field(description="Action or HTTP method")
    requested: bool = Field(description="Whether a live call was attempted")
    ok: bool
    status_code: int = Field(ge=0, le=599)
    message: str
    timestamp: datetime
    duration_ms: int = Field(default=0, ge=0)


class BatchOutput(BaseModel):
    """Aggregate over the per-item results of one batched run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_items: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    dry_run: bool
    ok: bool
    results: tuple[OperationResult, ...]
    timestamp: datetime

    @model_validator(mode="after")
    def check_counts(self) -> Self:
        """Enforce total == success + failure == len(results)."""
        if not (
            self.total_items
            == self.success_count + self.failure_count
            == len(self.results)
        ):
            msg = "total_items must equal success_count + failure_count and len(results)"
            raise ValueError(msg)
        if self.ok != (self.failure_count == 0):
            msg = "ok must be true exactly when failure_count is zero"
            raise ValueError(msg)
        return self

    @classmethod
    def from_results(
        cls,
        results: list[OperationResult],
        dry_run: bool,
        timestamp: datetime,
    ) -> "BatchOutput":
        """Aggregate per-item results, preserving their order."""
        success_count = sum(1 for r in results if r.ok)
        failure_count = len(results) - success_count
        return cls(
            total_items=len(results),
            success_count=success_count,
            failure_count=failure_count,
            dry_run=dry_run,
            ok=failure_count == 0,
            results=tuple(results),
            timestamp=timestamp,
        )

    @property
    def failures(self) -> list[OperationResult]:
        """Failed results in input order."""
        return [r for r in self.results if not r.ok]

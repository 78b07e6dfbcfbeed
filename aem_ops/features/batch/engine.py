"""Sequential batch engine shared by replication and cache purge.

Items are processed strictly in order, one at a time, with a throttle
delay between batches. Concurrent dispatch against administrative
endpoints is intentionally not supported.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog

from aem_ops.features.batch.models import BatchOutput, OperationResult
from aem_ops.features.http.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from aem_ops.features.http.redact import redact_error_message, redact_url
from aem_ops.features.http.retry import Sleeper
from aem_ops.features.validation.models import ValidationResult


logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 10
SKIPPED_MESSAGE = "Skipped (already processed in this run)"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BatchItemHandler(ABC):
    """Per-item behavior plugged into ``run_batches``.

    Subclasses define how an item is validated and how the live call is
    made; the engine owns ordering, dedupe, dry-run and aggregation.
    """

    action: str = ""

    @abstractmethod
    def validate(self, item: str) -> ValidationResult:
        """Validate one item before any call is made."""

    @abstractmethod
    def invoke(self, item: str) -> tuple[int, str]:
        """Perform the live call.

        Returns:
            Tuple of (status code, human message).
        """

    def dry_run_message(self, item: str) -> str:  # noqa: ARG002
        """Message for a simulated result."""
        return f"[DRY RUN] Would {self.action}"

    def describe_failure(self, exc: Exception) -> tuple[int, str]:
        """Convert an exception from ``invoke`` into (status code, message)."""
        status_code = getattr(exc, "status_code", None) or HTTP_STATUS_SERVER_ERROR_MIN
        return status_code, f"Request failed: {redact_error_message(str(exc))}"


def chunk(items: Sequence[str], size: int) -> list[list[str]]:
    """Partition items into consecutive batches of at most ``size``."""
    if size < 1:
        msg = "batch size must be >= 1"
        raise ValueError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def run_batches(  # noqa: PLR0913
    items: Sequence[str],
    handler: BatchItemHandler,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay_ms: int = 0,
    dry_run: bool = False,
    sleep: Sleeper = time.sleep,
    clock: Callable[[], datetime] = _utcnow,
) -> BatchOutput:
    """Run a batched operation over items.

    Duplicates are kept in place and short-circuit with a skip result, so
    the output has exactly one result per input item, in input order.

    Args:
        items: Paths or URLs in input order.
        handler: Item validation and invocation strategy.
        batch_size: Items per batch.
        delay_ms: Wait inserted after every batch except the last.
        dry_run: Validate but never call the network.
        sleep: Blocking wait in seconds.
        clock: Source of result timestamps.

    Returns:
        Aggregated BatchOutput.
    """
    log = logger.bind(
        component="batch",
        action=handler.action,
        dry_run=dry_run,
        batch_size=batch_size,
    )
    batches = chunk(items, batch_size)
    seen: set[str] = set()
    results: list[OperationResult] = []

    log.info("batch_run_started", total_items=len(items), batches=len(batches))

    for index, batch in enumerate(batches):
        for item in batch:
            if item in seen:
                results.append(
                    OperationResult(
                        target=item,
                        action=handler.action,
                        requested=False,
                        ok=True,
                        status_code=HTTP_STATUS_OK_MIN,
                        message=SKIPPED_MESSAGE,
                        timestamp=clock(),
                        duration_ms=0,
                    )
                )
                continue
            seen.add(item)
            results.append(_process_item(item, handler, dry_run, clock, log))

        if index < len(batches) - 1 and delay_ms > 0:
            log.debug("batch_throttle", batch_index=index, delay_ms=delay_ms)
            sleep(delay_ms / 1000.0)

    output = BatchOutput.from_results(results, dry_run=dry_run, timestamp=clock())
    log.info(
        "batch_run_complete",
        total_items=output.total_items,
        success_count=output.success_count,
        failure_count=output.failure_count,
    )
    return output


def _process_item(
    item: str,
    handler: BatchItemHandler,
    dry_run: bool,
    clock: Callable[[], datetime],
    log: structlog.stdlib.BoundLogger,
) -> OperationResult:
    start = time.perf_counter()
    timestamp = clock()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - start) * 1000)

    validation = handler.validate(item)
    if not validation.valid:
        log.info(
            "batch_item_invalid",
            target=redact_url(item),
            reason=validation.message,
        )
        return OperationResult(
            target=item,
            action=handler.action,
            requested=False,
            ok=False,
            status_code=HTTP_STATUS_BAD_REQUEST,
            message=validation.message or "Invalid item",
            timestamp=timestamp,
            duration_ms=elapsed_ms(),
        )

    if dry_run:
        return OperationResult(
            target=item,
            action=handler.action,
            requested=False,
            ok=True,
            status_code=HTTP_STATUS_OK_MIN,
            message=handler.dry_run_message(item),
            timestamp=timestamp,
            duration_ms=elapsed_ms(),
        )

    try:
        status_code, message = handler.invoke(item)
    except Exception as exc:  # noqa: BLE001
        status_code, message = handler.describe_failure(exc)
        log.warning(
            "batch_item_failed",
            target=redact_url(item),
            status_code=status_code,
            error=message,
        )
        return OperationResult(
            target=item,
            action=handler.action,
            requested=True,
            ok=False,
            status_code=status_code,
            message=message,
            timestamp=timestamp,
            duration_ms=elapsed_ms(),
        )

    ok = HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX
    log.debug(
        "batch_item_complete",
        target=redact_url(item),
        status_code=status_code,
        ok=ok,
    )
    return OperationResult(
        target=item,
        action=handler.action,
        requested=True,
        ok=ok,
        status_code=status_code,
        message=message,
        timestamp=timestamp,
        duration_ms=elapsed_ms(),
    )

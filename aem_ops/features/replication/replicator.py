"""AEM 6.5 replication (activate/deactivate) adapter."""

import time
from typing import Any

import structlog

from aem_ops.errors import AemError
from aem_ops.features.batch.engine import BatchItemHandler, run_batches
from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.constants import (
    HTTP_STATUS_SERVER_ERROR_MIN,
    REPLICATION_AGENT_BASE,
    REPLICATION_ENDPOINT,
)
from aem_ops.features.http.redact import redact_error_message
from aem_ops.features.http.retry import Sleeper
from aem_ops.features.replication.constants import (
    DEFAULT_REPLICATION_AGENT,
    DEFAULT_REPLICATION_BATCH_SIZE,
    DEFAULT_REPLICATION_THROTTLE_MS,
    REPLICATION_COMMANDS,
)
from aem_ops.features.replication.models import (
    ReplicationAction,
    ReplicationOutput,
    ReplicationQueueStatus,
)
from aem_ops.features.validation.models import ValidationResult
from aem_ops.features.validation.validator import validate_aem_path


logger = structlog.get_logger()


class ReplicationHandler(BatchItemHandler):
    """Activates or deactivates one content path through the replication servlet."""

    def __init__(self, client: AemHttpClient, action: ReplicationAction) -> None:
        self._client = client
        self.action = action

    def validate(self, item: str) -> ValidationResult:
        return validate_aem_path(item)

    def dry_run_message(self, item: str) -> str:  # noqa: ARG002
        return f"[DRY RUN] Would {self.action} path"

    def invoke(self, item: str) -> tuple[int, str]:
        response = self._client.post_form(
            REPLICATION_ENDPOINT,
            {
                "cmd": REPLICATION_COMMANDS[self.action],
                "path": item,
                "_charset_": "utf-8",
            },
        )
        message = None
        if isinstance(response.body, dict):
            message = response.body.get("message")
        if not message:
            message = (
                f"Successfully {self.action}d"
                if response.is_success
                else "Replication failed"
            )
        return response.status_code, str(message)

    def describe_failure(self, exc: Exception) -> tuple[int, str]:
        status_code = getattr(exc, "status_code", None) or HTTP_STATUS_SERVER_ERROR_MIN
        return status_code, f"Replication failed: {redact_error_message(str(exc))}"


def perform_replication(  # noqa: PLR0913
    client: AemHttpClient,
    paths: list[str],
    action: ReplicationAction,
    batch_size: int = DEFAULT_REPLICATION_BATCH_SIZE,
    throttle_ms: int = DEFAULT_REPLICATION_THROTTLE_MS,
    dry_run: bool = False,
    sleep: Sleeper = time.sleep,
) -> ReplicationOutput:
    """Activate or deactivate content paths in throttled batches.

    Args:
        client: Authenticated AEM client.
        paths: Content paths in input order; duplicates are skipped.
        action: ``activate`` or ``deactivate``.
        batch_size: Paths per batch.
        throttle_ms: Delay between batches.
        dry_run: Validate only, never call AEM.
        sleep: Blocking wait in seconds.

    Returns:
        ReplicationOutput with one result per input path.
    """
    if action not in REPLICATION_COMMANDS:
        msg = f"Unsupported replication action: {action}"
        raise ValueError(msg)

    batch = run_batches(
        paths,
        ReplicationHandler(client, action),
        batch_size=batch_size,
        delay_ms=throttle_ms,
        dry_run=dry_run,
        sleep=sleep,
    )
    return ReplicationOutput.from_batch(batch)


def activate_paths(
    client: AemHttpClient, paths: list[str], **options: Any
) -> ReplicationOutput:
    """Activate (publish) content paths."""
    return perform_replication(client, paths, "activate", **options)


def deactivate_paths(
    client: AemHttpClient, paths: list[str], **options: Any
) -> ReplicationOutput:
    """Deactivate (unpublish) content paths."""
    return perform_replication(client, paths, "deactivate", **options)


def get_replication_queue_status(
    client: AemHttpClient,
    agent_id: str = DEFAULT_REPLICATION_AGENT,
) -> ReplicationQueueStatus:
    """Read the queue state of a replication agent.

    Failures are reported as ``ok=False`` with a queue length of -1.
    """
    try:
        response = client.get(f"{REPLICATION_AGENT_BASE}/{agent_id}.queue.json")
    except AemError as exc:
        logger.warning(
            "replication_queue_status_failed",
            component="replication",
            agent_id=agent_id,
            code=exc.code.value,
        )
        return ReplicationQueueStatus(ok=False, queue_length=-1)

    body = response.body if isinstance(response.body, dict) else {}
    queue = body.get("queue") or {}
    status = body.get("status") or {}
    return ReplicationQueueStatus(
        ok=True,
        queue_length=int(queue.get("length") or 0),
        is_blocked=bool(status.get("isBlocked", False)),
        is_paused=bool(status.get("isPaused", False)),
    )

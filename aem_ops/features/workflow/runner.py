"""Host-boundary helpers for running one workflow item.

A workflow host hands over raw item input and chooses between fatal and
tolerant failure handling. These helpers turn raw input into item lists,
turn failed outputs into aggregate errors, and build same-shaped failure
outputs for tolerant mode.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

import structlog

from aem_ops.data_model.base import OutputModel
from aem_ops.errors import AemError, AemErrorCode
from aem_ops.features.health.models import HealthCheckOutput
from aem_ops.features.http.redact import redact_error_message
from aem_ops.features.packages.models import PackageOutput
from aem_ops.features.purge.models import CachePurgeOutput
from aem_ops.features.replication.models import ReplicationOutput
from aem_ops.features.validation.validator import parse_path_list
from aem_ops.features.workflow.errors import WorkflowItemError


logger = structlog.get_logger()

OutputKind = Literal["health", "replication", "package", "purge"]
ItemKind = Literal["path", "URL"]

CLOUD_NOT_IMPLEMENTED_MESSAGE = (
    "AEM Cloud support is not yet implemented. Please use AEM 6.5 credentials."
)


def ensure_supported_target(target: str) -> None:
    """Reject deployment targets that have no adapter yet.

    Raises:
        AemError: NOT_IMPLEMENTED for the cloud target.
    """
    if target == "cloud":
        raise AemError(AemErrorCode.NOT_IMPLEMENTED, CLOUD_NOT_IMPLEMENTED_MESSAGE)


def parse_items_input(raw: Any, kind: ItemKind = "path") -> list[str]:
    """Turn raw item input into a list of identifiers.

    Accepts a list, a JSON array string, or free text separated by
    newlines, commas or semicolons.

    Args:
        raw: Input as supplied by the host.
        kind: ``path`` or ``URL``, used in messages and error codes.

    Returns:
        Non-empty list of identifiers in input order.

    Raises:
        AemError: If the input has an unsupported type or yields no items.
    """
    code = AemErrorCode.INVALID_PATH if kind == "path" else AemErrorCode.INVALID_URL

    if isinstance(raw, list | tuple):
        items = [str(item) for item in raw]
    elif isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            items = [str(item) for item in decoded]
        else:
            items = parse_path_list(raw)
    else:
        label = f"{kind[0].upper()}{kind[1:]}s"
        msg = f"{label} must be provided as an array or comma-separated string"
        raise AemError(code, msg)

    if not items:
        raise AemError(code, f"At least one {kind} is required")
    return items


def _join_failures(failures: list[tuple[str, str]]) -> str:
    return "; ".join(f"{identifier}: {message}" for identifier, message in failures)


def raise_for_failures(output: OutputModel) -> None:
    """Raise an aggregate error when an output reports failure.

    Args:
        output: Any adapter output.

    Raises:
        WorkflowItemError: Listing every failed identifier with its message.
    """
    if getattr(output, "ok", True):
        return

    if isinstance(output, ReplicationOutput):
        failures = [(r.path, r.message) for r in output.results if not r.ok]
        raise WorkflowItemError(
            AemErrorCode.REPLICATION_FAILED,
            f"Replication failed for {output.failure_count} path(s): "
            f"{_join_failures(failures)}",
            failures,
        )

    if isinstance(output, CachePurgeOutput):
        failures = [(r.url, r.message) for r in output.results if not r.ok]
        raise WorkflowItemError(
            AemErrorCode.PURGE_FAILED,
            f"Cache purge failed for {output.failure_count} URL(s): "
            f"{_join_failures(failures)}",
            failures,
        )

    if isinstance(output, HealthCheckOutput):
        raise WorkflowItemError(
            AemErrorCode.HEALTH_CHECK_FAILED,
            f"AEM health check failed: {'; '.join(output.notes)}",
            [(output.checked_url, "; ".join(output.notes))],
            status_code=output.status_code or None,
        )

    if isinstance(output, PackageOutput):
        code = (
            AemErrorCode.PACKAGE_INSTALL_FAILED
            if output.uploaded
            else AemErrorCode.PACKAGE_UPLOAD_FAILED
        )
        raise WorkflowItemError(
            code,
            f"Package operation failed: {'; '.join(output.logs)}",
            [(output.package_name, "; ".join(output.logs))],
            status_code=output.status_code or None,
        )

    msg = f"Unsupported output type: {type(output).__name__}"
    raise TypeError(msg)


def failure_output(kind: OutputKind, message: str) -> dict[str, Any]:
    """Build a same-shaped ``ok=false`` output for tolerant mode.

    Args:
        kind: Which adapter output shape to produce.
        message: Diagnostic message, redacted before use.

    Returns:
        JSON-compatible output dict.
    """
    safe_message = redact_error_message(message)
    timestamp = datetime.now(UTC)

    if kind == "health":
        return HealthCheckOutput(
            ok=False,
            status_code=0,
            latency_ms=0,
            checked_url="",
            timestamp=timestamp,
            notes=[safe_message],
        ).to_output()

    if kind == "package":
        return PackageOutput(
            ok=False,
            status_code=0,
            uploaded=False,
            installed=False,
            package_id=None,
            package_name="",
            logs=[safe_message],
            dry_run=False,
            timestamp=timestamp,
        ).to_output()

    if kind == "replication":
        batch_output = ReplicationOutput(
            ok=False,
            total_paths=0,
            success_count=0,
            failure_count=0,
            dry_run=False,
            results=[],
            timestamp=timestamp,
        ).to_output()
    else:
        batch_output = CachePurgeOutput(
            ok=False,
            total_urls=0,
            success_count=0,
            failure_count=0,
            dry_run=False,
            results=[],
            timestamp=timestamp,
        ).to_output()
    return {**batch_output, "error": safe_message}


def run_workflow_item(
    kind: OutputKind,
    operation: Callable[[], OutputModel],
    *,
    fail_on_error: bool = False,
    continue_on_fail: bool = False,
) -> dict[str, Any]:
    """Run one workflow item with the host's failure policy.

    Args:
        kind: Output shape produced by ``operation``.
        operation: Zero-argument callable returning an adapter output.
        fail_on_error: Treat an ``ok=false`` output as fatal.
        continue_on_fail: Convert fatal errors into a failure output.

    Returns:
        JSON-compatible output dict.

    Raises:
        AemError: When a fatal error occurs and ``continue_on_fail`` is off.
    """
    log = logger.bind(component="workflow", kind=kind)
    try:
        output = operation()
        if fail_on_error:
            raise_for_failures(output)
        return output.to_output()
    except AemError as exc:
        if not continue_on_fail:
            raise
        log.warning("workflow_item_failed", code=exc.code.value, error=exc.message)
        return failure_output(kind, exc.message)

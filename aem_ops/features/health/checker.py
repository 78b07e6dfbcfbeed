"""AEM 6.5 health check adapter."""

from datetime import UTC, datetime
from typing import Any

import structlog

from aem_ops.errors import AemError
from aem_ops.features.health.models import HealthCheckOutput
from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.constants import (
    HEALTH_READY_ENDPOINT,
    HEALTH_SYSTEM_ENDPOINT,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_REDIRECT_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from aem_ops.features.http.redact import redact_url


logger = structlog.get_logger()

DEFAULT_HEALTH_TIMEOUT_MS = 10_000
READINESS_TIMEOUT_MS = 5_000
HEALTHY_STATUSES = frozenset({"ok", "green"})


def _status_ok(status_code: int) -> bool:
    return HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_REDIRECT_MAX


def parse_health_response(body: Any, status_code: int) -> tuple[bool, list[str]]:
    """Interpret a health endpoint body.

    Args:
        body: Decoded JSON (dict) or raw markup/text.
        status_code: HTTP status code of the response.

    Returns:
        Tuple of (healthy flag, notes).
    """
    notes: list[str] = []

    if not isinstance(body, dict):
        text = body if isinstance(body, str) else ""
        if "login" in text.lower():
            notes.append("AEM is responding but may require authentication")
            return _status_ok(status_code), notes
        if "crxde" in text.lower():
            notes.append("CRXDE Lite is accessible")
            return True, notes
        notes.append("Received HTML response")
        return _status_ok(status_code), notes

    status = body.get("status")
    if isinstance(status, str) and status:
        notes.append(f"System status: {status}")
        return status.lower() in HEALTHY_STATUSES, notes

    results = body.get("results")
    if isinstance(results, list):
        all_ok = True
        for result in results:
            if not isinstance(result, dict):
                continue
            line = f"{result.get('name', 'unknown')}: {result.get('status', 'UNKNOWN')}"
            if result.get("message"):
                line += f" - {result['message']}"
            notes.append(line)
            if result.get("status") != "OK":
                all_ok = False
        return all_ok, notes

    return _status_ok(status_code), notes


def build_health_check_url(base_url: str, endpoint: str = HEALTH_SYSTEM_ENDPOINT) -> str:
    """Join a base URL and a health endpoint; absolute endpoints pass through."""
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    normalized = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    return f"{base_url.rstrip('/')}{normalized}"


def perform_health_check(
    client: AemHttpClient,
    endpoint: str = HEALTH_SYSTEM_ENDPOINT,
    timeout_ms: int = DEFAULT_HEALTH_TIMEOUT_MS,
) -> HealthCheckOutput:
    """Probe an AEM health endpoint.

    Failures never raise; they produce an ``ok=False`` output with a note.

    Args:
        client: Authenticated AEM client.
        endpoint: Health endpoint path or absolute URL.
        timeout_ms: Request timeout.

    Returns:
        HealthCheckOutput describing the probe.
    """
    timestamp = datetime.now(UTC)
    checked_url = redact_url(
        build_health_check_url(client.credentials.base_url, endpoint)
    )
    log = logger.bind(component="health", checked_url=checked_url)

    try:
        response = client.get(endpoint, timeout_ms=timeout_ms)
    except AemError as exc:
        log.warning("health_check_failed", code=exc.code.value, status_code=exc.status_code)
        return HealthCheckOutput(
            ok=False,
            status_code=exc.status_code or 0,
            latency_ms=0,
            checked_url=checked_url,
            timestamp=timestamp,
            notes=[f"Health check failed: {exc.message}"],
        )

    ok, notes = parse_health_response(response.body, response.status_code)
    log.info(
        "health_check_complete",
        ok=ok,
        status_code=response.status_code,
        latency_ms=response.latency_ms,
    )
    return HealthCheckOutput(
        ok=ok,
        status_code=response.status_code,
        latency_ms=response.latency_ms,
        checked_url=checked_url,
        timestamp=timestamp,
        notes=notes,
    )


def perform_readiness_check(client: AemHttpClient) -> HealthCheckOutput:
    """Lightweight readiness probe against the login page."""
    return perform_health_check(
        client, endpoint=HEALTH_READY_ENDPOINT, timeout_ms=READINESS_TIMEOUT_MS
    )


def perform_multi_endpoint_health_check(
    client: AemHttpClient,
    endpoints: list[str],
) -> HealthCheckOutput:
    """Check several endpoints in order and aggregate the outcome.

    Args:
        client: Authenticated AEM client.
        endpoints: Endpoint paths or absolute URLs.

    Returns:
        HealthCheckOutput that is ok only when every endpoint is ok.
    """
    timestamp = datetime.now(UTC)
    results = [perform_health_check(client, endpoint=endpoint) for endpoint in endpoints]

    notes: list[str] = []
    for endpoint, result in zip(endpoints, results, strict=True):
        state = "OK" if result.ok else "FAIL"
        notes.append(f"[{endpoint}] {state} ({result.latency_ms}ms)")
        notes.extend(f"  - {note}" for note in result.notes)

    all_ok = all(result.ok for result in results)
    first_failure = next((result for result in results if not result.ok), None)
    if all_ok:
        status_code = HTTP_STATUS_OK_MIN
    else:
        status_code = (
            first_failure.status_code if first_failure else 0
        ) or HTTP_STATUS_SERVER_ERROR_MIN

    return HealthCheckOutput(
        ok=all_ok,
        status_code=status_code,
        latency_ms=sum(result.latency_ms for result in results),
        checked_url=", ".join(endpoints),
        timestamp=timestamp,
        notes=notes,
    )

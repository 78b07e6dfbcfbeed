"""Dispatcher/CDN cache purge.

Purge targets are public cache endpoints, so requests go out directly
without AEM credentials, anti-forgery tokens or retries.
"""

import time
from collections.abc import Mapping

import httpx
import structlog

from aem_ops.features.batch.engine import BatchItemHandler, run_batches
from aem_ops.features.http.redact import redact_error_message, redact_headers, redact_url
from aem_ops.features.http.retry import Sleeper
from aem_ops.features.purge.constants import (
    DEFAULT_PURGE_BATCH_SIZE,
    DEFAULT_PURGE_THROTTLE_MS,
    DEFAULT_PURGE_TIMEOUT_MS,
    PURGE_METHODS,
)
from aem_ops.features.purge.models import CachePurgeOutput, PurgeMethod
from aem_ops.features.validation.models import ValidationResult
from aem_ops.features.validation.validator import validate_url_against_allowlist


logger = structlog.get_logger()


class PurgeHandler(BatchItemHandler):
    """Sends one purge request per allowlisted URL."""

    def __init__(
        self,
        method: PurgeMethod,
        allowlist_regex: str,
        headers: Mapping[str, str] | None = None,
        timeout_ms: int = DEFAULT_PURGE_TIMEOUT_MS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.action = method
        self._allowlist_regex = allowlist_regex
        self._headers = {name: value for name, value in (headers or {}).items() if name and value}
        self._timeout_ms = timeout_ms
        self._transport = transport
        self._log = logger.bind(component="purge", method=method)

    def validate(self, item: str) -> ValidationResult:
        return validate_url_against_allowlist(item, self._allowlist_regex)

    def dry_run_message(self, item: str) -> str:  # noqa: ARG002
        return f"[DRY RUN] Would send {self.action} request"

    def invoke(self, item: str) -> tuple[int, str]:
        self._log.debug(
            "purge_request",
            url=redact_url(item),
            headers=redact_headers(self._headers),
        )
        with httpx.Client(
            timeout=self._timeout_ms / 1000.0,
            transport=self._transport,
        ) as client:
            response = client.request(self.action, item, headers=self._headers)

        if response.is_success:
            return response.status_code, "Purge successful"
        return response.status_code, f"Purge failed with status {response.status_code}"

    def describe_failure(self, exc: Exception) -> tuple[int, str]:
        return 0, f"Request failed: {redact_error_message(str(exc))}"


def purge_cache(  # noqa: PLR0913
    urls: list[str],
    method: PurgeMethod,
    allowlist_regex: str,
    headers: Mapping[str, str] | None = None,
    dry_run: bool = False,
    timeout_ms: int = DEFAULT_PURGE_TIMEOUT_MS,
    batch_size: int = DEFAULT_PURGE_BATCH_SIZE,
    throttle_ms: int = DEFAULT_PURGE_THROTTLE_MS,
    transport: httpx.BaseTransport | None = None,
    sleep: Sleeper = time.sleep,
) -> CachePurgeOutput:
    """Purge URLs from a dispatcher or CDN cache.

    Args:
        urls: Target URLs in input order; duplicates are skipped.
        method: ``PURGE`` or ``POST``.
        allowlist_regex: Pattern every URL must fully match; empty allows all.
        headers: Extra request headers, e.g. CDN auth tokens.
        dry_run: Validate only, never send requests.
        timeout_ms: Per-request timeout.
        batch_size: URLs per batch.
        throttle_ms: Delay between batches.
        transport: Optional httpx transport.
        sleep: Blocking wait in seconds.

    Returns:
        CachePurgeOutput with one result per input URL.
    """
    if method not in PURGE_METHODS:
        msg = f"Unsupported purge method: {method}"
        raise ValueError(msg)

    handler = PurgeHandler(
        method,
        allowlist_regex,
        headers=headers,
        timeout_ms=timeout_ms,
        transport=transport,
    )
    batch = run_batches(
        urls,
        handler,
        batch_size=batch_size,
        delay_ms=throttle_ms,
        dry_run=dry_run,
        sleep=sleep,
    )
    return CachePurgeOutput.from_batch(batch)

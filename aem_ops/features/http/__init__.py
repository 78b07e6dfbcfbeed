"""HTTP layer for AEM administrative APIs.

This module provides resilient HTTP operations with:
- Basic or bearer authentication
- CSRF token negotiation and caching for write requests
- Exponential backoff retries with jitter and Retry-After support
- Status code classification into a stable error taxonomy
- Redaction of sensitive data in logs and errors
"""

from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.http.models import (
    AuthScheme,
    BasicAuth,
    BearerAuth,
    Credentials,
    HttpResponse,
    headers_for,
)
from aem_ops.features.http.redact import (
    REDACTED_VALUE,
    create_log_safe_options,
    redact_error_message,
    redact_headers,
    redact_object,
    redact_url,
)
from aem_ops.features.http.retry import (
    RetryConfig,
    RetryDecision,
    calculate_backoff_delay,
    create_retry_wrapper,
    parse_retry_after_header,
    should_retry,
    with_retry,
)


__all__ = [
    # Client
    "AemHttpClient",
    # Models
    "AuthScheme",
    "BasicAuth",
    "BearerAuth",
    "Credentials",
    "HttpResponse",
    "headers_for",
    # Retry
    "RetryConfig",
    "RetryDecision",
    "calculate_backoff_delay",
    "create_retry_wrapper",
    "parse_retry_after_header",
    "should_retry",
    "with_retry",
    # Redaction
    "REDACTED_VALUE",
    "create_log_safe_options",
    "redact_error_message",
    "redact_headers",
    "redact_object",
    "redact_url",
    # Metrics
    "ClientMetrics",
]

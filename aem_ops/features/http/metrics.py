"""Metrics collection for the AEM HTTP client."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class ClientMetrics:
    """Metrics for AEM HTTP operations.

    Singleton class that tracks request counts by status code,
    retries, failures by error code and cumulative latency.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_retry_total: int = 0
    http_failures_total: dict[str, int] = field(default_factory=dict)
    http_latency_ms_total: int = 0
    http_request_count: int = 0
    csrf_fetch_failures_total: int = 0

    _instance: ClassVar["ClientMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ClientMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int, latency_ms: int) -> None:
        """Record a completed HTTP exchange.

        Args:
            status_code: HTTP status code.
            latency_ms: Measured latency in milliseconds.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )
        self.http_latency_ms_total += latency_ms
        self.http_request_count += 1

    def record_retry(self) -> None:
        """Record a retry attempt."""
        self.http_retry_total += 1

    def record_failure(self, error_code: str) -> None:
        """Record a failed call by its taxonomy code."""
        self.http_failures_total[error_code] = (
            self.http_failures_total.get(error_code, 0) + 1
        )

    def record_csrf_failure(self) -> None:
        """Record a swallowed anti-forgery token fetch failure."""
        self.csrf_fetch_failures_total += 1

    def to_dict(self) -> dict[str, int | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary."""
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_retry_total": self.http_retry_total,
            "http_failures_total": dict(self.http_failures_total),
            "http_latency_ms_total": self.http_latency_ms_total,
            "http_request_count": self.http_request_count,
            "csrf_fetch_failures_total": self.csrf_fetch_failures_total,
        }

    @property
    def avg_latency_ms(self) -> float:
        """Average request latency in milliseconds."""
        if self.http_request_count == 0:
            return 0.0
        return self.http_latency_ms_total / self.http_request_count

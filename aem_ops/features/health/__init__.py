"""Health and readiness checks for AEM instances."""

from aem_ops.features.health.checker import (
    build_health_check_url,
    parse_health_response,
    perform_health_check,
    perform_multi_endpoint_health_check,
    perform_readiness_check,
)
from aem_ops.features.health.models import HealthCheckOutput


__all__ = [
    "HealthCheckOutput",
    "build_health_check_url",
    "parse_health_response",
    "perform_health_check",
    "perform_multi_endpoint_health_check",
    "perform_readiness_check",
]

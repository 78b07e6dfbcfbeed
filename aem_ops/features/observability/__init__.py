"""Observability: structured logging and process runtime context."""

from aem_ops.features.observability.context import RuntimeContext
from aem_ops.features.observability.logging import (
    bind_invocation_context,
    clear_invocation_context,
    configure_logging,
)


__all__ = [
    "RuntimeContext",
    "bind_invocation_context",
    "clear_invocation_context",
    "configure_logging",
]

"""Structured logging configuration.

Events are rendered as JSON lines on stderr so that stdout stays reserved
for command output. URL- and header-shaped event keys are redacted at
render time as a last line of defence for call sites that forget to.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from aem_ops.features.http.redact import redact_headers, redact_url


URL_EVENT_KEYS = frozenset({"url", "checked_url", "target", "base_url"})
HEADER_EVENT_KEYS = frozenset({"headers"})


def redact_event(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """structlog processor that redacts URL and header values in an event."""
    for key in URL_EVENT_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str):
            event_dict[key] = redact_url(value)
    for key in HEADER_EVENT_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, MutableMapping):
            event_dict[key] = redact_headers(value)
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the CLI and library code.

    Loggers are not cached, so calling this again (per CLI invocation or
    per test) re-routes module-level loggers to the new output.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: JSON lines when True, plain console lines otherwise.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_event,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def bind_invocation_context(command: str, target: str) -> None:
    """Bind invocation context to all subsequent log messages.

    Args:
        command: CLI command or operation name.
        target: Redacted target base URL.
    """
    structlog.contextvars.bind_contextvars(command=command, target=target)


def clear_invocation_context() -> None:
    """Clear invocation context from log messages."""
    structlog.contextvars.unbind_contextvars("command", "target")

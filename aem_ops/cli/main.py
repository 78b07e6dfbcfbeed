"""CLI commands for AEM administrative operations."""

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import structlog
from pydantic import ValidationError

from aem_ops import __version__
from aem_ops.data_model.base import OutputModel
from aem_ops.errors import AemError
from aem_ops.features.health.checker import (
    perform_health_check,
    perform_multi_endpoint_health_check,
    perform_readiness_check,
)
from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.constants import HEALTH_SYSTEM_ENDPOINT
from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.http.redact import redact_url
from aem_ops.features.observability.context import RuntimeContext
from aem_ops.features.observability.logging import (
    bind_invocation_context,
    configure_logging,
)
from aem_ops.features.packages.manager import upload_package
from aem_ops.features.purge.purger import purge_cache
from aem_ops.features.replication.replicator import perform_replication
from aem_ops.features.workflow.runner import (
    OutputKind,
    ensure_supported_target,
    parse_items_input,
    run_workflow_item,
)
from aem_ops.settings import AppSettings, get_settings


logger = structlog.get_logger()

COMPONENT_CLI = "cli"


def _logging_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose logging.",
    )(func)
    return click.option(
        "--json-logs/--no-json-logs",
        default=True,
        help="Use JSON format for logs (default: true).",
    )(func)


def _failure_options(
    fail_on_error_default: bool,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        func = click.option(
            "--continue-on-fail",
            is_flag=True,
            help="Emit an ok=false output instead of exiting on fatal errors.",
        )(func)
        return click.option(
            "--fail-on-error/--no-fail-on-error",
            default=fail_on_error_default,
            help="Treat any failed item as fatal for the whole run.",
        )(func)

    return decorate


def _setup(command: str, json_logs: bool, verbose: bool) -> AppSettings:
    """Configure logging, emit the one-time notice and load settings."""
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)
    RuntimeContext.initialize().log_notice()

    try:
        settings = get_settings()
    except ValidationError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(1)

    bind_invocation_context(command, redact_url(settings.base_url))
    return settings


def _build_client(settings: AppSettings) -> AemHttpClient:
    return AemHttpClient(
        settings.credentials(),
        retry_config=settings.retry_config(),
        default_timeout_ms=settings.timeout_ms,
    )


def _emit(
    kind: OutputKind,
    operation: Callable[[], OutputModel],
    fail_on_error: bool,
    continue_on_fail: bool,
) -> None:
    """Run one item and print its JSON output, exiting 1 on fatal errors."""
    try:
        output = run_workflow_item(
            kind,
            operation,
            fail_on_error=fail_on_error,
            continue_on_fail=continue_on_fail,
        )
    except AemError as e:
        logger.error(
            "command_failed",
            component=COMPONENT_CLI,
            **e.to_details().model_dump(mode="json", exclude_none=True),
        )
        click.echo(f"Error [{e.code.value}]: {e.message}", err=True)
        sys.exit(1)
    finally:
        logger.debug(
            "http_metrics",
            component=COMPONENT_CLI,
            **ClientMetrics.get_instance().to_dict(),
        )

    click.echo(json.dumps(output, indent=2))


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """AEM administrative operations CLI."""


@cli.command()
@click.option(
    "--endpoint",
    "endpoints",
    multiple=True,
    default=(HEALTH_SYSTEM_ENDPOINT,),
    show_default=True,
    help="Health endpoint path or URL; repeat to check several endpoints.",
)
@click.option(
    "--timeout-ms",
    type=click.IntRange(min=1),
    default=10_000,
    help="Request timeout in milliseconds (default: 10000).",
)
@click.option(
    "--readiness",
    is_flag=True,
    help="Probe the login page instead of the health endpoint.",
)
@_failure_options(fail_on_error_default=False)
@_logging_options
def health(  # noqa: PLR0913
    endpoints: tuple[str, ...],
    timeout_ms: int,
    readiness: bool,
    fail_on_error: bool,
    continue_on_fail: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Check AEM instance health."""
    settings = _setup("health", json_logs, verbose)

    def operation() -> OutputModel:
        ensure_supported_target(settings.target)
        client = _build_client(settings)
        if readiness:
            return perform_readiness_check(client)
        if len(endpoints) > 1:
            return perform_multi_endpoint_health_check(client, list(endpoints))
        return perform_health_check(client, endpoint=endpoints[0], timeout_ms=timeout_ms)

    _emit("health", operation, fail_on_error, continue_on_fail)


@cli.command()
@click.option(
    "--paths",
    required=True,
    help="Content paths as a JSON array or separated by newlines, commas or semicolons.",
)
@click.option(
    "--action",
    type=click.Choice(["activate", "deactivate"]),
    default="activate",
    show_default=True,
    help="Replication action.",
)
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=10,
    help="Paths per batch (default: 10).",
)
@click.option(
    "--throttle-ms",
    type=click.IntRange(min=0),
    default=100,
    help="Delay between batches in milliseconds (default: 100).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Validate paths without calling AEM.",
)
@_failure_options(fail_on_error_default=False)
@_logging_options
def replicate(  # noqa: PLR0913
    paths: str,
    action: str,
    batch_size: int,
    throttle_ms: int,
    dry_run: bool,
    fail_on_error: bool,
    continue_on_fail: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Activate or deactivate content paths."""
    settings = _setup("replicate", json_logs, verbose)

    def operation() -> OutputModel:
        ensure_supported_target(settings.target)
        items = parse_items_input(paths, "path")
        return perform_replication(
            _build_client(settings),
            items,
            action,  # type: ignore[arg-type]
            batch_size=batch_size,
            throttle_ms=throttle_ms,
            dry_run=dry_run,
        )

    _emit("replication", operation, fail_on_error, continue_on_fail)


@cli.command()
@click.option(
    "--file",
    "package_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the package zip file.",
)
@click.option(
    "--name",
    "package_name",
    default=None,
    help="Package file name (default: the file's name).",
)
@click.option(
    "--install",
    is_flag=True,
    help="Install the package after upload.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Report what would be uploaded without calling AEM.",
)
@_failure_options(fail_on_error_default=True)
@_logging_options
def package(  # noqa: PLR0913
    package_file: Path,
    package_name: str | None,
    install: bool,
    dry_run: bool,
    fail_on_error: bool,
    continue_on_fail: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Upload (and optionally install) a CRX package."""
    settings = _setup("package", json_logs, verbose)

    def operation() -> OutputModel:
        ensure_supported_target(settings.target)
        return upload_package(
            _build_client(settings),
            package_file.read_bytes(),
            package_name=package_name or package_file.name,
            install=install,
            dry_run=dry_run,
        )

    _emit("package", operation, fail_on_error, continue_on_fail)


def _parse_header(
    ctx: click.Context,  # noqa: ARG001
    param: click.Parameter,  # noqa: ARG001
    values: tuple[str, ...],
) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, header_value = value.partition("=")
        if not sep or not name.strip():
            msg = f"Header must be NAME=VALUE, got '{value}'"
            raise click.BadParameter(msg)
        headers[name.strip()] = header_value.strip()
    return headers


@cli.command()
@click.option(
    "--urls",
    required=True,
    help="URLs as a JSON array or separated by newlines, commas or semicolons.",
)
@click.option(
    "--method",
    type=click.Choice(["PURGE", "POST"]),
    default="PURGE",
    show_default=True,
    help="HTTP method for purge requests.",
)
@click.option(
    "--allowlist",
    "allowlist_regex",
    default="",
    help="Regex every URL must fully match (empty allows all).",
)
@click.option(
    "--header",
    "headers",
    multiple=True,
    callback=_parse_header,
    help="Extra request header as NAME=VALUE; repeatable.",
)
@click.option(
    "--timeout-ms",
    type=click.IntRange(min=1),
    default=5_000,
    help="Request timeout in milliseconds (default: 5000).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Validate URLs without sending requests.",
)
@_failure_options(fail_on_error_default=False)
@_logging_options
def purge(  # noqa: PLR0913
    urls: str,
    method: str,
    allowlist_regex: str,
    headers: dict[str, str],
    timeout_ms: int,
    dry_run: bool,
    fail_on_error: bool,
    continue_on_fail: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Purge dispatcher or CDN cache entries."""
    _setup("purge", json_logs, verbose)

    def operation() -> OutputModel:
        items = parse_items_input(urls, "URL")
        return purge_cache(
            items,
            method,  # type: ignore[arg-type]
            allowlist_regex,
            headers=headers,
            dry_run=dry_run,
            timeout_ms=timeout_ms,
        )

    _emit("purge", operation, fail_on_error, continue_on_fail)


if __name__ == "__main__":
    cli()

"""AEM 6.5 CRX package manager adapter."""

import json
import time
from datetime import UTC, datetime
from typing import Any

import structlog

from aem_ops.errors import AemError
from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.constants import (
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MIN,
    PACKAGE_INSTALL_ENDPOINT,
    PACKAGE_LIST_ENDPOINT,
    PACKAGE_SERVICE_ENDPOINT,
)
from aem_ops.features.http.redact import redact_error_message
from aem_ops.features.packages.constants import PACKAGE_EXTENSION
from aem_ops.features.packages.models import (
    MarkupPackageResponse,
    PackageCommandOutput,
    PackageInfo,
    PackageListOutput,
    PackageOutput,
    ParsedPackageResponse,
    StructuredPackageResponse,
)


logger = structlog.get_logger()


def parse_package_response(body: Any) -> ParsedPackageResponse:
    """Resolve a raw response body into one of the two response shapes.

    Args:
        body: Decoded JSON object, or text that may itself hold JSON.

    Returns:
        StructuredPackageResponse for JSON objects, MarkupPackageResponse
        for everything else.
    """
    if isinstance(body, dict):
        return StructuredPackageResponse(data=body)

    text = body if isinstance(body, str) else ("" if body is None else str(body))
    try:
        decoded = json.loads(text)
    except ValueError:
        return MarkupPackageResponse(text=text)
    if isinstance(decoded, dict):
        return StructuredPackageResponse(data=decoded)
    return MarkupPackageResponse(text=text)


def resolve_package_name(package_name: str | None, now_ms: int | None = None) -> str:
    """Pick the effective package file name.

    Args:
        package_name: Explicit name; ``.zip`` is appended when missing.
        now_ms: Epoch milliseconds used for generated names.

    Returns:
        Package file name ending in ``.zip``.
    """
    if package_name and package_name.strip():
        name = package_name.strip()
        return name if name.endswith(PACKAGE_EXTENSION) else f"{name}{PACKAGE_EXTENSION}"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"package-{stamp}{PACKAGE_EXTENSION}"


def upload_package(
    client: AemHttpClient,
    data: bytes,
    package_name: str | None = None,
    install: bool = False,
    dry_run: bool = False,
) -> PackageOutput:
    """Upload a package and optionally install it.

    Args:
        client: Authenticated AEM client.
        data: Package zip content.
        package_name: Explicit package file name.
        install: Install after a successful upload.
        dry_run: Report what would happen without calling AEM.

    Returns:
        PackageOutput; failures are captured in ``logs`` and ``ok=False``.
    """
    timestamp = datetime.now(UTC)
    name = resolve_package_name(package_name)
    log = logger.bind(component="packages", package_name=name, install=install)
    logs: list[str] = []

    if dry_run:
        logs.append("[DRY RUN] Would upload package")
        if install:
            logs.append("[DRY RUN] Would install package after upload")
        return PackageOutput(
            ok=True,
            status_code=HTTP_STATUS_OK_MIN,
            uploaded=False,
            installed=False,
            package_id=None,
            package_name=name,
            logs=logs,
            dry_run=True,
            timestamp=timestamp,
        )

    uploaded = False
    installed = False
    package_id: str | None = None
    status_code = 0

    try:
        logs.append(f"Uploading package: {name}")
        upload_response = client.upload_file(
            PACKAGE_SERVICE_ENDPOINT,
            data,
            name,
            params={"cmd": "upload", "force": "true"},
        )
        status_code = upload_response.status_code
        parsed = parse_package_response(upload_response.body)
        uploaded = parsed.success_indicated(status_code)
        package_id = parsed.extract_id()

        if not uploaded:
            logs.append("Package upload failed")
            logs.extend(parsed.extract_logs())
            log.warning("package_upload_failed", status_code=status_code)
            return PackageOutput(
                ok=False,
                status_code=status_code,
                uploaded=False,
                installed=False,
                package_id=package_id,
                package_name=name,
                logs=logs,
                dry_run=False,
                timestamp=timestamp,
            )

        logs.append("Package uploaded successfully")
        if package_id:
            logs.append(f"Package path: {package_id}")
        log.info("package_uploaded", package_id=package_id)

        if install and package_id:
            logs.append("Installing package...")
            install_response = client.post_form(
                f"{PACKAGE_INSTALL_ENDPOINT}{package_id}", {"cmd": "install"}
            )
            status_code = install_response.status_code
            parsed_install = parse_package_response(install_response.body)
            installed = parsed_install.success_indicated(status_code)
            logs.extend(parsed_install.extract_logs())
            if installed:
                logs.append("Package installed successfully")
                log.info("package_installed", package_id=package_id)
            else:
                logs.append("Package installation failed")
                log.warning("package_install_failed", status_code=status_code)
    except AemError as exc:
        logs.append(f"Error: {redact_error_message(exc.message)}")
        log.warning("package_operation_error", code=exc.code.value, status_code=exc.status_code)
        return PackageOutput(
            ok=False,
            status_code=exc.status_code or HTTP_STATUS_SERVER_ERROR_MIN,
            uploaded=uploaded,
            installed=installed,
            package_id=package_id,
            package_name=name,
            logs=logs,
            dry_run=False,
            timestamp=timestamp,
        )

    return PackageOutput(
        ok=uploaded and (installed if install else True),
        status_code=status_code,
        uploaded=uploaded,
        installed=installed,
        package_id=package_id,
        package_name=name,
        logs=logs,
        dry_run=False,
        timestamp=timestamp,
    )


def upload_and_install_package(
    client: AemHttpClient,
    data: bytes,
    package_name: str | None = None,
    dry_run: bool = False,
) -> PackageOutput:
    """Upload a package and install it in one operation."""
    return upload_package(
        client, data, package_name=package_name, install=True, dry_run=dry_run
    )


def list_packages(client: AemHttpClient, group: str | None = None) -> PackageListOutput:
    """List packages known to the package manager, optionally by group."""
    params = {"group": group} if group else None
    try:
        response = client.get(PACKAGE_LIST_ENDPOINT, params=params)
    except AemError as exc:
        logger.warning("package_list_failed", component="packages", code=exc.code.value)
        return PackageListOutput(ok=False)

    body = response.body if isinstance(response.body, dict) else {}
    packages = [
        PackageInfo(
            group=str(entry.get("group", "")),
            name=str(entry.get("name", "")),
            version=str(entry.get("version", "")),
            path=f"/etc/packages/{entry.get('group', '')}/{entry.get('downloadName', '')}",
        )
        for entry in body.get("results") or []
        if isinstance(entry, dict)
    ]
    return PackageListOutput(ok=True, packages=packages)


def _run_package_command(
    client: AemHttpClient, package_path: str, command: str
) -> PackageCommandOutput:
    try:
        response = client.post_form(
            f"{PACKAGE_INSTALL_ENDPOINT}{package_path}", {"cmd": command}
        )
    except AemError as exc:
        logger.warning(
            "package_command_failed",
            component="packages",
            command=command,
            code=exc.code.value,
        )
        return PackageCommandOutput(ok=False, message=exc.message)

    parsed = parse_package_response(response.body)
    logs = parsed.extract_logs()
    return PackageCommandOutput(
        ok=parsed.success_indicated(response.status_code),
        message=logs[0] if logs else "",
    )


def build_package(client: AemHttpClient, package_path: str) -> PackageCommandOutput:
    """Build an existing package definition."""
    return _run_package_command(client, package_path, "build")


def delete_package(client: AemHttpClient, package_path: str) -> PackageCommandOutput:
    """Delete a package from the package manager."""
    return _run_package_command(client, package_path, "delete")

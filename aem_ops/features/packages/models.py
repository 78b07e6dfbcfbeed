"""Models for CRX package manager responses and outputs."""

import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from aem_ops.data_model.base import OutputModel
from aem_ops.features.http.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN
from aem_ops.features.packages.constants import (
    ERROR_KEYWORDS,
    MAX_LOG_LINES,
    PACKAGE_PATH_PATTERN,
    SUCCESS_KEYWORDS,
)


_TAG_PATTERN = re.compile(r"<[^>]*>")
_PACKAGE_PATH_RE = re.compile(PACKAGE_PATH_PATTERN)


def _is_2xx(status_code: int) -> bool:
    return HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX


class StructuredPackageResponse(BaseModel):
    """Package manager response that decoded as a JSON object."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["structured"] = "structured"
    data: dict[str, Any]

    def success_indicated(self, status_code: int) -> bool:
        """True when the status is 2xx and the body reports success."""
        return _is_2xx(status_code) and self.data.get("success") is True

    def extract_id(self) -> str | None:
        """Package path assigned by the server, if any."""
        path = self.data.get("path")
        return str(path) if path else None

    def extract_logs(self) -> list[str]:
        """Log lines from ``log`` or, failing that, ``msg``."""
        log = self.data.get("log")
        if isinstance(log, list):
            return [str(line) for line in log][:MAX_LOG_LINES]
        msg = self.data.get("msg")
        return [str(msg)] if msg else []


class MarkupPackageResponse(BaseModel):
    """Package manager response returned as HTML or plain text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["markup"] = "markup"
    text: str

    def success_indicated(self, status_code: int) -> bool:
        """True when the status is 2xx and the markup reads as a success.

        Markup counts as a success when it contains a success keyword or
        contains no error keyword at all.
        """
        if not _is_2xx(status_code):
            return False
        has_success = any(keyword in self.text for keyword in SUCCESS_KEYWORDS)
        lowered = self.text.lower()
        has_error = any(keyword in lowered for keyword in ERROR_KEYWORDS)
        return has_success or not has_error

    def extract_id(self) -> str | None:
        """First ``/etc/packages/...zip`` path found in the markup."""
        match = _PACKAGE_PATH_RE.search(self.text)
        return match.group(0) if match else None

    def extract_logs(self) -> list[str]:
        """Non-empty text lines with tags stripped, capped at 100."""
        logs: list[str] = []
        for line in self.text.splitlines():
            stripped = _TAG_PATTERN.sub("", line).strip()
            if stripped:
                logs.append(stripped)
            if len(logs) >= MAX_LOG_LINES:
                break
        return logs


ParsedPackageResponse = Annotated[
    StructuredPackageResponse | MarkupPackageResponse,
    Field(discriminator="kind"),
]


class PackageOutput(OutputModel):
    """Result of a package upload and optional install."""

    ok: bool
    status_code: int = Field(ge=0, le=599)
    uploaded: bool
    installed: bool
    package_id: str | None
    package_name: str
    logs: list[str] = Field(default_factory=list)
    dry_run: bool
    timestamp: datetime


class PackageInfo(OutputModel):
    """One entry of the package manager listing."""

    group: str
    name: str
    version: str
    path: str


class PackageListOutput(OutputModel):
    """Result of listing packages."""

    ok: bool
    packages: list[PackageInfo] = Field(default_factory=list)


class PackageCommandOutput(OutputModel):
    """Result of a build or delete command."""

    ok: bool
    message: str

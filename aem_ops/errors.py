"""Error taxonomy shared by every layer of the AEM operations package."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AemErrorCode(str, Enum):
    """Stable, machine-readable error codes.

    Values are part of the output contract and must not change.
    """

    # Connection errors
    CONNECTION_FAILED = "AEM_CONNECTION_FAILED"
    TIMEOUT = "AEM_TIMEOUT"
    TLS_ERROR = "AEM_TLS_ERROR"

    # Authentication errors
    AUTHENTICATION_FAILED = "AEM_AUTH_FAILED"
    CSRF_TOKEN_FAILED = "AEM_CSRF_FAILED"
    FORBIDDEN = "AEM_FORBIDDEN"
    NOT_FOUND = "AEM_NOT_FOUND"

    # Operation errors
    REPLICATION_FAILED = "AEM_REPLICATION_FAILED"
    PACKAGE_UPLOAD_FAILED = "AEM_PACKAGE_UPLOAD_FAILED"
    PACKAGE_INSTALL_FAILED = "AEM_PACKAGE_INSTALL_FAILED"
    HEALTH_CHECK_FAILED = "AEM_HEALTH_CHECK_FAILED"
    PURGE_FAILED = "AEM_PURGE_FAILED"

    # Validation errors
    INVALID_PATH = "AEM_INVALID_PATH"
    INVALID_URL = "AEM_INVALID_URL"
    ALLOWLIST_VIOLATION = "AEM_ALLOWLIST_VIOLATION"

    NOT_IMPLEMENTED = "AEM_NOT_IMPLEMENTED"


class ErrorDetails(BaseModel):
    """Structured description of a failure, safe to log and return."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: AemErrorCode = Field(description="Machine-readable error code")
    message: str = Field(min_length=1, description="Human-readable message")
    status_code: int | None = None
    url: str | None = None
    path: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class AemError(Exception):
    """Failure of an AEM operation.

    Attributes:
        code: Taxonomy code for programmatic handling.
        status_code: HTTP status code, when a response was received.
        error_code: Low-level transport code (e.g. ``ECONNRESET``), when
            no response was received.
        url: Redacted request URL.
        detail: Redacted diagnostic text (usually a response body excerpt).
        headers: Response headers, used for ``Retry-After`` handling.
    """

    def __init__(  # noqa: PLR0913
        self,
        code: AemErrorCode,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        url: str | None = None,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.url = url
        self.detail = detail
        self.headers = headers or {}

    def to_details(self) -> ErrorDetails:
        """Convert to a structured, serializable error description."""
        context: dict[str, Any] = {}
        if self.error_code:
            context["error_code"] = self.error_code
        if self.detail:
            context["detail"] = self.detail
        return ErrorDetails(
            code=self.code,
            message=self.message,
            status_code=self.status_code,
            url=self.url,
            context=context,
        )

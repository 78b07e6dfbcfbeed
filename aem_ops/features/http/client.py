"""AEM HTTP client with authentication, CSRF handling, retries and redaction."""

import errno
import socket
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog

from aem_ops.errors import AemError, AemErrorCode
from aem_ops.features.http.constants import (
    CSRF_PROTECTED_METHODS,
    CSRF_TOKEN_ENDPOINT,
    CSRF_TOKEN_HEADER,
    CSRF_TOKEN_TTL_SECONDS,
    DEFAULT_TIMEOUT_MS,
    ERROR_BODY_PREVIEW_CHARS,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_UNAUTHORIZED,
    UPLOAD_CONTENT_TYPE,
    UPLOAD_FIELD_NAME,
)
from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.http.models import Credentials, CsrfTokenCache, HttpResponse, headers_for
from aem_ops.features.http.redact import redact_error_message, redact_headers, redact_url
from aem_ops.features.http.retry import RetryConfig, Sleeper, with_retry


logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _os_error_code(exc: BaseException) -> str | None:
    """Find a symbolic errno (e.g. ECONNRESET) in an exception chain."""
    for item in _exception_chain(exc):
        if isinstance(item, socket.gaierror):
            return "EAI_AGAIN" if item.errno == socket.EAI_AGAIN else "ENOTFOUND"
        if isinstance(item, OSError) and item.errno in errno.errorcode:
            return errno.errorcode[item.errno]
    return None


def _connect_error_code(message: str) -> str:
    lowered = message.lower()
    if "name or service not known" in lowered or "nodename" in lowered:
        return "ENOTFOUND"
    if "temporary failure in name resolution" in lowered:
        return "EAI_AGAIN"
    if "network is unreachable" in lowered:
        return "ENETUNREACH"
    if "unreachable" in lowered:
        return "EHOSTUNREACH"
    return "ECONNREFUSED"


def classify_transport_error(exc: httpx.HTTPError, url: str) -> AemError:
    """Map an httpx transport failure to the AEM error taxonomy.

    Args:
        exc: Exception raised by httpx before a response was received.
        url: Request URL (redacted before being attached).

    Returns:
        AemError carrying a low-level error code where one applies.
    """
    safe_url = redact_url(url)
    message = redact_error_message(str(exc))

    if isinstance(exc, httpx.TimeoutException):
        return AemError(
            AemErrorCode.TIMEOUT,
            f"Request timed out: {message}",
            error_code="ETIMEDOUT",
            url=safe_url,
        )

    lowered = message.lower()
    if isinstance(exc, httpx.ConnectError) and (
        "ssl" in lowered or "certificate" in lowered
    ):
        return AemError(
            AemErrorCode.TLS_ERROR,
            f"TLS handshake failed: {message}",
            url=safe_url,
        )

    if isinstance(exc, httpx.ConnectError):
        error_code = _os_error_code(exc) or _connect_error_code(message)
        return AemError(
            AemErrorCode.CONNECTION_FAILED,
            f"Connection failed: {message}",
            error_code=error_code,
            url=safe_url,
        )

    if isinstance(exc, httpx.ReadError | httpx.WriteError | httpx.RemoteProtocolError):
        return AemError(
            AemErrorCode.CONNECTION_FAILED,
            f"Connection interrupted: {message}",
            error_code=_os_error_code(exc) or "ECONNRESET",
            url=safe_url,
        )

    return AemError(
        AemErrorCode.CONNECTION_FAILED,
        f"Request failed: {message}",
        error_code=_os_error_code(exc),
        url=safe_url,
    )


def classify_http_error(
    status_code: int,
    url: str,
    body_text: str,
    headers: Mapping[str, str] | None = None,
) -> AemError:
    """Map an error status code to the AEM error taxonomy.

    Args:
        status_code: HTTP status code (>= 400).
        url: Request URL (redacted before being attached).
        body_text: Response body; redacted and truncated into ``detail``.
        headers: Response headers, kept for Retry-After handling.

    Returns:
        AemError describing the failure.
    """
    safe_url = redact_url(url)
    detail = redact_error_message(body_text[:ERROR_BODY_PREVIEW_CHARS]) or None
    kwargs: dict[str, Any] = {
        "status_code": status_code,
        "url": safe_url,
        "detail": detail,
        "headers": dict(headers or {}),
    }

    if status_code == HTTP_STATUS_UNAUTHORIZED:
        return AemError(
            AemErrorCode.AUTHENTICATION_FAILED,
            "Authentication failed. Check your credentials.",
            **kwargs,
        )
    if status_code == HTTP_STATUS_FORBIDDEN:
        return AemError(
            AemErrorCode.FORBIDDEN,
            "Access forbidden. Check user permissions.",
            **kwargs,
        )
    if status_code == HTTP_STATUS_NOT_FOUND:
        return AemError(
            AemErrorCode.NOT_FOUND,
            "Resource not found. Check the URL or path.",
            **kwargs,
        )
    if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
        return AemError(
            AemErrorCode.CONNECTION_FAILED,
            f"Server error ({status_code}). The AEM instance may be unavailable.",
            **kwargs,
        )
    return AemError(
        AemErrorCode.CONNECTION_FAILED,
        f"Request failed with status {status_code}",
        **kwargs,
    )


def parse_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON when declared, else return text."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class AemHttpClient:
    """HTTP client for AEM administrative APIs.

    Provides:
    - Basic or bearer authentication from immutable credentials
    - CSRF token fetch and caching for write requests
    - Retries with exponential backoff for transient failures
    - Status code classification into the AEM error taxonomy
    - Redaction of URLs, headers and bodies in logs and errors
    """

    def __init__(  # noqa: PLR0913
        self,
        credentials: Credentials,
        retry_config: RetryConfig | None = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.BaseTransport | None = None,
        sleep: Sleeper = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Connection and authentication settings.
            retry_config: Retry policy (defaults apply when omitted).
            default_timeout_ms: Timeout applied when a call sets none.
            transport: Optional httpx transport (used by tests).
            sleep: Blocking wait used between retries.
            clock: Source of the current time for CSRF expiry.
        """
        self._credentials = credentials
        self._retry_config = retry_config or RetryConfig()
        self._default_timeout_ms = default_timeout_ms
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._csrf_cache: CsrfTokenCache | None = None
        self._metrics = ClientMetrics.get_instance()
        self._log = logger.bind(
            component="http_client",
            base_url=redact_url(credentials.base_url),
        )

    @property
    def credentials(self) -> Credentials:
        """Credentials this client was built with."""
        return self._credentials

    @property
    def retry_config(self) -> RetryConfig:
        """Default retry policy of this client."""
        return self._retry_config

    def build_url(self, url_or_path: str) -> str:
        """Resolve a path against the base URL; absolute URLs pass through."""
        if url_or_path.startswith(("http://", "https://")):
            return url_or_path
        path = url_or_path if url_or_path.startswith("/") else f"/{url_or_path}"
        return f"{self._credentials.base_url}{path}"

    def _client(self, timeout_ms: int) -> httpx.Client:
        return httpx.Client(
            timeout=timeout_ms / 1000.0,
            verify=not self._credentials.insecure_tls,
            transport=self._transport,
        )

    def get_csrf_token(self) -> str | None:
        """Return a CSRF token for write requests, if enabled.

        A cached token is reused until it expires. Fetch failures are
        logged and swallowed; the caller proceeds without a token.

        Returns:
            Token string, or None when disabled or unavailable.
        """
        if not self._credentials.csrf_enabled:
            return None

        now = self._clock()
        if self._csrf_cache is not None and self._csrf_cache.is_valid(now):
            return self._csrf_cache.token

        try:
            response = self.request("GET", CSRF_TOKEN_ENDPOINT, skip_retry=True)
        except AemError as exc:
            # TODO: surface AEM_CSRF_FAILED instead of continuing once write
            # endpoints are confirmed to require the token.
            self._metrics.record_csrf_failure()
            self._log.warning(
                "csrf_token_fetch_failed",
                error_code=exc.code.value,
                status_code=exc.status_code,
            )
            return None

        body = response.body
        token = body.get("token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            self._metrics.record_csrf_failure()
            self._log.warning("csrf_token_missing", status_code=response.status_code)
            return None

        self._csrf_cache = CsrfTokenCache(
            token=token,
            expires_at=now + timedelta(seconds=CSRF_TOKEN_TTL_SECONDS),
        )
        self._log.debug("csrf_token_cached")
        return token

    def _on_retry(self, method: str, url: str) -> Callable[[int, Exception, int], None]:
        def observe(attempt: int, error: Exception, delay_ms: int) -> None:
            self._metrics.record_retry()
            self._log.info(
                "http_retry_scheduled",
                method=method,
                url=redact_url(url),
                attempt=attempt,
                delay_ms=delay_ms,
                error=redact_error_message(str(error)),
            )

        return observe

    def _send(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout_ms: int,
        **kwargs: Any,
    ) -> HttpResponse:
        """Issue one HTTP exchange and classify the outcome."""
        start = time.perf_counter()
        try:
            with self._client(timeout_ms) as client:
                response = client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            error = classify_transport_error(exc, url)
            self._metrics.record_failure(error.code.value)
            self._log.warning(
                "http_request_failed",
                method=method,
                url=error.url,
                error_code=error.error_code,
                code=error.code.value,
            )
            raise error from exc

        latency_ms = int((time.perf_counter() - start) * 1000)
        self._metrics.record_request(response.status_code, latency_ms)
        response_headers = dict(response.headers)

        if response.status_code >= HTTP_STATUS_BAD_REQUEST:
            error = classify_http_error(
                response.status_code, url, response.text, response_headers
            )
            self._metrics.record_failure(error.code.value)
            self._log.warning(
                "http_request_failed",
                method=method,
                url=error.url,
                status_code=response.status_code,
                code=error.code.value,
                latency_ms=latency_ms,
            )
            raise error

        self._log.debug(
            "http_request_complete",
            method=method,
            url=redact_url(url),
            status_code=response.status_code,
            latency_ms=latency_ms,
            headers=redact_headers(headers),
        )
        return HttpResponse(
            status_code=response.status_code,
            headers=response_headers,
            body=parse_body(response),
            text=response.text,
            latency_ms=latency_ms,
        )

    def request(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        form: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        timeout_ms: int | None = None,
        skip_retry: bool = False,
        retry_config: RetryConfig | None = None,
    ) -> HttpResponse:
        """Make an authenticated request with retry and error handling.

        Args:
            method: HTTP method.
            url: Path relative to the base URL, or an absolute URL.
            headers: Extra headers; override auth headers on conflict.
            json: JSON body.
            form: Form fields sent urlencoded.
            params: Query parameters.
            timeout_ms: Per-call timeout override.
            skip_retry: Issue exactly one attempt.
            retry_config: Per-call retry policy override.

        Returns:
            HttpResponse for a status below 400.

        Raises:
            AemError: On transport failure or a status of 400 or above,
                after retries are exhausted.
        """
        method = method.upper()
        full_url = self.build_url(url)
        request_headers = {**headers_for(self._credentials.auth), **(headers or {})}

        if method in CSRF_PROTECTED_METHODS:
            token = self.get_csrf_token()
            if token:
                request_headers[CSRF_TOKEN_HEADER] = token

        send_kwargs: dict[str, Any] = {}
        if json is not None:
            send_kwargs["json"] = json
        if form is not None:
            send_kwargs["data"] = dict(form)
        if params is not None:
            send_kwargs["params"] = dict(params)

        timeout = timeout_ms if timeout_ms is not None else self._default_timeout_ms

        def attempt() -> HttpResponse:
            return self._send(method, full_url, request_headers, timeout, **send_kwargs)

        if skip_retry:
            return attempt()

        return with_retry(
            attempt,
            retry_config or self._retry_config,
            on_retry=self._on_retry(method, full_url),
            sleep=self._sleep,
        )

    def get(self, url: str, **kwargs: Any) -> HttpResponse:
        """Make a GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, body: Any = None, **kwargs: Any) -> HttpResponse:
        """Make a POST request with a JSON body."""
        return self.request("POST", url, json=body, **kwargs)

    def post_form(self, url: str, form: Mapping[str, Any], **kwargs: Any) -> HttpResponse:
        """Make a POST request with urlencoded form data."""
        return self.request("POST", url, form=form, **kwargs)

    def upload_file(  # noqa: PLR0913
        self,
        url: str,
        data: bytes,
        file_name: str,
        additional_fields: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> HttpResponse:
        """Upload a binary payload as multipart/form-data.

        Uploads are not assumed idempotent and are never retried.

        Args:
            url: Path relative to the base URL, or an absolute URL.
            data: File content.
            file_name: File name reported to the server.
            additional_fields: Extra string form fields.
            params: Query parameters.

        Returns:
            HttpResponse for a status below 400.

        Raises:
            AemError: On transport failure or a status of 400 or above.
        """
        full_url = self.build_url(url)
        request_headers = headers_for(self._credentials.auth)

        token = self.get_csrf_token()
        if token:
            request_headers[CSRF_TOKEN_HEADER] = token

        send_kwargs: dict[str, Any] = {
            "files": {UPLOAD_FIELD_NAME: (file_name, data, UPLOAD_CONTENT_TYPE)},
        }
        if additional_fields:
            send_kwargs["data"] = dict(additional_fields)
        if params is not None:
            send_kwargs["params"] = dict(params)

        self._log.info(
            "package_upload_started",
            url=redact_url(full_url),
            file_name=file_name,
            bytes=len(data),
        )
        return self._send(
            "POST", full_url, request_headers, self._default_timeout_ms, **send_kwargs
        )

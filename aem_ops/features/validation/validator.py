"""Input validation for AEM content paths, URLs and allowlists.

All validators are total: they return a ValidationResult and never raise.
"""

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from aem_ops.errors import AemErrorCode
from aem_ops.features.validation.models import ValidationResult


COMMON_PATH_PREFIXES = (
    "/content/",
    "/apps/",
    "/etc/",
    "/conf/",
    "/libs/",
    "/var/",
    "/home/",
    "/tmp/",
    "/oak:",
)

UNCOMMON_PATH_NOTE = "Path is outside the common AEM repository roots"

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_LIST_SEPARATORS = re.compile(r"[\n,;]+")


def validate_aem_path(path: str) -> ValidationResult:
    """Validate an AEM content path.

    Args:
        path: Repository path such as ``/content/site/page``.

    Returns:
        Passing result, possibly with an informational note for paths
        outside the common roots; failing result with INVALID_PATH otherwise.
    """
    if not path or not isinstance(path, str):
        return ValidationResult.fail(
            AemErrorCode.INVALID_PATH, "Path must be a non-empty string", path=path
        )

    if not path.startswith("/"):
        return ValidationResult.fail(
            AemErrorCode.INVALID_PATH, "Path must start with /", path=path
        )

    if ".." in path:
        return ValidationResult.fail(
            AemErrorCode.INVALID_PATH,
            "Path must not contain path traversal sequences (..)",
            path=path,
        )

    if _CONTROL_CHARS.search(path):
        return ValidationResult.fail(
            AemErrorCode.INVALID_PATH,
            "Path must not contain control characters",
            path=path,
        )

    if not path.startswith(COMMON_PATH_PREFIXES):
        return ValidationResult.ok(UNCOMMON_PATH_NOTE)

    return ValidationResult.ok()


def validate_aem_paths(paths: Iterable[str]) -> ValidationResult:
    """Validate several paths, stopping at the first invalid one."""
    items = list(paths)
    if not items:
        return ValidationResult.fail(
            AemErrorCode.INVALID_PATH, "At least one path is required"
        )
    for path in items:
        result = validate_aem_path(path)
        if not result.valid:
            return result
    return ValidationResult.ok()


def validate_url(
    url: str,
    require_https: bool = False,
    allow_localhost: bool = True,
) -> ValidationResult:
    """Validate an absolute http(s) URL.

    Args:
        url: URL to check.
        require_https: Reject plain http.
        allow_localhost: Accept loopback hosts.

    Returns:
        Validation result with INVALID_URL on failure.
    """
    if not url or not isinstance(url, str):
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "URL must be a non-empty string", url=url
        )

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        _ = parts.port
    except ValueError:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "Invalid URL format", url=url
        )

    if not parts.scheme or not hostname:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "Invalid URL format", url=url
        )

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https"):
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "URL must use HTTP or HTTPS protocol", url=url
        )

    if require_https and scheme != "https":
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "URL must use HTTPS", url=url
        )

    is_loopback = hostname in LOOPBACK_HOSTS or hostname.endswith(".localhost")
    if is_loopback and not allow_localhost:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "Localhost URLs are not allowed", url=url
        )

    return ValidationResult.ok()


def validate_url_against_allowlist(url: str, allowlist_pattern: str) -> ValidationResult:
    """Validate a URL and require it to fully match an allowlist regex.

    An empty pattern allows every well-formed URL.

    Args:
        url: URL to check.
        allowlist_pattern: Regular expression the whole URL must match.

    Returns:
        Validation result; ALLOWLIST_VIOLATION when the URL does not match,
        INVALID_URL when the URL or the pattern is malformed.
    """
    url_result = validate_url(url)
    if not url_result.valid:
        return url_result

    if not allowlist_pattern or not allowlist_pattern.strip():
        return ValidationResult.ok()

    try:
        regex = re.compile(allowlist_pattern)
    except re.error:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL,
            f"Invalid allowlist regex pattern: {allowlist_pattern}",
            pattern=allowlist_pattern,
        )

    if regex.fullmatch(url) is None:
        return ValidationResult.fail(
            AemErrorCode.ALLOWLIST_VIOLATION,
            f"URL does not match allowlist pattern: {allowlist_pattern}",
            url=url,
            pattern=allowlist_pattern,
        )

    return ValidationResult.ok()


def validate_urls_against_allowlist(
    urls: Iterable[str], allowlist_pattern: str
) -> ValidationResult:
    """Validate several URLs, stopping at the first invalid one."""
    items = list(urls)
    if not items:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL, "At least one URL is required"
        )
    for url in items:
        result = validate_url_against_allowlist(url, allowlist_pattern)
        if not result.valid:
            return result
    return ValidationResult.ok()


def validate_base_url(base_url: str) -> ValidationResult:
    """Validate a credential base URL (no query string or fragment)."""
    result = validate_url(base_url)
    if not result.valid:
        return result

    parts = urlsplit(base_url)
    if parts.query or parts.fragment:
        return ValidationResult.fail(
            AemErrorCode.INVALID_URL,
            "Base URL should not contain query parameters or hash",
            url=base_url,
        )

    return ValidationResult.ok()


def normalize_base_url(base_url: str) -> str:
    """Strip trailing slashes from a base URL."""
    return base_url.rstrip("/")


def sanitize_path(path: str) -> str:
    """Normalize a path: leading slash, single separators, no trailing slash."""
    sanitized = path if path.startswith("/") else f"/{path}"
    sanitized = re.sub(r"/+", "/", sanitized)
    if len(sanitized) > 1:
        sanitized = sanitized.rstrip("/")
    return sanitized


def parse_path_list(text: str) -> list[str]:
    """Split free text on newlines, commas or semicolons into trimmed items.

    Args:
        text: Multi-line or delimited input.

    Returns:
        Non-empty, trimmed entries in input order.
    """
    if not text or not isinstance(text, str):
        return []
    return [part.strip() for part in _LIST_SEPARATORS.split(text) if part.strip()]

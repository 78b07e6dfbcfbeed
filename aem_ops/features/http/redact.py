"""Redaction utilities for headers, payloads, URLs and error text.

Every function returns a new value; inputs are never mutated.
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote, urlsplit, urlunsplit


# Header names that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-auth-token",
        "x-api-key",
        "api-key",
        "apikey",
        "x-csrf-token",
        "csrf-token",
        "x-access-token",
        "access-token",
        "bearer",
        "x-bearer-token",
        "proxy-authorization",
        "www-authenticate",
    }
)

# Substrings that mark a field name as sensitive (compared lowercased)
SENSITIVE_FIELDS = (
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "access_token",
    "accesstoken",
    "refresh_token",
    "refreshtoken",
    "bearer",
    "bearertoken",
    "bearer_token",
    "client_secret",
    "clientsecret",
    "private_key",
    "privatekey",
    "auth",
    "authentication",
    "credential",
    "credentials",
)

REDACTED_VALUE = "[REDACTED]"

MAX_REDACTION_DEPTH = 10

_FALLBACK_URL_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"password=[^&]+", re.IGNORECASE), f"password={REDACTED_VALUE}"),
    (re.compile(r"token=[^&]+", re.IGNORECASE), f"token={REDACTED_VALUE}"),
    (re.compile(r"apikey=[^&]+", re.IGNORECASE), f"apikey={REDACTED_VALUE}"),
    (re.compile(r":[^:@/]+@"), f":{REDACTED_VALUE}@"),
]

_ERROR_MESSAGE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"Basic\s+[A-Za-z0-9+/=]+", re.IGNORECASE), f"Basic {REDACTED_VALUE}"),
    (re.compile(r"Bearer\s+[A-Za-z0-9._\-]+", re.IGNORECASE), f"Bearer {REDACTED_VALUE}"),
    (
        re.compile(r"\"(password|token|secret|apiKey)\"\s*:\s*\"[^\"]+\"", re.IGNORECASE),
        rf'"\1": "{REDACTED_VALUE}"',
    ),
]


def is_sensitive_key(key: str) -> bool:
    """Check if a header or field name should be redacted.

    Args:
        key: Header or field name.

    Returns:
        True if the name is a sensitive header or contains a sensitive
        field substring.
    """
    lower_key = key.lower()
    if lower_key in SENSITIVE_HEADERS:
        return True
    return any(field in lower_key for field in SENSITIVE_FIELDS)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    Args:
        headers: Original headers.

    Returns:
        New dictionary with sensitive values replaced by [REDACTED].
    """
    return {
        key: REDACTED_VALUE if is_sensitive_key(key) else value
        for key, value in headers.items()
    }


def redact_object(obj: Any, depth: int = 0) -> Any:
    """Redact sensitive values from nested mappings and sequences.

    Recursion stops after MAX_REDACTION_DEPTH levels; deeper values are
    returned unchanged.

    Args:
        obj: Value to redact.
        depth: Current recursion depth.

    Returns:
        Redacted copy of ``obj``.
    """
    if depth > MAX_REDACTION_DEPTH or obj is None:
        return obj

    if isinstance(obj, Mapping):
        redacted: dict[Any, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str) and is_sensitive_key(key):
                redacted[key] = REDACTED_VALUE
            else:
                redacted[key] = redact_object(value, depth + 1)
        return redacted

    if isinstance(obj, list | tuple):
        return type(obj)(redact_object(item, depth + 1) for item in obj)

    return obj


def _redact_query(query: str) -> str:
    parts = []
    for piece in query.split("&"):
        key, sep, _ = piece.partition("=")
        if sep and is_sensitive_key(unquote(key)):
            parts.append(f"{key}={REDACTED_VALUE}")
        else:
            parts.append(piece)
    return "&".join(parts)


def redact_url(url: str) -> str:
    """Redact sensitive query parameters and embedded passwords from a URL.

    Falls back to pattern substitution when the URL cannot be parsed.

    Args:
        url: URL that may carry credentials.

    Returns:
        URL with sensitive values replaced by [REDACTED].
    """
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(url)
        netloc = parts.netloc
        if parts.password is not None:
            host = netloc.rsplit("@", 1)[1]
            netloc = f"{parts.username or ''}:{REDACTED_VALUE}@{host}"
        query = _redact_query(parts.query) if parts.query else parts.query
        return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
    except ValueError:
        result = url
        for pattern, replacement in _FALLBACK_URL_PATTERNS:
            result = pattern.sub(replacement, result)
        return result


def redact_error_message(message: str) -> str:
    """Redact auth-shaped substrings and JSON secrets from free text.

    Args:
        message: Error text, possibly containing a response body.

    Returns:
        Text with credentials replaced by [REDACTED].
    """
    result = message
    for pattern, replacement in _ERROR_MESSAGE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def create_log_safe_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Build a log-safe copy of request options.

    Args:
        options: Request options with optional ``headers`` and ``url``.

    Returns:
        Copy with deep redaction, header redaction and URL redaction applied.
    """
    safe: dict[str, Any] = redact_object(options)
    headers = safe.get("headers")
    if isinstance(headers, Mapping):
        safe["headers"] = redact_headers(headers)
    url = safe.get("url")
    if isinstance(url, str):
        safe["url"] = redact_url(url)
    return safe

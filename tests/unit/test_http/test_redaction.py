"""Unit tests for redaction of headers, objects, URLs and error text."""

import pytest

from aem_ops.features.http.redact import (
    MAX_REDACTION_DEPTH,
    REDACTED_VALUE,
    create_log_safe_options,
    is_sensitive_key,
    redact_error_message,
    redact_headers,
    redact_object,
    redact_url,
)


class TestIsSensitiveKey:
    """Tests for sensitive key detection."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "key",
        ["Authorization", "cookie", "X-API-Key", "CSRF-Token", "Proxy-Authorization"],
    )
    def test_sensitive_headers(self, key: str) -> None:
        """Test that well-known credential headers are sensitive."""
        assert is_sensitive_key(key) is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "key", ["userPassword", "clientSecret", "apiKey", "refresh_token", "privateKey"]
    )
    def test_sensitive_field_substrings(self, key: str) -> None:
        """Test that field names containing sensitive substrings match."""
        assert is_sensitive_key(key) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["Content-Type", "path", "cmd", "status"])
    def test_plain_keys(self, key: str) -> None:
        """Test that ordinary keys are not sensitive."""
        assert is_sensitive_key(key) is False


class TestRedactHeaders:
    """Tests for header redaction."""

    @pytest.mark.unit
    def test_redacts_authorization_only(self) -> None:
        """Test that Authorization is replaced and other headers are kept."""
        result = redact_headers({"Authorization": "Basic abc", "X-Foo": "bar"})

        assert result == {"Authorization": REDACTED_VALUE, "X-Foo": "bar"}

    @pytest.mark.unit
    def test_does_not_mutate_input(self) -> None:
        """Test that the original mapping is unchanged."""
        headers = {"Cookie": "session=1"}

        redact_headers(headers)

        assert headers == {"Cookie": "session=1"}


class TestRedactObject:
    """Tests for deep object redaction."""

    @pytest.mark.unit
    def test_nested_mappings_and_lists(self) -> None:
        """Test that sensitive keys are redacted at any nesting level."""
        payload = {
            "user": "admin",
            "config": {"password": "p", "items": [{"token": "t", "name": "n"}]},
        }

        result = redact_object(payload)

        assert result["user"] == "admin"
        assert result["config"]["password"] == REDACTED_VALUE
        assert result["config"]["items"][0]["token"] == REDACTED_VALUE
        assert result["config"]["items"][0]["name"] == "n"
        assert payload["config"]["password"] == "p"

    @pytest.mark.unit
    def test_scalars_pass_through(self) -> None:
        """Test that scalar values are returned unchanged."""
        assert redact_object("text") == "text"
        assert redact_object(42) == 42
        assert redact_object(None) is None

    @pytest.mark.unit
    def test_recursion_is_depth_limited(self) -> None:
        """Test that values beyond the depth limit are left untouched."""
        deep: dict = {"password": "hidden"}
        for _ in range(MAX_REDACTION_DEPTH + 2):
            deep = {"level": deep}

        result = redact_object(deep)

        node = result
        for _ in range(MAX_REDACTION_DEPTH + 2):
            node = node["level"]
        assert node == {"password": "hidden"}


class TestRedactUrl:
    """Tests for URL redaction."""

    @pytest.mark.unit
    def test_hides_password_and_token_parameter(self) -> None:
        """Test that embedded passwords and token parameters are hidden."""
        result = redact_url("https://u:p@h/x?token=t")

        assert ":p@" not in result
        assert "token=t" not in result
        assert result == f"https://u:{REDACTED_VALUE}@h/x?token={REDACTED_VALUE}"

    @pytest.mark.unit
    def test_keeps_plain_parameters(self) -> None:
        """Test that non-sensitive query parameters survive."""
        result = redact_url("https://h/x?cmd=upload&apikey=k")

        assert result == f"https://h/x?cmd=upload&apikey={REDACTED_VALUE}"

    @pytest.mark.unit
    def test_fallback_for_unparseable_url(self) -> None:
        """Test that regex fallback still redacts non-absolute strings."""
        result = redact_url("not a url password=secret&token=abc")

        assert "secret" not in result
        assert "abc" not in result

    @pytest.mark.unit
    def test_url_without_secrets_is_unchanged(self) -> None:
        """Test that a clean URL is returned as-is."""
        url = "http://localhost:4502/system/health"

        assert redact_url(url) == url


class TestRedactErrorMessage:
    """Tests for free-text error redaction."""

    @pytest.mark.unit
    def test_redacts_basic_and_bearer(self) -> None:
        """Test that Basic and Bearer credentials are hidden."""
        message = "sent Basic YWRtaW46YWRtaW4= then Bearer eyJhbGciOi.abc-def"

        result = redact_error_message(message)

        assert "YWRtaW46YWRtaW4=" not in result
        assert "eyJhbGciOi" not in result
        assert f"Basic {REDACTED_VALUE}" in result
        assert f"Bearer {REDACTED_VALUE}" in result

    @pytest.mark.unit
    def test_redacts_json_fields(self) -> None:
        """Test that JSON password/token fields in bodies are hidden."""
        body = '{"user": "admin", "password": "hunter2", "token": "xyz"}'

        result = redact_error_message(body)

        assert "hunter2" not in result
        assert "xyz" not in result
        assert '"user": "admin"' in result


class TestCreateLogSafeOptions:
    """Tests for request option redaction."""

    @pytest.mark.unit
    def test_combines_all_redactions(self) -> None:
        """Test headers, URL and nested body fields are all redacted."""
        options = {
            "url": "https://u:p@aem/x?token=t",
            "headers": {"Authorization": "Basic abc", "Accept": "json"},
            "body": {"password": "p", "path": "/content"},
        }

        result = create_log_safe_options(options)

        assert result["headers"]["Authorization"] == REDACTED_VALUE
        assert result["headers"]["Accept"] == "json"
        assert result["body"]["password"] == REDACTED_VALUE
        assert result["body"]["path"] == "/content"
        assert "token=t" not in result["url"]

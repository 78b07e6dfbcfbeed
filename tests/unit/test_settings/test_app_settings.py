"""Unit tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from aem_ops.features.http.models import BasicAuth, BearerAuth
from aem_ops.settings.app import AppSettings


AEM_VARIABLES = (
    "AEM_BASE_URL",
    "AEM_TARGET",
    "AEM_AUTH_METHOD",
    "AEM_USERNAME",
    "AEM_PASSWORD",
    "AEM_BEARER_TOKEN",
    "AEM_INSECURE_TLS",
    "AEM_CSRF_ENABLED",
    "AEM_TIMEOUT_MS",
    "AEM_MAX_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove AEM variables inherited from the host environment."""
    for name in AEM_VARIABLES:
        monkeypatch.delenv(name, raising=False)


class TestAppSettings:
    """Tests for AppSettings."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        """Test defaults target a local AEM 6.5 author."""
        settings = AppSettings(_env_file=None)

        assert settings.base_url == "http://localhost:4502"
        assert settings.target == "aem65"
        assert settings.auth_method == "basic"
        assert settings.csrf_enabled is True
        assert settings.max_retries == 3

    @pytest.mark.unit
    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from AEM_* variables."""
        monkeypatch.setenv("AEM_BASE_URL", "https://author.example.com/")
        monkeypatch.setenv("AEM_USERNAME", "deployer")
        monkeypatch.setenv("AEM_PASSWORD", "s3cret")
        monkeypatch.setenv("AEM_CSRF_ENABLED", "false")
        monkeypatch.setenv("AEM_TIMEOUT_MS", "5000")

        settings = AppSettings(_env_file=None)
        credentials = settings.credentials()

        assert credentials.base_url == "https://author.example.com"
        assert credentials.csrf_enabled is False
        assert credentials.auth == BasicAuth(username="deployer", password="s3cret")
        assert settings.timeout_ms == 5000

    @pytest.mark.unit
    def test_bearer_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test bearer auth uses the token variable."""
        monkeypatch.setenv("AEM_AUTH_METHOD", "bearer")
        monkeypatch.setenv("AEM_BEARER_TOKEN", "tok-123")

        credentials = AppSettings(_env_file=None).credentials()

        assert credentials.auth == BearerAuth(token="tok-123")

    @pytest.mark.unit
    def test_retry_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the retry count flows into the retry policy."""
        monkeypatch.setenv("AEM_MAX_RETRIES", "5")

        assert AppSettings(_env_file=None).retry_config().max_retries == 5

    @pytest.mark.unit
    def test_password_not_in_repr(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test secrets are hidden from repr."""
        monkeypatch.setenv("AEM_PASSWORD", "s3cret")

        assert "s3cret" not in repr(AppSettings(_env_file=None))

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("AEM_TARGET", "aem-cloud"),
            ("AEM_AUTH_METHOD", "oauth"),
            ("AEM_MAX_RETRIES", "11"),
            ("AEM_TIMEOUT_MS", "0"),
        ],
    )
    def test_invalid_values(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        """Test invalid values are rejected at load time."""
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            AppSettings(_env_file=None)

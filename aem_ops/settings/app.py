"""Application settings powered by Pydantic BaseSettings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aem_ops.features.http.constants import DEFAULT_TIMEOUT_MS
from aem_ops.features.http.models import AuthMethod, Credentials
from aem_ops.features.http.retry import RetryConfig


DeploymentTarget = Literal["aem65", "cloud"]


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    base_url: str = Field(
        default="http://localhost:4502", validation_alias="AEM_BASE_URL"
    )
    target: DeploymentTarget = Field(default="aem65", validation_alias="AEM_TARGET")
    auth_method: AuthMethod = Field(default="basic", validation_alias="AEM_AUTH_METHOD")
    username: str | None = Field(default=None, validation_alias="AEM_USERNAME")
    password: str | None = Field(
        default=None, validation_alias="AEM_PASSWORD", repr=False
    )
    bearer_token: str | None = Field(
        default=None, validation_alias="AEM_BEARER_TOKEN", repr=False
    )
    insecure_tls: bool = Field(default=False, validation_alias="AEM_INSECURE_TLS")
    csrf_enabled: bool = Field(default=True, validation_alias="AEM_CSRF_ENABLED")
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS, ge=1, validation_alias="AEM_TIMEOUT_MS"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, validation_alias="AEM_MAX_RETRIES"
    )

    def credentials(self) -> Credentials:
        """Build client credentials from the environment."""
        return Credentials(
            base_url=self.base_url,
            auth_method=self.auth_method,
            username=self.username,
            password=self.password,
            bearer_token=self.bearer_token,
            insecure_tls=self.insecure_tls,
            csrf_enabled=self.csrf_enabled,
        )

    def retry_config(self) -> RetryConfig:
        """Build the default retry policy."""
        return RetryConfig(max_retries=self.max_retries)


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()

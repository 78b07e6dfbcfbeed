"""Data models for the AEM HTTP client layer."""

import base64
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aem_ops.features.http.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN


AuthMethod = Literal["basic", "bearer"]


class BasicAuth(BaseModel):
    """Username/password authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: str = ""
    password: str = Field(default="", repr=False)


class BearerAuth(BaseModel):
    """Bearer token authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    token: str = Field(default="", repr=False)


AuthScheme = BasicAuth | BearerAuth


def headers_for(scheme: AuthScheme) -> dict[str, str]:
    """Build the Authorization header for an auth scheme.

    Args:
        scheme: Basic or bearer authentication.

    Returns:
        Header dictionary containing ``Authorization``.
    """
    if isinstance(scheme, BasicAuth):
        raw = f"{scheme.username}:{scheme.password}".encode()
        return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
    return {"Authorization": f"Bearer {scheme.token}"}


class Credentials(BaseModel):
    """Connection settings for one AEM instance.

    Immutable: supplied once when a client is built and read-only after.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: Annotated[str, Field(min_length=1, description="AEM author base URL")]
    auth_method: AuthMethod = "basic"
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    bearer_token: str | None = Field(default=None, repr=False)
    insecure_tls: bool = Field(
        default=False,
        description="Skip TLS verification (non-production endpoints only)",
    )
    csrf_enabled: bool = Field(
        default=False, description="Fetch and send a CSRF token on writes"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def auth(self) -> AuthScheme:
        """Resolve the configured authentication scheme."""
        if self.auth_method == "bearer":
            return BearerAuth(token=self.bearer_token or "")
        return BasicAuth(username=self.username or "", password=self.password or "")


class HttpResponse(BaseModel):
    """Successful response returned by the AEM client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=100, le=599)
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    text: str = ""
    latency_ms: int = Field(default=0, ge=0)

    @property
    def is_success(self) -> bool:
        """Check for a 2xx status code."""
        return HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX


class CsrfTokenCache(BaseModel):
    """Cached anti-forgery token with its absolute expiry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Check whether the token is still usable at ``now``."""
        return now < self.expires_at

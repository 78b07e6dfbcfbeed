"""Unit tests for CSRF token negotiation and caching."""

from datetime import timedelta
from unittest.mock import Mock

import httpx
import pytest

from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.constants import CSRF_TOKEN_ENDPOINT, CSRF_TOKEN_HEADER
from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.http.retry import RetryConfig
from tests.helpers.aem import FakeAem, make_client, make_credentials
from tests.helpers.time import FIXED_NOW


def csrf_fake(token_response: httpx.Response) -> FakeAem:
    """Fake AEM with a token endpoint and a write endpoint."""
    return (
        FakeAem()
        .add("GET", CSRF_TOKEN_ENDPOINT, token_response)
        .add("POST", "/bin/replicate.json", httpx.Response(200, json={}))
        .add("GET", "/system/health", httpx.Response(200, json={}))
    )


class TestCsrfToken:
    """Tests for CSRF token handling on write requests."""

    @pytest.mark.unit
    def test_token_attached_to_post(self) -> None:
        """Test POST requests carry the fetched token."""
        fake = csrf_fake(httpx.Response(200, json={"token": "abc"}))
        client = make_client(fake, csrf_enabled=True)

        client.post_form("/bin/replicate.json", {"cmd": "Activate"})

        post = fake.calls("POST", "/bin/replicate.json")[0]
        assert post.headers[CSRF_TOKEN_HEADER] == "abc"

    @pytest.mark.unit
    def test_get_does_not_fetch_token(self) -> None:
        """Test read requests never negotiate a token."""
        fake = csrf_fake(httpx.Response(200, json={"token": "abc"}))

        make_client(fake, csrf_enabled=True).get("/system/health")

        assert fake.calls("GET", CSRF_TOKEN_ENDPOINT) == []

    @pytest.mark.unit
    def test_disabled_skips_fetch(self) -> None:
        """Test no token is fetched when CSRF is disabled."""
        fake = csrf_fake(httpx.Response(200, json={"token": "abc"}))

        make_client(fake, csrf_enabled=False).post_form("/bin/replicate.json", {})

        assert fake.calls("GET", CSRF_TOKEN_ENDPOINT) == []
        assert CSRF_TOKEN_HEADER not in fake.requests[0].headers

    @pytest.mark.unit
    def test_token_cached_until_expiry(self) -> None:
        """Test the token is reused for five minutes, then refreshed."""
        fake = csrf_fake(httpx.Response(200, json={"token": "abc"}))
        now = [FIXED_NOW]
        client = AemHttpClient(
            make_credentials(csrf_enabled=True),
            retry_config=RetryConfig(jitter=False),
            transport=fake.transport,
            sleep=Mock(),
            clock=lambda: now[0],
        )

        client.post_form("/bin/replicate.json", {})
        now[0] = FIXED_NOW + timedelta(minutes=4, seconds=59)
        client.post_form("/bin/replicate.json", {})
        assert len(fake.calls("GET", CSRF_TOKEN_ENDPOINT)) == 1

        now[0] = FIXED_NOW + timedelta(minutes=5)
        client.post_form("/bin/replicate.json", {})
        assert len(fake.calls("GET", CSRF_TOKEN_ENDPOINT)) == 2

    @pytest.mark.unit
    def test_fetch_failure_is_swallowed(self) -> None:
        """Test a failed token fetch lets the write proceed without a token."""
        fake = csrf_fake(httpx.Response(503))
        sleep = Mock()
        client = make_client(fake, sleep=sleep, csrf_enabled=True)

        response = client.post_form("/bin/replicate.json", {})

        assert response.status_code == 200
        assert len(fake.calls("GET", CSRF_TOKEN_ENDPOINT)) == 1
        assert CSRF_TOKEN_HEADER not in fake.calls("POST", "/bin/replicate.json")[0].headers
        assert ClientMetrics.get_instance().csrf_fetch_failures_total == 1
        sleep.assert_not_called()

    @pytest.mark.unit
    def test_missing_token_field(self) -> None:
        """Test a body without a token yields no header and no cache."""
        fake = csrf_fake(httpx.Response(200, json={"other": "x"}))
        client = make_client(fake, csrf_enabled=True)

        assert client.get_csrf_token() is None
        assert client.get_csrf_token() is None
        assert len(fake.calls("GET", CSRF_TOKEN_ENDPOINT)) == 2

"""Integration tests for the AEM adapters against a local HTTP server."""

import json
import threading
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest

from aem_ops.features.health.checker import perform_health_check
from aem_ops.features.http.client import AemHttpClient
from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.http.models import Credentials
from aem_ops.features.http.retry import RetryConfig
from aem_ops.features.packages.manager import upload_and_install_package
from aem_ops.features.replication.replicator import activate_paths


CSRF_TOKEN = "csrf-token-1"
PACKAGE_PATH = "/etc/packages/my_packages/site.zip"
FORBIDDEN_PATH = "/content/site/locked"


def get_server_url(server: HTTPServer) -> str:
    """Get the base URL for a test server."""
    host, port = server.server_address[0], server.server_address[1]
    if isinstance(host, bytes):
        host = host.decode("utf-8")
    return f"http://{host}:{port}"


class FakeAemHandler(BaseHTTPRequestHandler):
    """Minimal AEM author serving the endpoints the adapters call."""

    # Class-level state shared across requests
    requests: list[dict[str, Any]] = []
    health_failures: int = 0

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Suppress log messages during tests."""

    def _record(self, body: bytes = b"") -> str:
        parts = urlsplit(self.path)
        FakeAemHandler.requests.append(
            {
                "method": self.command,
                "path": parts.path,
                "query": parse_qs(parts.query),
                "headers": self.headers,
                "body": body,
            }
        )
        return parts.path

    def _send_json(self, status: int, payload: dict[str, object]) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self) -> None:  # noqa: N802
        """Serve the CSRF token and the health endpoint."""
        path = self._record()
        if path == "/libs/granite/csrf/token.json":
            self._send_json(200, {"token": CSRF_TOKEN})
        elif path == "/system/health":
            if FakeAemHandler.health_failures > 0:
                FakeAemHandler.health_failures -= 1
                self._send_json(503, {"status": "unavailable"})
            else:
                self._send_json(200, {"status": "ok"})
        else:
            self._send_json(404, {"error": "not found"})

    def do_POST(self) -> None:  # noqa: N802
        """Serve replication and package manager writes."""
        length = int(self.headers.get("Content-Length", "0"))
        body = self.rfile.read(length)
        path = self._record(body)

        if path == "/bin/replicate.json":
            form = parse_qs(body.decode("utf-8"))
            if form.get("path") == [FORBIDDEN_PATH]:
                self._send_json(403, {"error": "forbidden"})
            else:
                self._send_json(200, {"message": f"Replicated {form['path'][0]}"})
        elif path == "/crx/packmgr/service.jsp":
            self._send_json(200, {"success": True, "msg": "Package uploaded", "path": PACKAGE_PATH})
        elif path == f"/crx/packmgr/service/script.html{PACKAGE_PATH}":
            self._send_json(200, {"success": True, "msg": "Package installed"})
        else:
            self._send_json(404, {"error": "not found"})


@pytest.fixture
def aem_server() -> Generator[HTTPServer]:
    """Start a local fake AEM author."""
    FakeAemHandler.requests = []
    FakeAemHandler.health_failures = 0
    server = HTTPServer(("127.0.0.1", 0), FakeAemHandler)
    thread = threading.Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    yield server
    server.shutdown()


@pytest.fixture
def sleep() -> Mock:
    """Record backoff waits instead of sleeping."""
    return Mock()


@pytest.fixture
def client(aem_server: HTTPServer, sleep: Mock) -> AemHttpClient:
    """Create a CSRF-enabled client for the local server."""
    credentials = Credentials(
        base_url=get_server_url(aem_server),
        username="admin",
        password="admin",
        csrf_enabled=True,
    )
    return AemHttpClient(
        credentials,
        retry_config=RetryConfig(max_retries=2, initial_delay_ms=10, jitter=False),
        sleep=sleep,
    )


def requests_to(path: str) -> list[dict[str, Any]]:
    """Requests the fake server received for a path."""
    return [r for r in FakeAemHandler.requests if r["path"] == path]


@pytest.mark.integration
class TestReplicationAgainstServer:
    """Replication over real sockets."""

    def test_batches_with_shared_csrf_token(self, client: AemHttpClient, sleep: Mock) -> None:
        """Test three paths in batches of two reuse one CSRF token."""
        output = activate_paths(
            client,
            ["/content/site/en", "/content/site/de", "/content/site/fr"],
            batch_size=2,
            throttle_ms=50,
            sleep=sleep,
        )

        assert output.ok is True
        assert output.total_paths == 3
        assert output.results[0].message == "Replicated /content/site/en"
        assert len(requests_to("/libs/granite/csrf/token.json")) == 1

        writes = requests_to("/bin/replicate.json")
        assert len(writes) == 3
        assert all(w["headers"].get("CSRF-Token") == CSRF_TOKEN for w in writes)
        assert all(w["headers"]["Authorization"].startswith("Basic ") for w in writes)
        sleep.assert_called_once_with(0.05)

    def test_forbidden_path_is_reported(self, client: AemHttpClient) -> None:
        """Test a rejected path fails without retries while others succeed."""
        output = activate_paths(
            client, ["/content/site/en", FORBIDDEN_PATH], throttle_ms=0
        )

        assert output.ok is False
        assert output.success_count == 1
        failed = output.results[1]
        assert failed.status_code == 403
        assert failed.message == (
            "Replication failed: Access forbidden. Check user permissions."
        )
        assert len(requests_to("/bin/replicate.json")) == 2


@pytest.mark.integration
class TestHealthAgainstServer:
    """Health probes over real sockets."""

    def test_retries_through_503(self, client: AemHttpClient, sleep: Mock) -> None:
        """Test transient 503s are retried with backoff."""
        FakeAemHandler.health_failures = 2

        output = perform_health_check(client)

        assert output.ok is True
        assert output.notes == ["System status: ok"]
        assert len(requests_to("/system/health")) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.01, 0.02]
        assert ClientMetrics.get_instance().http_retry_total == 2

    def test_retries_exhausted(self, client: AemHttpClient) -> None:
        """Test the probe reports the last 503 once retries run out."""
        FakeAemHandler.health_failures = 10

        output = perform_health_check(client)

        assert output.ok is False
        assert output.status_code == 503
        assert len(requests_to("/system/health")) == 3


@pytest.mark.integration
class TestPackageAgainstServer:
    """Package upload and install over real sockets."""

    def test_upload_and_install(self, client: AemHttpClient) -> None:
        """Test multipart upload followed by install."""
        output = upload_and_install_package(client, b"PK\x03\x04zip-bytes", "site")

        assert output.ok is True
        assert output.package_id == PACKAGE_PATH
        assert output.logs[-1] == "Package installed successfully"

        upload = requests_to("/crx/packmgr/service.jsp")[0]
        assert upload["query"] == {"cmd": ["upload"], "force": ["true"]}
        assert b'filename="site.zip"' in upload["body"]
        assert b"PK\x03\x04zip-bytes" in upload["body"]
        assert upload["headers"].get("CSRF-Token") == CSRF_TOKEN

        install = requests_to(f"/crx/packmgr/service/script.html{PACKAGE_PATH}")[0]
        assert install["body"] == b"cmd=install"

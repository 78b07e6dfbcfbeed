"""Unit tests for HTTP client metrics."""

import httpx
import pytest

from aem_ops.errors import AemError
from aem_ops.features.http.metrics import ClientMetrics
from tests.helpers.aem import FakeAem, make_client


class TestClientMetrics:
    """Tests for the metrics singleton."""

    @pytest.mark.unit
    def test_singleton_and_reset(self) -> None:
        """Test get_instance returns one object until reset."""
        first = ClientMetrics.get_instance()

        assert ClientMetrics.get_instance() is first
        ClientMetrics.reset()
        assert ClientMetrics.get_instance() is not first

    @pytest.mark.unit
    def test_record_and_average(self) -> None:
        """Test request counts and average latency."""
        metrics = ClientMetrics.get_instance()

        metrics.record_request(200, 10)
        metrics.record_request(200, 30)
        metrics.record_request(404, 20)

        assert metrics.http_requests_total == {200: 2, 404: 1}
        assert metrics.avg_latency_ms == 20.0

    @pytest.mark.unit
    def test_avg_latency_without_requests(self) -> None:
        """Test average latency is zero before any request."""
        assert ClientMetrics.get_instance().avg_latency_ms == 0.0

    @pytest.mark.unit
    def test_client_records_failures(self) -> None:
        """Test the client counts failures by taxonomy code."""
        fake = FakeAem().add("GET", "/x", httpx.Response(401))

        with pytest.raises(AemError):
            make_client(fake).get("/x")

        data = ClientMetrics.get_instance().to_dict()
        assert data["http_failures_total"] == {"AEM_AUTH_FAILED": 1}
        assert data["http_requests_total"] == {401: 1}
        assert data["http_request_count"] == 1

"""
Unit tests for Gateway Resource Client.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch
import json

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.adapters.resource_client import FailureKind, ResourceClient
from service_gateway.app.domain.models import BicycleRecord, BrandRecord
from shared.metrics import MetricsCollector

BICYCLE_URL = "http://localhost:4000"


def _response(status_code, body, url=f"{BICYCLE_URL}/42"):
    content = body if isinstance(body, (str, bytes)) else json.dumps(body)
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request("GET", url)
    )


class TestResourceClient:
    """Test cases for ResourceClient."""

    @pytest.fixture
    def metrics(self):
        """Gateway metrics collector with its own registry."""
        return MetricsCollector("gateway")

    @pytest.fixture
    def bicycle_client(self, metrics):
        """Create bicycle ResourceClient instance."""
        return ResourceClient("bicycle", BICYCLE_URL, BicycleRecord, metrics=metrics)

    @pytest.mark.asyncio
    async def test_fetch_success(self, bicycle_client):
        """Test successful entity fetch."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_get = AsyncMock(return_value=_response(200, {"id": "42", "color": "red"}))
            mock_client.return_value.__aenter__.return_value.get = mock_get

            outcome = await bicycle_client.fetch("42")

            assert outcome.ok
            assert outcome.upstream == "bicycle"
            assert outcome.record == BicycleRecord(id="42", color="red")
            mock_get.assert_awaited_once_with(f"{BICYCLE_URL}/42")

    @pytest.mark.asyncio
    async def test_fetch_coerces_numeric_id(self, bicycle_client):
        """Numeric ids from the upstream become string keys."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(200, {"id": 42, "color": "red", "wheels": 2})
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.ok
            assert outcome.record.id == "42"

    @pytest.mark.asyncio
    async def test_fetch_brand_without_key_echo(self, metrics):
        """Brand records only need a name."""
        brand_client = ResourceClient("brand", "http://localhost:5000/", BrandRecord, metrics=metrics)

        with patch('httpx.AsyncClient') as mock_client:
            mock_get = AsyncMock(return_value=_response(200, {"name": "Acme"}))
            mock_client.return_value.__aenter__.return_value.get = mock_get

            outcome = await brand_client.fetch("42")

            assert outcome.ok
            assert outcome.record.name == "Acme"
            mock_get.assert_awaited_once_with("http://localhost:5000/42")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,expected", [
        (404, FailureKind.NOT_FOUND),
        (400, FailureKind.BAD_REQUEST),
        (500, FailureKind.OTHER),
        (503, FailureKind.OTHER),
        (401, FailureKind.OTHER),
        (302, FailureKind.OTHER),
    ])
    async def test_fetch_classifies_status(self, bicycle_client, status_code, expected):
        """Upstream statuses map onto the three classifications."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(status_code, {"error": "nope"})
            )

            outcome = await bicycle_client.fetch("42")

            assert not outcome.ok
            assert outcome.record is None
            assert outcome.failure is expected
            assert outcome.status_code == status_code

    @pytest.mark.asyncio
    async def test_fetch_connection_refused(self, bicycle_client):
        """Transport errors are unclassified failures."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.failure is FailureKind.OTHER
            assert outcome.status_code is None
            assert "Connection refused" in outcome.detail

    @pytest.mark.asyncio
    async def test_fetch_timeout(self, bicycle_client):
        """Timeouts are unclassified failures."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ReadTimeout("Request timeout")
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.failure is FailureKind.OTHER
            assert outcome.detail.startswith("timeout")

    @pytest.mark.asyncio
    async def test_fetch_malformed_json(self, bicycle_client):
        """A body that is not JSON is an unclassified failure."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(200, "<html>oops</html>")
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.failure is FailureKind.OTHER
            assert outcome.status_code == 200

    @pytest.mark.asyncio
    async def test_fetch_missing_fields(self, bicycle_client):
        """A body missing record fields is an unclassified failure."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(200, {"id": "42"})
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.failure is FailureKind.OTHER

    @pytest.mark.asyncio
    async def test_fetch_non_object_body(self, bicycle_client):
        """A JSON list is not a record."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(200, [{"id": "42", "color": "red"}])
            )

            outcome = await bicycle_client.fetch("42")

            assert outcome.failure is FailureKind.OTHER

    def test_url_for_keeps_key_in_one_segment(self, bicycle_client):
        """Keys are percent-encoded into a single path segment."""
        assert bicycle_client.url_for("a b/c") == f"{BICYCLE_URL}/a%20b%2Fc"
        assert bicycle_client.url_for("42") == f"{BICYCLE_URL}/42"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [".", ".."])
    async def test_fetch_dot_segment_key_never_leaves_collection(self, key):
        """A dot-segment key is refused instead of resolving to the parent resource."""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, json={"id": "root", "color": "none"})

        client = ResourceClient(
            "bicycle",
            "http://host/api/bicycles",
            BicycleRecord,
            transport=httpx.MockTransport(handler)
        )

        outcome = await client.fetch(key)

        assert outcome.failure is FailureKind.BAD_REQUEST
        assert outcome.record is None
        assert requested == []

    def test_timeouts_applied(self):
        """Connect and read timeouts come from construction."""
        client = ResourceClient("bicycle", BICYCLE_URL, BicycleRecord, connect_timeout=1.5, read_timeout=3.0)
        assert client.timeout.connect == 1.5
        assert client.timeout.read == 3.0

    @pytest.mark.asyncio
    async def test_fetch_records_metrics(self, bicycle_client, metrics):
        """Each fetch is counted by upstream and outcome."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=[
                    _response(200, {"id": "42", "color": "red"}),
                    _response(404, {"error": "not found"}),
                    _response(404, {"error": "not found"}),
                ]
            )

            for _ in range(3):
                await bicycle_client.fetch("42")

        assert metrics.registry.get_sample_value(
            "upstream_fetch_total", {"upstream": "bicycle", "outcome": "success"}
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "upstream_fetch_total", {"upstream": "bicycle", "outcome": "not_found"}
        ) == 2.0
        assert metrics.registry.get_sample_value(
            "upstream_fetch_duration_seconds_count", {"upstream": "bicycle"}
        ) == 3.0

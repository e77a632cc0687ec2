"""Unit tests for the Overpass API client."""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from nearby_bars.api import OverpassAPIClient, build_query
from nearby_bars.exceptions import UpstreamError
from nearby_bars.models import OverpassElement

ENDPOINT = "https://overpass.example/api/interpreter"


def overpass_response(status_code: int = 200, **kwargs) -> httpx.Response:
    """Build an httpx response bound to a request so raise_for_status works."""
    return httpx.Response(
        status_code, request=httpx.Request("POST", ENDPOINT), **kwargs
    )


SAMPLE_BODY = {
    "version": 0.6,
    "generator": "Overpass API",
    "elements": [
        {
            "type": "node",
            "id": 101,
            "lat": 45.001,
            "lon": -93.001,
            "tags": {"amenity": "pub", "name": "The Anchor"},
        },
        {
            "type": "way",
            "id": 202,
            "center": {"lat": 45.002, "lon": -93.002},
            "tags": {"amenity": "biergarten", "name": "Garden"},
        },
    ],
}


@pytest.fixture
def sleep_mock():
    return AsyncMock()


@pytest.fixture
def api_client(sleep_mock):
    """Create Overpass client with a recorded, instant sleep."""
    client = OverpassAPIClient(endpoint=ENDPOINT, sleep=sleep_mock)
    yield client


class TestBuildQuery:
    """Test Overpass QL generation."""

    def test_query_covers_all_amenities_and_geometries(self):
        query = build_query(45.0, -93.0, 2000)

        assert query.startswith("[out:json][timeout:15];")
        assert query.rstrip().endswith("out center;")
        for amenity in ("bar", "pub", "nightclub", "biergarten"):
            assert f'node["amenity"="{amenity}"](around:2000,45.0,-93.0);' in query
            assert f'way["amenity"="{amenity}"](around:2000,45.0,-93.0);' in query

    def test_query_timeout_is_configurable(self):
        assert "[timeout:30]" in build_query(1.0, 2.0, 500, timeout_seconds=30)


class TestOverpassAPIClient:
    """Unit tests for OverpassAPIClient retry behavior and parsing."""

    @pytest.mark.asyncio
    async def test_query_pois_success(self, api_client, sleep_mock):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(json=SAMPLE_BODY)

            elements = await api_client.query_pois(45.0, -93.0, 2000)

        assert len(elements) == 2
        assert all(isinstance(e, OverpassElement) for e in elements)
        assert elements[0].coordinates() == (45.001, -93.001)
        assert elements[1].coordinates() == (45.002, -93.002)

        mock_post.assert_called_once()
        call_args = mock_post.call_args
        assert call_args.args[0] == ENDPOINT
        assert call_args.kwargs["data"] == {"data": build_query(45.0, -93.0, 2000)}
        sleep_mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, api_client, sleep_mock):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                overpass_response(503),
                overpass_response(json=SAMPLE_BODY),
            ]

            elements = await api_client.query_pois(45.0, -93.0, 2000)

        assert len(elements) == 2
        assert mock_post.call_count == 2
        sleep_mock.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, api_client, sleep_mock):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                httpx.ConnectError("connection refused"),
                httpx.ReadTimeout("timed out"),
                overpass_response(json=SAMPLE_BODY),
            ]

            elements = await api_client.query_pois(45.0, -93.0, 2000)

        assert len(elements) == 2
        assert mock_post.call_count == 3
        assert [c.args[0] for c in sleep_mock.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_two_retries(self, api_client, sleep_mock):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(504)

            with pytest.raises(UpstreamError) as exc_info:
                await api_client.query_pois(45.0, -93.0, 2000)

        assert exc_info.value.status_code == 504
        assert mock_post.call_count == 3
        # No delay after the final attempt
        assert [c.args[0] for c in sleep_mock.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_final_transport_error_raises_upstream_error(self, api_client):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ConnectError("connection refused")

            with pytest.raises(UpstreamError):
                await api_client.query_pois(45.0, -93.0, 2000)

        assert mock_post.call_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self, sleep_mock):
        client = OverpassAPIClient(endpoint=ENDPOINT, max_retries=0, sleep=sleep_mock)
        with patch.object(client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(500)

            with pytest.raises(UpstreamError):
                await client.query_pois(45.0, -93.0, 2000)

        assert mock_post.call_count == 1
        sleep_mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_json_raises_upstream_error(self, api_client):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(content=b"<html>busy</html>")

            with pytest.raises(UpstreamError):
                await api_client.query_pois(45.0, -93.0, 2000)

    @pytest.mark.asyncio
    async def test_malformed_elements_are_skipped(self, api_client):
        body = {
            "elements": [
                {"type": "node", "id": "not-a-number", "tags": {"name": "Broken"}},
                {"type": "node", "id": 7, "lat": 1.0, "lon": 2.0, "tags": {"name": "Ok"}},
            ]
        }
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(json=body)

            elements = await api_client.query_pois(1.0, 2.0, 500)

        assert [e.id for e in elements] == [7]

    @pytest.mark.asyncio
    async def test_missing_elements_key_returns_empty(self, api_client):
        with patch.object(api_client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = overpass_response(json={"version": 0.6})

            elements = await api_client.query_pois(1.0, 2.0, 500)

        assert elements == []

    @pytest.mark.asyncio
    async def test_close(self, api_client):
        await api_client.close()
        assert api_client.client.is_closed

    def test_backoff_is_linear(self, api_client):
        assert [api_client.backoff_delay(i) for i in range(3)] == [1.0, 2.0, 3.0]

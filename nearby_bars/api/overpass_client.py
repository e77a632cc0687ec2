"""Overpass API client with async HTTP support and bounded retries."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from nearby_bars.exceptions import UpstreamError
from nearby_bars.metrics import (
    OVERPASS_API_CALLS_TOTAL,
    OVERPASS_API_CALL_DURATION_SECONDS,
    OVERPASS_API_ERRORS_TOTAL,
    OVERPASS_API_RETRIES_TOTAL,
)
from nearby_bars.models import OverpassElement, OverpassResponse

logger = logging.getLogger(__name__)

DEFAULT_OVERPASS_ENDPOINT = "https://overpass-api.de/api/interpreter"

# OSM amenity values queried; each is requested for nodes and ways
BAR_AMENITIES = ("bar", "pub", "nightclub", "biergarten")
GEOMETRIES = ("node", "way")


def build_query(lat: float, lon: float, radius: float, timeout_seconds: int = 15) -> str:
    """Build the Overpass QL query for drinking venues around a point.

    ``out center`` makes ways report a centroid instead of their node list.
    """
    around = f"(around:{radius},{lat},{lon})"
    filters = "\n".join(
        f'  {geometry}["amenity"="{amenity}"]{around};'
        for amenity in BAR_AMENITIES
        for geometry in GEOMETRIES
    )
    return f"[out:json][timeout:{timeout_seconds}];\n(\n{filters}\n);\nout center;"


class OverpassAPIClient:
    """Async HTTP client for the Overpass POI query API."""

    def __init__(
        self,
        endpoint: str = DEFAULT_OVERPASS_ENDPOINT,
        query_timeout_seconds: int = 15,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        http_timeout_seconds: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """Initialize Overpass API client.

        Args:
            endpoint: Overpass interpreter URL
            query_timeout_seconds: Server-side query time limit sent in the query
            max_retries: Additional attempts after the first one fails
            backoff_seconds: Base delay; attempt N waits N * backoff_seconds
            http_timeout_seconds: Transport timeout for a single attempt
            sleep: Awaitable sleep used between attempts (defaults to asyncio.sleep)
        """
        self.endpoint = endpoint
        self.query_timeout_seconds = query_timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep or asyncio.sleep

        self.client = httpx.AsyncClient(
            timeout=http_timeout_seconds,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )

    async def close(self):
        """Close the HTTP client and clean up resources."""
        await self.client.aclose()

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (0-based): 1s, 2s, ..."""
        return (attempt + 1) * self.backoff_seconds

    async def _post_query(self, query: str) -> httpx.Response:
        """Send one query attempt, recording metrics. Raises on any failure."""
        start_time = time.perf_counter()
        try:
            response = await self.client.post(
                self.endpoint,
                data={"data": query},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError:
            OVERPASS_API_ERRORS_TOTAL.labels(error_type="http_error").inc()
            OVERPASS_API_CALLS_TOTAL.labels(status="error").inc()
            raise
        except httpx.TimeoutException:
            OVERPASS_API_ERRORS_TOTAL.labels(error_type="timeout").inc()
            OVERPASS_API_CALLS_TOTAL.labels(status="error").inc()
            raise
        except httpx.RequestError:
            OVERPASS_API_ERRORS_TOTAL.labels(error_type="connection_error").inc()
            OVERPASS_API_CALLS_TOTAL.labels(status="error").inc()
            raise
        finally:
            OVERPASS_API_CALL_DURATION_SECONDS.observe(time.perf_counter() - start_time)

        OVERPASS_API_CALLS_TOTAL.labels(status="success").inc()
        return response

    async def query_pois(self, lat: float, lon: float, radius: float) -> list[OverpassElement]:
        """Fetch bars, pubs, nightclubs and beer gardens within ``radius`` meters.

        Makes up to ``1 + max_retries`` attempts, waiting 1s, 2s, ... between
        them. The last attempt's failure is raised without further delay.

        Returns:
            Parsed elements; records that fail validation are skipped

        Raises:
            UpstreamError: If every attempt failed or the body is not valid JSON
        """
        query = build_query(lat, lon, radius, self.query_timeout_seconds)
        attempts = self.max_retries + 1

        logger.info(
            f"[OverpassAPIClient] Querying POIs near {lat:.6f},{lon:.6f} "
            f"within {radius:.0f}m"
        )

        response: Optional[httpx.Response] = None
        for attempt in range(attempts):
            try:
                response = await self._post_query(query)
                break
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.warning(
                    f"[OverpassAPIClient] Attempt {attempt + 1}/{attempts} "
                    f"failed with HTTP {status_code}"
                )
                if attempt == attempts - 1:
                    raise UpstreamError(
                        f"Overpass API error: {status_code}", status_code=status_code
                    ) from e
            except httpx.RequestError as e:
                logger.warning(
                    f"[OverpassAPIClient] Attempt {attempt + 1}/{attempts} "
                    f"failed: {type(e).__name__}: {e}"
                )
                if attempt == attempts - 1:
                    raise UpstreamError(f"Overpass API unreachable: {e}") from e

            delay = self.backoff_delay(attempt)
            OVERPASS_API_RETRIES_TOTAL.inc()
            logger.info(f"[OverpassAPIClient] Retrying in {delay:.1f}s")
            await self._sleep(delay)

        try:
            payload = OverpassResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            OVERPASS_API_ERRORS_TOTAL.labels(error_type="invalid_json").inc()
            raise UpstreamError(f"Overpass API returned an invalid body: {e}") from e

        elements: list[OverpassElement] = []
        for raw in payload.elements:
            try:
                elements.append(OverpassElement.model_validate(raw))
            except PydanticValidationError as e:
                logger.warning(f"[OverpassAPIClient] Skipping malformed element {raw.get('id')}: {e}")

        logger.info(f"[OverpassAPIClient] Received {len(elements)} elements")
        return elements

"""HTTP middleware: CORS headers and Prometheus request metrics."""
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from nearby_bars.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_RESPONSE_SIZE_BYTES,
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
}

UNMATCHED_ROUTE = "/{unmatched}"


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Allow cross-origin calls from any origin.

    Preflight (OPTIONS) requests are answered here with an empty body and
    never reach the routes or the rate limiter.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


def route_template(request: Request) -> str:
    """Path template of the matching route, so labels stay low-cardinality."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Record count, latency, concurrency and response size per route."""

    # Scrapes and health checks would drown out real traffic
    SKIP_PATHS = frozenset({"/metrics", "/health", "/ping"})

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        labels = {"method": request.method, "endpoint": route_template(request)}
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(**labels)
        in_progress.inc()
        started = time.perf_counter()

        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            in_progress.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(
                time.perf_counter() - started
            )
            status_code = response.status_code if response is not None else 500
            HTTP_REQUESTS_TOTAL.labels(**labels, status_code=str(status_code)).inc()
            if response is not None:
                self._observe_size(response, labels)

    @staticmethod
    def _observe_size(response: Response, labels: dict[str, str]) -> None:
        content_length = response.headers.get("content-length", "")
        if content_length.isdigit():
            HTTP_RESPONSE_SIZE_BYTES.labels(**labels).observe(int(content_length))

"""FastAPI routes for the nearby bars lookup."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from nearby_bars.exceptions import RateLimitError, ValidationError
from nearby_bars.models import ErrorResponse, NearbyBarsResponse, RateLimitDecision
from nearby_bars.services.rate_limiter import client_key_from_headers

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Unable to fetch nearby bars. Please try again later."

# Create router at module level
router = APIRouter()

# Global handler reference - set during startup
_bars_handler = None


def set_bars_handler(handler):
    """Set the nearby bars handler instance (called during startup)."""
    global _bars_handler
    _bars_handler = handler
    logger.info("[BarsRouter] Handler injected successfully")


def get_handler():
    """Get the nearby bars handler, raising error if not initialized."""
    if _bars_handler is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _bars_handler


def rate_limit_headers(decision: Optional[RateLimitDecision]) -> dict[str, str]:
    """X-RateLimit-* headers describing the client's current window."""
    if decision is None:
        return {}
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_in_seconds),
    }


def _error(status_code: int, message: str, headers: dict[str, str]) -> JSONResponse:
    body = ErrorResponse(error=message).model_dump()
    return JSONResponse(status_code=status_code, content=body, headers=headers)


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid body or coordinates"},
    429: {"model": ErrorResponse, "description": "Client exceeded its request quota"},
    500: {"model": ErrorResponse, "description": "Overpass and the cache both failed"},
}


@router.post(
    "/v1/bars/nearby",
    response_model=NearbyBarsResponse,
    responses=ERROR_RESPONSES,
    summary="Get nearby bars",
    description=(
        "Bars, pubs, nightclubs and beer gardens within a radius (meters) of a "
        "location, sorted by walking distance"
    ),
)
@router.post("/fetch-nearby-bars", include_in_schema=False)
async def fetch_nearby_bars(request: Request) -> JSONResponse:
    """Get nearby bars for a JSON body of ``{latitude, longitude, radius?}``."""
    handler = get_handler()

    # Every request counts against the quota, malformed ones included
    client_key = client_key_from_headers(request.headers)
    try:
        decision = handler.check_rate_limit(client_key)
    except RateLimitError as e:
        headers = rate_limit_headers(e.decision)
        headers["Retry-After"] = str(e.decision.reset_in_seconds)
        return _error(429, str(e), headers)

    headers = rate_limit_headers(decision)

    try:
        query = handler.validate_query(await request.json())
    except ValueError:
        # Body is not JSON at all
        return _error(400, "Request body must be a JSON object", headers)
    except ValidationError as e:
        return _error(400, str(e), headers)

    try:
        logger.info(f"[BarsRouter] Lookup from client {client_key}")
        result = await handler.find_nearby(query)
    except Exception as e:
        # Detail stays in the server log
        logger.error(f"[BarsRouter] Error fetching bars: {type(e).__name__}: {e}")
        return _error(500, GENERIC_ERROR_MESSAGE, headers)

    body = NearbyBarsResponse.from_result(result).model_dump(by_alias=True, mode="json")
    return JSONResponse(content=body, headers=headers)


@router.get(
    "/ping",
    summary="Health check",
    description="Health check endpoint",
)
def ping() -> dict[str, str]:
    """Health check endpoint."""
    handler = get_handler()
    return handler.ping()

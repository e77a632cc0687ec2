"""Prometheus metrics definitions for nearby-bars-server.

Exposes metrics for:
1. HTTP API metrics (requests, latency, errors)
2. Overpass API client metrics (calls, latency, errors, retries)
3. Lookup metrics (rate limiting, cache fallback, cache writes)
"""
from prometheus_client import Counter, Histogram, Gauge, Info

# =============================================================================
# HTTP API METRICS
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

HTTP_RESPONSE_SIZE_BYTES = Histogram(
    "http_response_size_bytes",
    "HTTP response body size in bytes",
    ["method", "endpoint"],
    buckets=(100, 500, 1000, 5000, 10000, 50000, 100000, 500000),
)

# =============================================================================
# OVERPASS API CLIENT METRICS
# =============================================================================

# One increment per attempt, so retries are visible
OVERPASS_API_CALLS_TOTAL = Counter(
    "overpass_api_calls_total",
    "Total number of Overpass API call attempts",
    ["status"],  # status: success, error
)

OVERPASS_API_CALL_DURATION_SECONDS = Histogram(
    "overpass_api_call_duration_seconds",
    "Overpass API call latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0),
)

OVERPASS_API_ERRORS_TOTAL = Counter(
    "overpass_api_errors_total",
    "Total number of Overpass API errors",
    ["error_type"],  # error_type: http_error, timeout, connection_error, invalid_json
)

OVERPASS_API_RETRIES_TOTAL = Counter(
    "overpass_api_retries_total",
    "Total number of Overpass API retries after a failed attempt",
)

# =============================================================================
# LOOKUP METRICS
# =============================================================================

RATE_LIMIT_REJECTIONS_TOTAL = Counter(
    "rate_limit_rejections_total",
    "Total number of requests rejected by the rate limiter",
)

RATE_LIMIT_ACTIVE_CLIENTS = Gauge(
    "rate_limit_active_clients",
    "Number of clients with an open rate limit window",
)

LOOKUP_RESULTS_TOTAL = Counter(
    "lookup_results_total",
    "Results of nearby bar lookups",
    ["source"],  # source: live, cache, error
)

LOOKUP_VENUES_RETURNED = Histogram(
    "lookup_venues_returned",
    "Number of venues returned per lookup",
    ["source"],
    buckets=(0, 1, 5, 10, 25, 50, 100, 250, 500),
)

CACHE_UPSERT_ERRORS_TOTAL = Counter(
    "cache_upsert_errors_total",
    "Total number of failed venue cache writes",
)

CACHE_VENUES_UPSERTED_TOTAL = Counter(
    "cache_venues_upserted_total",
    "Total number of venues written to the cache",
)

# =============================================================================
# APPLICATION INFO
# =============================================================================

APP_INFO = Info(
    "nearby_bars",
    "nearby-bars-server application information",
)

APP_INFO.info({
    "version": "1.0.0",
    "description": "Nearby bars lookup with walking distances",
})

"""Fixed-window, per-client request throttle kept in process memory."""
import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Optional

from nearby_bars.metrics import RATE_LIMIT_ACTIVE_CLIENTS
from nearby_bars.models import RateLimitDecision

logger = logging.getLogger(__name__)

# Checked in order; the first populated header identifies the client
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")
UNKNOWN_CLIENT = "unknown"


def client_key_from_headers(headers: Mapping[str, str]) -> str:
    """Derive the rate limit key for a request from proxy headers.

    Only the first address of a forwarded-for chain is used. Header lookups
    are case-insensitive when ``headers`` is (e.g. Starlette ``Headers``);
    plain dicts must use lowercase keys.
    """
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if candidate:
            return candidate
    return UNKNOWN_CLIENT


@dataclass
class _Window:
    count: int
    expires_at_ms: float
    lock: threading.Lock


class FixedWindowRateLimiter:
    """Allow at most ``max_requests`` per client in each window of ``window_ms``.

    State lives only in this instance, so a restart resets every counter.
    Each client's read-check-increment runs under that client's own lock;
    the registry lock only guards window lookup, creation and purging.
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_requests: int = 10,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize rate limiter.

        Args:
            window_ms: Window length in milliseconds
            max_requests: Requests allowed per client per window
            clock: Returns the current time in seconds (defaults to time.monotonic)
        """
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")

        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or time.monotonic
        self._windows: dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def check(self, client_key: str) -> RateLimitDecision:
        """Count one request for ``client_key`` and decide whether it may proceed."""
        now = self._now_ms()

        with self._registry_lock:
            self._purge_expired(now)
            window = self._windows.get(client_key)
            if window is None:
                window = _Window(
                    count=0,
                    expires_at_ms=now + self.window_ms,
                    lock=threading.Lock(),
                )
                self._windows[client_key] = window
            RATE_LIMIT_ACTIVE_CLIENTS.set(len(self._windows))

        with window.lock:
            if now >= window.expires_at_ms:
                # Window lapsed between the purge and acquiring the lock
                window.count = 0
                window.expires_at_ms = now + self.window_ms

            reset_in_ms = int(window.expires_at_ms - now)

            if window.count >= self.max_requests:
                logger.debug(
                    f"[RateLimiter] Rejected {client_key}: "
                    f"{window.count}/{self.max_requests}, reset in {reset_in_ms}ms"
                )
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    reset_in_ms=reset_in_ms,
                    limit=self.max_requests,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - window.count,
                reset_in_ms=reset_in_ms,
                limit=self.max_requests,
            )

    def _purge_expired(self, now: float) -> None:
        """Drop windows that have elapsed. Caller holds the registry lock."""
        expired = [key for key, w in self._windows.items() if now >= w.expires_at_ms]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"[RateLimiter] Purged {len(expired)} expired windows")

    def active_clients(self) -> int:
        with self._registry_lock:
            return len(self._windows)

    def reset(self) -> None:
        """Forget every client window."""
        with self._registry_lock:
            self._windows.clear()
            RATE_LIMIT_ACTIVE_CLIENTS.set(0)
        logger.info("[RateLimiter] State cleared")

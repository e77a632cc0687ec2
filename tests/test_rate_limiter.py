"""Unit tests for the fixed-window rate limiter."""
import threading

import pytest

from nearby_bars.services import FixedWindowRateLimiter, client_key_from_headers


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    """Fresh limiter per test: 10 requests per 60s window."""
    return FixedWindowRateLimiter(window_ms=60_000, max_requests=10, clock=clock)


class TestFixedWindowRateLimiter:
    """Test fixed-window counting, rejection and window reset."""

    def test_first_request_opens_window(self, limiter):
        decision = limiter.check("1.2.3.4")

        assert decision.allowed is True
        assert decision.remaining == 9
        assert decision.reset_in_ms == 60_000
        assert decision.limit == 10
        assert decision.reset_in_seconds == 60

    def test_ten_allowed_eleventh_rejected(self, limiter, clock):
        decisions = []
        for _ in range(10):
            decisions.append(limiter.check("1.2.3.4"))
            clock.advance(1)

        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == list(range(9, -1, -1))

        rejected = limiter.check("1.2.3.4")
        assert rejected.allowed is False
        assert rejected.remaining == 0
        assert rejected.reset_in_ms == 50_000
        assert rejected.reset_in_seconds > 0

    def test_rejections_do_not_extend_window(self, limiter, clock):
        for _ in range(10):
            limiter.check("client")
        limiter.check("client")
        clock.advance(30)
        decision = limiter.check("client")

        assert decision.allowed is False
        assert decision.reset_in_ms == 30_000

    def test_window_reset_after_expiry(self, limiter, clock):
        for _ in range(11):
            limiter.check("client")

        clock.advance(60)
        decision = limiter.check("client")

        assert decision.allowed is True
        assert decision.remaining == 9
        assert decision.reset_in_ms == 60_000

    def test_clients_are_independent(self, limiter):
        for _ in range(10):
            limiter.check("a")

        assert limiter.check("a").allowed is False
        assert limiter.check("b").allowed is True

    def test_expired_entries_are_purged(self, limiter, clock):
        limiter.check("a")
        limiter.check("b")
        assert limiter.active_clients() == 2

        clock.advance(61)
        limiter.check("c")

        assert limiter.active_clients() == 1

    def test_reset_clears_state(self, limiter):
        for _ in range(10):
            limiter.check("a")

        limiter.reset()

        assert limiter.active_clients() == 0
        assert limiter.check("a").allowed is True

    def test_concurrent_checks_never_exceed_cap(self, clock):
        limiter = FixedWindowRateLimiter(window_ms=60_000, max_requests=10, clock=clock)
        results = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(20)

        def worker():
            barrier.wait()
            decision = limiter.check("shared")
            with results_lock:
                results.append(decision.allowed)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 10
        assert results.count(False) == 10

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(window_ms=0)
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(max_requests=0)


class TestClientKeyFromHeaders:
    """Test client identity precedence."""

    def test_forwarded_for_first_address(self):
        headers = {
            "x-forwarded-for": " 203.0.113.7 , 10.0.0.1, 10.0.0.2",
            "x-real-ip": "198.51.100.1",
        }
        assert client_key_from_headers(headers) == "203.0.113.7"

    def test_real_ip_when_no_forwarded_for(self):
        headers = {"x-real-ip": " 198.51.100.1 ", "cf-connecting-ip": "192.0.2.9"}
        assert client_key_from_headers(headers) == "198.51.100.1"

    def test_cf_connecting_ip(self):
        assert client_key_from_headers({"cf-connecting-ip": "192.0.2.9"}) == "192.0.2.9"

    def test_empty_headers_are_skipped(self):
        headers = {"x-forwarded-for": "", "x-real-ip": "198.51.100.1"}
        assert client_key_from_headers(headers) == "198.51.100.1"

    def test_unknown_when_no_headers(self):
        assert client_key_from_headers({}) == "unknown"

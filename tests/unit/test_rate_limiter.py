"""Unit tests for the per-service rate limiter."""

from __future__ import annotations

import threading

import pytest

from contracts.rate_limit import RateLimitConfig
from runtime.rate_limiter import (
    DEFAULT_GENERIC_LIMIT,
    RateLimiter,
    get_rate_limit,
    upsert_rate_limit,
)


# ── helpers ─────────────────────────────────────────────────────────


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _config(max_actions: int = 2, window_minutes: int = 1) -> RateLimitConfig:
    return RateLimitConfig(service="svc", max_actions=max_actions, window_minutes=window_minutes)


# ── get_rate_limit / upsert ─────────────────────────────────────────


class TestGetRateLimit:
    def test_builtin_defaults(self) -> None:
        assert get_rate_limit("slack").max_actions == 30
        assert get_rate_limit("slack").window_minutes == 15
        assert get_rate_limit("gmail").max_actions == 10

    def test_unknown_service_uses_generic(self) -> None:
        assert get_rate_limit("nonexistent") == DEFAULT_GENERIC_LIMIT

    def test_override_wins(self) -> None:
        override = RateLimitConfig(service="slack", max_actions=3, window_minutes=5)
        assert get_rate_limit("slack", [override]) == override


class TestUpsertRateLimit:
    def test_appends_new_service(self) -> None:
        result = upsert_rate_limit([], "jira", 7, 10)
        assert [(c.service, c.max_actions) for c in result] == [("jira", 7)]

    def test_replaces_in_place(self) -> None:
        existing = [
            RateLimitConfig(service="a", max_actions=1, window_minutes=1),
            RateLimitConfig(service="b", max_actions=1, window_minutes=1),
        ]
        result = upsert_rate_limit(existing, "a", 9, 2)
        assert [c.service for c in result] == ["a", "b"]
        assert result[0].max_actions == 9

    @pytest.mark.parametrize("max_actions, window", [(0, 5), (5, 0), (-1, 5)])
    def test_rejects_non_positive(self, max_actions: int, window: int) -> None:
        with pytest.raises(ValueError):
            upsert_rate_limit([], "a", max_actions, window)


# ── RateLimiter ─────────────────────────────────────────────────────


class TestRateLimiterCheck:
    def test_allows_until_exhausted(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        results = [limiter.check("svc", _config()) for _ in range(3)]
        assert [r.allowed for r in results] == [True, True, False]
        assert [r.remaining for r in results] == [1, 0, 0]
        assert all(r.limit == 2 for r in results)

    def test_reset_restores_quota(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        for _ in range(3):
            limiter.check("svc", _config())
        limiter.reset("svc")
        result = limiter.check("svc", _config())
        assert result.allowed is True
        assert result.remaining == 1

    def test_window_expiry_opens_new_window(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(3):
            limiter.check("svc", _config())
        clock.advance(59)
        assert limiter.check("svc", _config()).allowed is False
        clock.advance(1)
        result = limiter.check("svc", _config())
        assert result.allowed is True
        assert result.remaining == 1

    def test_services_are_independent(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        cfg = _config(max_actions=1)
        assert limiter.check("a", cfg).allowed is True
        assert limiter.check("a", cfg).allowed is False
        assert limiter.check("b", cfg).allowed is True

    def test_denied_check_still_counts(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        for _ in range(4):
            limiter.check("svc", _config())
        assert limiter.state("svc").count == 4

    def test_reset_all(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("a", _config())
        limiter.check("b", _config())
        limiter.reset_all()
        assert limiter.state("a") is None
        assert limiter.state("b") is None


class TestRateLimiterBump:
    def test_bump_returns_quota(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("svc", _config())
        limiter.check("svc", _config())
        limiter.bump("svc", 1)
        result = limiter.check("svc", _config())
        assert result.allowed is True
        assert result.remaining == 0

    def test_bump_floors_at_zero(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("svc", _config())
        limiter.bump("svc", 10)
        assert limiter.state("svc").count == 0

    def test_negative_bump_consumes(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("svc", _config())
        limiter.bump("svc", -1)
        assert limiter.check("svc", _config()).allowed is False

    def test_bump_unknown_service_is_noop(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.bump("never-seen", 1)
        assert limiter.state("never-seen") is None

    def test_state_is_a_copy(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("svc", _config())
        snapshot = limiter.state("svc")
        snapshot.count = 99
        assert limiter.state("svc").count == 1


class TestRateLimiterConcurrency:
    def test_no_lost_increments(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        cfg = RateLimitConfig(service="svc", max_actions=50, window_minutes=15)
        allowed: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(25):
                result = limiter.check("svc", cfg)
                with lock:
                    allowed.append(result.allowed)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert limiter.state("svc").count == 200
        assert allowed.count(True) == 50

"""Per-service rate limiter over fixed wall-clock windows.

Each service key gets one counter.  A window opens on the first check and
closes at ``window_started_at + window_minutes``; the next check after that
instant starts a fresh window.  There is no partial decay.

``RateLimiter.check`` consumes quota: it increments before deciding, so a
call that comes back ``allowed=False`` still counted.  ``bump`` hands quota
back for an action the user cancelled.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable

from contracts.rate_limit import RateLimitConfig, RateLimitResult, RateLimitState

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMITS: tuple[RateLimitConfig, ...] = (
    # messaging
    RateLimitConfig(service="slack", max_actions=30, window_minutes=15),
    RateLimitConfig(service="discord", max_actions=30, window_minutes=15),
    RateLimitConfig(service="telegram", max_actions=30, window_minutes=15),
    # email
    RateLimitConfig(service="gmail", max_actions=10, window_minutes=15),
    RateLimitConfig(service="outlook", max_actions=10, window_minutes=15),
    # code hosting and project tracking
    RateLimitConfig(service="github", max_actions=20, window_minutes=15),
    RateLimitConfig(service="gitlab", max_actions=20, window_minutes=15),
    RateLimitConfig(service="jira", max_actions=20, window_minutes=15),
    RateLimitConfig(service="trello", max_actions=30, window_minutes=15),
    RateLimitConfig(service="notion", max_actions=20, window_minutes=15),
    # payments
    RateLimitConfig(service="stripe", max_actions=5, window_minutes=15),
    RateLimitConfig(service="paypal", max_actions=5, window_minutes=15),
)

DEFAULT_GENERIC_LIMIT = RateLimitConfig(service="*", max_actions=20, window_minutes=15)

_DEFAULTS_BY_SERVICE = {c.service: c for c in DEFAULT_RATE_LIMITS}


def get_rate_limit(
    service: str, overrides: Iterable[RateLimitConfig] | None = None
) -> RateLimitConfig:
    """Override for *service*, else its built-in default, else the generic limit."""
    for override in overrides or ():
        if override.service == service:
            return override
    builtin = _DEFAULTS_BY_SERVICE.get(service)
    if builtin is not None:
        return builtin
    logger.debug("No rate limit configured for %r; using generic limit", service)
    return DEFAULT_GENERIC_LIMIT


def upsert_rate_limit(
    overrides: Iterable[RateLimitConfig],
    service: str,
    max_actions: int,
    window_minutes: int,
) -> list[RateLimitConfig]:
    """Return *overrides* with *service*'s entry replaced or appended."""
    if max_actions <= 0 or window_minutes <= 0:
        raise ValueError("max_actions and window_minutes must be positive")
    updated = RateLimitConfig(
        service=service, max_actions=max_actions, window_minutes=window_minutes
    )
    result: list[RateLimitConfig] = []
    replaced = False
    for existing in overrides:
        if existing.service == service:
            result.append(updated)
            replaced = True
        else:
            result.append(existing)
    if not replaced:
        result.append(updated)
    return result


class RateLimiter:
    """Owns the per-service counters for one agent runtime.

    All state changes happen under a single lock, so concurrent checks on
    the same service never lose an increment.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[str, RateLimitState] = {}

    def check(self, service: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        window_secs = config.window_minutes * 60
        with self._lock:
            state = self._states.get(service)
            if state is None or now - state.window_started_at >= window_secs:
                state = RateLimitState(count=0, window_started_at=now)
                self._states[service] = state
            state.count += 1
            count = state.count

        allowed = count <= config.max_actions
        if not allowed:
            logger.info("Rate limit exhausted for %s (%d/%d in %d min)",
                        service, count, config.max_actions, config.window_minutes)
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, config.max_actions - count),
            limit=config.max_actions,
        )

    def reset(self, service: str) -> None:
        with self._lock:
            self._states.pop(service, None)

    def reset_all(self) -> None:
        with self._lock:
            self._states.clear()

    def bump(self, service: str, delta: int) -> None:
        """Give *delta* units of quota back to the open window.

        A negative delta consumes quota instead.  The counter never drops
        below zero, and a service with no open window has nothing to adjust.
        """
        with self._lock:
            state = self._states.get(service)
            if state is None:
                return
            state.count = max(0, state.count - delta)

    def state(self, service: str) -> RateLimitState | None:
        """Snapshot of the service's counter, or None if never checked."""
        with self._lock:
            state = self._states.get(service)
            return state.model_copy() if state is not None else None

"""Rate limit contracts: per-service quotas over fixed wall-clock windows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitConfig(BaseModel):
    service: str
    max_actions: int = Field(gt=0)
    window_minutes: int = Field(gt=0)


class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    limit: int


class RateLimitState(BaseModel):
    """Session-scoped counter for one service. Never persisted."""

    count: int = 0
    window_started_at: float = 0.0  # clock seconds

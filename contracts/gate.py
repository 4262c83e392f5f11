"""Action gate contracts: the combined verdict for one agent action."""

from __future__ import annotations

from pydantic import BaseModel

from contracts.access import AccessLevel
from contracts.rate_limit import RateLimitResult
from contracts.risk import RiskTier


class GateDecision(BaseModel):
    allowed: bool
    requires_approval: bool = False     # from the tool policy
    needs_confirmation: bool = False    # approval, or a HARD-tier action
    risk: RiskTier = RiskTier.SOFT
    access: AccessLevel | None = None
    rate_limit: RateLimitResult | None = None
    rule: str = ""
    reason: str = ""

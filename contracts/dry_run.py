"""Dry-run plan contracts: a batch of proposed actions evaluated together."""

from __future__ import annotations

from pydantic import BaseModel

from contracts.risk import RiskTier


class DryRunStep(BaseModel):
    index: int
    service: str
    action: str
    target: str = ""
    risk: RiskTier = RiskTier.SOFT


class DryRunPlan(BaseModel):
    id: str
    steps: list[DryRunStep] = []
    total_actions: int = 0
    high_risk_count: int = 0   # cached; recompute with count_high_risk()

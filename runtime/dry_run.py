"""Dry-run plan evaluator.

A plan is the batch of actions an agent queued in one user turn.  One
confirmation covers the whole batch when any step is destructive or the
batch is simply large.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from contracts.dry_run import DryRunPlan, DryRunStep
from contracts.risk import RiskTier
from runtime.risk import classify_action_risk

logger = logging.getLogger(__name__)

MAX_UNCONFIRMED_STEPS = 3


def build_plan(
    actions: Iterable[tuple[str, str, str]],
    plan_id: str | None = None,
) -> DryRunPlan:
    """Classify ``(service, action, target)`` triples into a plan."""
    steps = [
        DryRunStep(
            index=i,
            service=service,
            action=action,
            target=target,
            risk=classify_action_risk(action),
        )
        for i, (service, action, target) in enumerate(actions)
    ]
    return DryRunPlan(
        id=plan_id or str(uuid.uuid4()),
        steps=steps,
        total_actions=len(steps),
        high_risk_count=sum(1 for s in steps if s.risk == RiskTier.HARD),
    )


def count_high_risk(plan: DryRunPlan) -> int:
    """Number of HARD steps, counted from the steps themselves."""
    return sum(1 for s in plan.steps if s.risk == RiskTier.HARD)


def plan_requires_confirm(plan: DryRunPlan) -> bool:
    if not plan_is_consistent(plan):
        logger.warning(
            "Plan %s cached counts drifted (high_risk_count=%d, total_actions=%d); "
            "using recomputed values",
            plan.id, plan.high_risk_count, plan.total_actions,
        )
    return count_high_risk(plan) > 0 or len(plan.steps) > MAX_UNCONFIRMED_STEPS


def plan_is_consistent(plan: DryRunPlan) -> bool:
    """Do the cached counts agree with the steps?"""
    return (
        plan.high_risk_count == count_high_risk(plan)
        and plan.total_actions == len(plan.steps)
    )

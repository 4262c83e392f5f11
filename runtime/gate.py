"""Action gate — runs every guardrail for one agent action, in order.

1. Tool policy: may this agent use the tool at all?
2. Per-turn tool-call cap.
3. Rate limit for the target service (consumes quota).
4. Risk tier vs. the agent's access level for the service.

Each rejection, approval request and hard-risk action is written to the
audit log.  Nothing here raises for a denied action; callers branch on
``GateDecision.allowed``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from contracts.audit import AuditDecision, AuditEntry, AuditEvent, AuditLogger
from contracts.dry_run import DryRunPlan
from contracts.gate import GateDecision
from contracts.rate_limit import RateLimitConfig
from contracts.risk import RiskTier
from contracts.sandbox import CommandAssessment, SandboxConfig

from runtime.access import PermissionTable, is_action_allowed
from runtime.dry_run import build_plan, count_high_risk, plan_requires_confirm
from runtime.policy_store import PolicyService
from runtime.rate_limiter import RateLimiter, get_rate_limit
from runtime.risk import classify_action_risk
from runtime.sandbox import DEFAULT_SANDBOX_CONFIG, assess_command_risk, harden_config
from runtime.tool_policy import check_tool_policy, is_over_tool_call_limit

logger = logging.getLogger(__name__)


class ActionGate:
    """Composes the guardrails for one agent runtime."""

    def __init__(
        self,
        policies: PolicyService,
        permissions: PermissionTable,
        rate_limiter: RateLimiter,
        audit: AuditLogger | None = None,
        rate_limit_overrides: Iterable[RateLimitConfig] = (),
        sandbox_config: SandboxConfig = DEFAULT_SANDBOX_CONFIG,
    ) -> None:
        self._policies = policies
        self._permissions = permissions
        self._limiter = rate_limiter
        self._audit_logger = audit
        self.rate_limit_overrides = list(rate_limit_overrides)
        self.sandbox_config = sandbox_config

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    def evaluate(
        self,
        agent_id: str,
        service: str,
        action: str,
        *,
        tool_id: str | None = None,
        calls_this_turn: int = 0,
    ) -> GateDecision:
        """Decide whether *action* against *service* may run now.

        *tool_id* defaults to *action*.  *calls_this_turn* is the number of
        tool calls in the current turn including this one.
        """
        tool_id = tool_id or action
        policy = self._policies.get_agent_policy(agent_id)

        # Policy check
        decision = check_tool_policy(tool_id, policy)
        if not decision.allowed:
            self._audit(agent_id, AuditEvent.POLICY_BLOCK, service, action,
                        AuditDecision.DENY, decision.reason,
                        tool=tool_id, rule=decision.rule)
            return GateDecision(allowed=False, rule=decision.rule,
                                reason=f"Action blocked by your tool policy: {decision.reason}")

        if is_over_tool_call_limit(calls_this_turn, policy):
            reason = (f"{calls_this_turn} tool calls this turn exceeds the limit "
                      f"of {policy.max_tool_calls_per_turn}")
            self._audit(agent_id, AuditEvent.POLICY_BLOCK, service, action,
                        AuditDecision.DENY, reason,
                        tool=tool_id, rule="max_tool_calls_per_turn")
            return GateDecision(allowed=False, rule="max_tool_calls_per_turn",
                                reason=f"Action blocked by your tool policy: {reason}")

        # Rate limit
        config = get_rate_limit(service, self.rate_limit_overrides)
        quota = self._limiter.check(service, config)
        if not quota.allowed:
            reason = (f"Rate limit for '{service}' reached "
                      f"({config.max_actions} per {config.window_minutes} min)")
            self._audit(agent_id, AuditEvent.RATE_LIMIT_BLOCK, service, action,
                        AuditDecision.DENY, reason, limit=quota.limit)
            return GateDecision(allowed=False, rate_limit=quota,
                                rule="rate_limit", reason=reason)

        # Risk vs. access level
        risk = classify_action_risk(action)
        access = self._permissions.get_access(agent_id, service)
        if not is_action_allowed(access, action, tier=risk):
            # The action will never run, so it does not spend quota.
            self._limiter.bump(service, 1)
            reason = f"'{access.value}' access to '{service}' does not permit {risk.value}-risk actions"
            self._audit(agent_id, AuditEvent.ACCESS_BLOCK, service, action,
                        AuditDecision.DENY, reason, access=access.value, risk=risk.value)
            return GateDecision(allowed=False, risk=risk, access=access,
                                rate_limit=quota, rule="access_level", reason=reason)

        requires_approval = decision.requires_approval
        outcome = AuditDecision.APPROVAL if requires_approval else AuditDecision.ALLOW
        if risk == RiskTier.HARD:
            self._audit(agent_id, AuditEvent.RISK_HARD, service, action, outcome,
                        "Destructive action", tool=tool_id, risk=risk.value)
        if requires_approval:
            self._audit(agent_id, AuditEvent.POLICY_APPROVAL, service, action,
                        outcome, decision.reason, tool=tool_id, rule=decision.rule)
        else:
            self._audit(agent_id, AuditEvent.ACTION_ALLOW, service, action,
                        outcome, decision.reason, tool=tool_id, risk=risk.value)

        return GateDecision(
            allowed=True,
            requires_approval=requires_approval,
            needs_confirmation=requires_approval or risk == RiskTier.HARD,
            risk=risk,
            access=access,
            rate_limit=quota,
            rule=decision.rule,
            reason=decision.reason,
        )

    def cancel(self, service: str) -> None:
        """The user declined a gated action: return its quota."""
        self._limiter.bump(service, 1)

    def evaluate_plan(
        self,
        agent_id: str,
        actions: Iterable[tuple[str, str, str]],
        plan_id: str | None = None,
    ) -> tuple[DryRunPlan, bool]:
        """Build a dry-run plan from ``(service, action, target)`` triples.

        Returns the plan and whether it needs one confirmation up front.
        """
        plan = build_plan(actions, plan_id=plan_id)
        requires_confirm = plan_requires_confirm(plan)
        if requires_confirm:
            self._audit(agent_id, AuditEvent.PLAN_CONFIRM, "", "", AuditDecision.APPROVAL,
                        "Plan requires confirmation", plan_id=plan.id,
                        steps=len(plan.steps), high_risk=count_high_risk(plan))
        return plan, requires_confirm

    def assess_command(
        self,
        agent_id: str,
        command: str,
        config: SandboxConfig | None = None,
    ) -> tuple[CommandAssessment, SandboxConfig | None]:
        """Assess a shell command; returns the sandbox settings to use, or None.

        *config* defaults to the gate's own ``sandbox_config``.
        """
        if config is None:
            config = self.sandbox_config
        assessment = assess_command_risk(command)
        hardened = harden_config(config, assessment)
        if hardened is None:
            self._audit(agent_id, AuditEvent.SANDBOX_REFUSE, "sandbox", command,
                        AuditDecision.DENY, "; ".join(assessment.reasons),
                        risk=assessment.risk.value, reasons=assessment.reasons)
        return assessment, hardened

    # ── internal ────────────────────────────────────────────────────

    def _audit(
        self,
        agent_id: str,
        event: AuditEvent,
        service: str,
        action: str,
        decision: AuditDecision,
        reason: str,
        **detail: object,
    ) -> None:
        if decision == AuditDecision.DENY:
            logger.info("%s agent=%s service=%s action=%s: %s",
                        event.value, agent_id, service, action, reason)
        if self._audit_logger is None:
            return
        entry = AuditEntry(
            agent_id=agent_id,
            event=event,
            service=service,
            action=action,
            decision=decision,
            reason=reason,
            detail=dict(detail),
        )
        try:
            self._audit_logger.log(entry)
        except OSError as exc:
            logger.warning("Audit write failed for %s: %s", event.value, exc)

"""Shared contracts — source of truth for all ActionGate interfaces."""

from contracts.access import AccessLevel, AccessMeta, AgentServicePermission
from contracts.audit import AuditDecision, AuditEntry, AuditEvent, AuditLogger
from contracts.dry_run import DryRunPlan, DryRunStep
from contracts.gate import GateDecision
from contracts.manifest import AppInfo, AuditConfig, LoggingConfig, Manifest
from contracts.rate_limit import RateLimitConfig, RateLimitResult, RateLimitState
from contracts.risk import RiskMeta, RiskTier, max_risk
from contracts.sandbox import CommandAssessment, SandboxConfig, SandboxValidation
from contracts.tool_policy import PolicyDecision, PolicyMode, PolicyStore, ToolPolicy

__all__ = [
    # access
    "AccessLevel",
    "AccessMeta",
    "AgentServicePermission",
    # audit
    "AuditDecision",
    "AuditEntry",
    "AuditEvent",
    "AuditLogger",
    # dry run
    "DryRunPlan",
    "DryRunStep",
    # gate
    "GateDecision",
    # manifest
    "AppInfo",
    "AuditConfig",
    "LoggingConfig",
    "Manifest",
    # rate limit
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimitState",
    # risk
    "RiskMeta",
    "RiskTier",
    "max_risk",
    # sandbox
    "CommandAssessment",
    "SandboxConfig",
    "SandboxValidation",
    # tool policy
    "PolicyDecision",
    "PolicyMode",
    "PolicyStore",
    "ToolPolicy",
]

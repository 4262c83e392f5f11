"""Audit logging contracts.

Append-only JSONL, one record per guardrail decision worth keeping:
every policy denial, rate-limit rejection, access block and hard-risk action.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuditEvent(str, Enum):
    ACTION_ALLOW = "action.allow"
    POLICY_BLOCK = "policy.block"
    POLICY_APPROVAL = "policy.approval"
    RATE_LIMIT_BLOCK = "rate_limit.block"
    ACCESS_BLOCK = "access.block"
    RISK_HARD = "risk.hard"
    PLAN_CONFIRM = "plan.confirm"
    SANDBOX_REFUSE = "sandbox.refuse"


class AuditDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    APPROVAL = "approval"


class AuditEntry(BaseModel):
    """A single audit log record."""

    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    agent_id: str
    event: AuditEvent
    service: str = ""
    action: str = ""
    decision: AuditDecision = AuditDecision.DENY
    reason: str = ""
    detail: dict[str, Any] = {}  # rule, risk tier, remaining quota, etc.


class AuditLogger(ABC):
    """Interface for the append-only audit logger."""

    @abstractmethod
    def log(self, entry: AuditEntry) -> None:
        """Append an entry to the audit log."""
        ...

    @abstractmethod
    def query_by_agent(self, agent_id: str) -> list[AuditEntry]:
        """Return all entries for a given agent."""
        ...

    @abstractmethod
    def query_by_event(self, event: AuditEvent, limit: int = 100) -> list[AuditEntry]:
        """Return recent entries of a given event type."""
        ...

    @abstractmethod
    def tail(self, n: int = 20) -> list[AuditEntry]:
        """Return the last N entries."""
        ...

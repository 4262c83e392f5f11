"""Tool policy contracts.

A ToolPolicy is held per agent and decides which tools the agent may call
and which calls must wait for the user's approval.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, Field


class PolicyMode(str, Enum):
    UNRESTRICTED = "unrestricted"
    ALLOWLIST = "allowlist"
    DENYLIST = "denylist"


class ToolPolicy(BaseModel):
    mode: PolicyMode = PolicyMode.UNRESTRICTED
    allowed: set[str] = set()       # consulted in allowlist mode
    denied: set[str] = set()        # consulted in denylist mode
    require_approval_for_unlisted: bool = False
    always_require_approval: set[str] = set()
    max_tool_calls_per_turn: int | None = Field(default=None, ge=0)


class PolicyDecision(BaseModel):
    allowed: bool
    requires_approval: bool = False
    rule: str = ""      # which rule produced the decision
    reason: str = ""    # human-readable explanation


class PolicyStore(ABC):
    """Load/save contract for persisted per-agent policies.

    Implementations must never raise from ``load``: a missing or unreadable
    record yields the unrestricted default.
    """

    @abstractmethod
    def load(self, agent_id: str) -> ToolPolicy:
        """Return the agent's policy, or the unrestricted default."""
        ...

    @abstractmethod
    def save(self, agent_id: str, policy: ToolPolicy) -> bool:
        """Persist one record (last write wins). Returns success."""
        ...

    @abstractmethod
    def remove(self, agent_id: str) -> bool:
        """Drop the agent's record. Returns True if one existed."""
        ...

    @abstractmethod
    def load_all(self) -> dict[str, ToolPolicy]:
        """Return every stored policy keyed by agent id."""
        ...

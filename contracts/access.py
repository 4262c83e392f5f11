"""Per-agent, per-service access levels."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class AccessLevel(str, Enum):
    NONE = "none"
    READ = "read"      # auto-tier actions only
    WRITE = "write"    # any tier
    FULL = "full"      # any tier, plus future destructive capabilities


class AccessMeta(BaseModel):
    icon: str
    label: str
    description: str


class AgentServicePermission(BaseModel):
    """Access ceiling granted to one agent for one service."""

    agent_id: str
    service: str
    access: AccessLevel = AccessLevel.WRITE

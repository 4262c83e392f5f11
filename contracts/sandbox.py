"""Sandbox contracts: container limits and command risk assessments."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contracts.risk import RiskTier


class SandboxConfig(BaseModel):
    enabled: bool = False
    image: str = "alpine:latest"
    memory_limit_mb: int = 512
    cpu_shares: int = 1024
    timeout_secs: int = 30
    network_enabled: bool = False
    drop_capabilities: bool = True
    read_only_root: bool = False


class SandboxValidation(BaseModel):
    valid: bool
    errors: list[str] = []
    warnings: list[str] = []


class CommandAssessment(BaseModel):
    command: str
    risk: RiskTier = RiskTier.AUTO
    reasons: list[str] = Field(default_factory=list)
    refuse: bool = False

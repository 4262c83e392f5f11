"""Manifest (actiongate.yaml) schema — Pydantic models.

One file configures every guardrail: per-agent tool policies, per-service
access levels, rate-limit overrides, sandbox limits, audit and logging.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from contracts.access import AgentServicePermission
from contracts.rate_limit import RateLimitConfig
from contracts.sandbox import SandboxConfig
from contracts.tool_policy import ToolPolicy


# ── Top-level sections ──────────────────────────────────────────────


class AppInfo(BaseModel):
    name: str
    version: str = "0.0.1"


class AuditConfig(BaseModel):
    path: str = "audit.jsonl"
    max_entries: int | None = Field(default=500, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool | None = None   # None: JSON only in prod


# ── Root manifest ────────────────────────────────────────────────────


class Manifest(BaseModel):
    app: AppInfo
    policies: dict[str, ToolPolicy] = {}
    policy_dir: str | None = None     # YAML policy store; in-memory when unset
    permissions: list[AgentServicePermission] = []
    rate_limits: list[RateLimitConfig] = []
    sandbox: SandboxConfig = SandboxConfig()
    audit: AuditConfig = AuditConfig()
    logging: LoggingConfig = LoggingConfig()

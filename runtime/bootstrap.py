"""Build a wired ActionGate from a manifest."""

from __future__ import annotations

import logging
from typing import Callable

from contracts.manifest import Manifest
from contracts.tool_policy import PolicyStore

from runtime.access import PermissionTable
from runtime.audit.logger import JsonlAuditLogger
from runtime.gate import ActionGate
from runtime.policy_store import InMemoryPolicyStore, PolicyService, YamlPolicyStore
from runtime.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def create_policy_store(manifest: Manifest) -> PolicyStore:
    """YAML store when ``policy_dir`` is set, else in-memory.

    Policies listed inline in the manifest seed either store.  An existing YAML
    record wins over the manifest entry for the same agent.
    """
    if manifest.policy_dir:
        store: PolicyStore = YamlPolicyStore(manifest.policy_dir)
        existing = store.load_all()
        for agent_id, policy in manifest.policies.items():
            if agent_id not in existing:
                store.save(agent_id, policy)
        return store
    return InMemoryPolicyStore(manifest.policies)


def create_gate(
    manifest: Manifest,
    *,
    clock: Callable[[], float] | None = None,
) -> ActionGate:
    limiter = RateLimiter(clock) if clock is not None else RateLimiter()
    gate = ActionGate(
        policies=PolicyService(create_policy_store(manifest)),
        permissions=PermissionTable(manifest.permissions),
        rate_limiter=limiter,
        audit=JsonlAuditLogger(manifest.audit.path, max_entries=manifest.audit.max_entries),
        rate_limit_overrides=manifest.rate_limits,
        sandbox_config=manifest.sandbox,
    )
    logger.debug("Action gate ready for %s (%d policies, %d permissions, %d rate overrides)",
                 manifest.app.name, len(manifest.policies), len(manifest.permissions),
                 len(manifest.rate_limits))
    return gate

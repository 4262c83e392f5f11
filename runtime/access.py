"""Per-service access-level gate.

An agent's access level for a service caps the risk tier it may act at:
NONE permits nothing, READ only AUTO-tier actions, WRITE and FULL anything.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from contracts.access import AccessLevel, AccessMeta, AgentServicePermission
from contracts.risk import RiskTier
from runtime.risk import classify_action_risk

logger = logging.getLogger(__name__)

# Applied when no permission is configured for an (agent, service) pair.
DEFAULT_ACCESS_LEVEL = AccessLevel.WRITE

_ACCESS_META: dict[AccessLevel, AccessMeta] = {
    AccessLevel.NONE: AccessMeta(
        icon="block", label="No access", description="Agent cannot use this service"
    ),
    AccessLevel.READ: AccessMeta(
        icon="visibility", label="Read only", description="Only read-only actions are allowed"
    ),
    AccessLevel.WRITE: AccessMeta(
        icon="edit", label="Read & write", description="Reads and writes, destructive actions confirmed"
    ),
    AccessLevel.FULL: AccessMeta(
        icon="admin_panel_settings", label="Full access", description="All actions including destructive ones"
    ),
}


def is_action_allowed(
    access: AccessLevel,
    action_id: str,
    tier: RiskTier | None = None,
) -> bool:
    """Is *action_id* permitted at *access*? *tier* skips re-classification."""
    access = AccessLevel(access)
    if access == AccessLevel.NONE:
        return False
    if access == AccessLevel.READ:
        if tier is None:
            tier = classify_action_risk(action_id)
        return tier == RiskTier.AUTO
    # WRITE and FULL
    return True


def access_meta(level: AccessLevel) -> AccessMeta:
    return _ACCESS_META[AccessLevel(level)]


class PermissionTable:
    """Thread-safe (agent, service) → access level map."""

    def __init__(
        self,
        permissions: Iterable[AgentServicePermission] = (),
        default: AccessLevel = DEFAULT_ACCESS_LEVEL,
    ) -> None:
        self._lock = threading.Lock()
        self._default = default
        self._perms: dict[tuple[str, str], AgentServicePermission] = {}
        for perm in permissions:
            self._perms[(perm.agent_id, perm.service)] = perm

    def get_access(self, agent_id: str, service: str) -> AccessLevel:
        with self._lock:
            perm = self._perms.get((agent_id, service))
        if perm is None:
            logger.debug("No permission for agent=%s service=%s; using %s",
                         agent_id, service, self._default.value)
            return self._default
        return perm.access

    def set_permission(
        self, agent_id: str, service: str, access: AccessLevel | str
    ) -> AgentServicePermission:
        """Insert or update a permission. Unknown levels raise ValueError."""
        try:
            level = AccessLevel(access)
        except ValueError:
            raise ValueError(f"Invalid access level: {access}") from None
        perm = AgentServicePermission(agent_id=agent_id, service=service, access=level)
        with self._lock:
            self._perms[(agent_id, service)] = perm
        return perm

    def for_agent(self, agent_id: str) -> list[AgentServicePermission]:
        with self._lock:
            return [p for (a, _), p in self._perms.items() if a == agent_id]

    def all(self) -> list[AgentServicePermission]:
        with self._lock:
            return list(self._perms.values())

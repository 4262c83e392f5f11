"""Per-agent tool policy persistence.

Two stores implement ``contracts.tool_policy.PolicyStore``:

- ``InMemoryPolicyStore``: seeded from the manifest's ``policies`` section.
- ``YamlPolicyStore``: one YAML document per agent under a directory.
  Writes go to a temp file and are moved into place, so a record is either
  the old or the new version; concurrent writers resolve last-write-wins.

Loading never fails: a missing, unreadable or invalid record yields the
unrestricted default so that policy storage cannot block the agent.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Mapping
from urllib.parse import quote, unquote

import yaml
from pydantic import ValidationError

from contracts.tool_policy import PolicyDecision, PolicyStore, ToolPolicy
from runtime.tool_policy import (
    ALL_TOOLS,
    DEFAULT_POLICY,
    check_tool_policy,
    describe_policy_summary,
    filter_tools_by_policy,
)

logger = logging.getLogger(__name__)


def _default_policy() -> ToolPolicy:
    return DEFAULT_POLICY.model_copy(deep=True)


class InMemoryPolicyStore(PolicyStore):
    def __init__(self, policies: Mapping[str, ToolPolicy] | None = None) -> None:
        self._lock = threading.Lock()
        self._policies: dict[str, ToolPolicy] = {
            agent_id: p.model_copy(deep=True) for agent_id, p in (policies or {}).items()
        }

    def load(self, agent_id: str) -> ToolPolicy:
        with self._lock:
            policy = self._policies.get(agent_id)
        if policy is None:
            return _default_policy()
        return policy.model_copy(deep=True)

    def save(self, agent_id: str, policy: ToolPolicy) -> bool:
        with self._lock:
            self._policies[agent_id] = policy.model_copy(deep=True)
        return True

    def remove(self, agent_id: str) -> bool:
        with self._lock:
            return self._policies.pop(agent_id, None) is not None

    def load_all(self) -> dict[str, ToolPolicy]:
        with self._lock:
            return {a: p.model_copy(deep=True) for a, p in self._policies.items()}


class YamlPolicyStore(PolicyStore):
    """Directory of ``<quoted agent_id>.yaml`` policy records."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._lock = threading.Lock()
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, agent_id: str) -> Path:
        # percent-encoded, so distinct ids never share a file
        return self._dir / f"{quote(agent_id, safe='')}.yaml"

    def load(self, agent_id: str) -> ToolPolicy:
        path = self._path(agent_id)
        if not path.exists():
            return _default_policy()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected a YAML mapping, got {type(data).__name__}")
            return ToolPolicy(**data)
        except (OSError, yaml.YAMLError, ValueError, ValidationError) as exc:
            logger.warning("Could not load policy for agent %s from %s: %s; "
                           "falling back to unrestricted", agent_id, path, exc)
            return _default_policy()

    def save(self, agent_id: str, policy: ToolPolicy) -> bool:
        path = self._path(agent_id)
        text = yaml.safe_dump(policy.model_dump(mode="json"), sort_keys=True)
        with self._lock:
            try:
                fd, tmp = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, path)
            except OSError as exc:
                logger.warning("Could not save policy for agent %s: %s", agent_id, exc)
                return False
        return True

    def remove(self, agent_id: str) -> bool:
        with self._lock:
            try:
                self._path(agent_id).unlink()
            except FileNotFoundError:
                return False
            except OSError as exc:
                logger.warning("Could not remove policy for agent %s: %s", agent_id, exc)
                return False
        return True

    def load_all(self) -> dict[str, ToolPolicy]:
        ids = (unquote(p.stem) for p in sorted(self._dir.glob("*.yaml")))
        return {agent_id: self.load(agent_id) for agent_id in ids}


class PolicyService:
    """Agent-facing policy operations on top of a PolicyStore."""

    def __init__(self, store: PolicyStore) -> None:
        self._store = store

    @property
    def store(self) -> PolicyStore:
        return self._store

    def get_agent_policy(self, agent_id: str) -> ToolPolicy:
        return self._store.load(agent_id)

    def set_agent_policy(self, agent_id: str, policy: ToolPolicy) -> bool:
        ok = self._store.save(agent_id, policy)
        if ok:
            logger.info("Policy for agent %s set to: %s", agent_id,
                        describe_policy_summary(policy))
        return ok

    def remove_agent_policy(self, agent_id: str) -> bool:
        return self._store.remove(agent_id)

    def enforce_tool_policy(self, agent_id: str, tool_id: str) -> PolicyDecision:
        decision = check_tool_policy(tool_id, self._store.load(agent_id))
        if not decision.allowed:
            logger.info("Tool %s blocked for agent %s: %s", tool_id, agent_id, decision.reason)
        return decision

    def get_agent_allowed_tools(
        self, agent_id: str, tools: Iterable[str] = ALL_TOOLS
    ) -> list[str]:
        return filter_tools_by_policy(tools, self._store.load(agent_id))

    def get_agent_policy_summary(self, agent_id: str) -> str:
        return describe_policy_summary(self._store.load(agent_id))

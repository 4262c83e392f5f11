"""Tool policy engine.

Decides whether an agent may call a tool, and whether the call has to wait
for the user's approval.  Precedence, first match governs:

1. ``always_require_approval``: allowed with approval, whatever the mode.
2. unrestricted: allowed.
3. allowlist: listed tools allowed; unlisted allowed with approval when
   ``require_approval_for_unlisted`` is set, otherwise denied.
4. denylist: listed tools denied, everything else allowed.
"""

from __future__ import annotations

from typing import Iterable

from contracts.tool_policy import PolicyDecision, PolicyMode, ToolPolicy

# ── Tool catalogue ──────────────────────────────────────────────────

ALL_TOOLS: tuple[str, ...] = (
    # filesystem
    "read_file",
    "write_file",
    "append_file",
    "delete_file",
    "list_directory",
    # shell
    "exec",
    # web
    "fetch",
    "web_search",
    "web_read",
    "web_browse",
    "web_screenshot",
    # memory and identity
    "memory_store",
    "memory_search",
    "soul_read",
    "soul_write",
    "soul_list",
    "self_info",
    "update_profile",
    # tasks
    "create_task",
    "list_tasks",
    "manage_task",
    # messaging
    "email_send",
    "email_read",
    "slack_send",
    "slack_read",
    "telegram_send",
    "telegram_read",
    # integrations
    "github_api",
    "rest_api_call",
    "webhook_send",
    "image_generate",
    # agents
    "create_agent",
    "agent_list",
    "agent_skills",
    "agent_skill_assign",
)

SAFE_TOOLS: tuple[str, ...] = (
    "read_file",
    "list_directory",
    "fetch",
    "web_search",
    "web_read",
    "web_screenshot",
    "memory_search",
    "soul_read",
    "soul_list",
    "self_info",
    "list_tasks",
    "email_read",
    "slack_read",
    "telegram_read",
    "agent_list",
    "agent_skills",
)

HIGH_RISK_TOOLS: tuple[str, ...] = (
    "exec",
    "write_file",
    "append_file",
    "delete_file",
    "email_send",
    "slack_send",
    "telegram_send",
    "github_api",
    "rest_api_call",
    "webhook_send",
    "create_agent",
)

# ── Presets ─────────────────────────────────────────────────────────

DEFAULT_POLICY = ToolPolicy()

READONLY_POLICY = ToolPolicy(
    mode=PolicyMode.ALLOWLIST,
    allowed=set(SAFE_TOOLS),
)

STANDARD_POLICY = ToolPolicy(
    mode=PolicyMode.UNRESTRICTED,
    always_require_approval=set(HIGH_RISK_TOOLS),
)

LOCKED_POLICY = ToolPolicy(
    mode=PolicyMode.ALLOWLIST,
    require_approval_for_unlisted=True,
)

POLICY_PRESETS: dict[str, ToolPolicy] = {
    "unrestricted": DEFAULT_POLICY,
    "standard": STANDARD_POLICY,
    "readonly": READONLY_POLICY,
    "locked": LOCKED_POLICY,
}


# ── Decisions ───────────────────────────────────────────────────────


def check_tool_policy(tool_id: str, policy: ToolPolicy) -> PolicyDecision:
    if tool_id in policy.always_require_approval:
        return PolicyDecision(
            allowed=True,
            requires_approval=True,
            rule="always_require_approval",
            reason=f"Tool '{tool_id}' always requires approval",
        )

    if policy.mode == PolicyMode.UNRESTRICTED:
        return PolicyDecision(
            allowed=True,
            rule="unrestricted",
            reason="Unrestricted policy allows all tools",
        )

    if policy.mode == PolicyMode.ALLOWLIST:
        if tool_id in policy.allowed:
            return PolicyDecision(
                allowed=True,
                rule="allowlist",
                reason=f"Tool '{tool_id}' is in the allow list",
            )
        if policy.require_approval_for_unlisted:
            return PolicyDecision(
                allowed=True,
                requires_approval=True,
                rule="allowlist.unlisted_approval",
                reason=f"Tool '{tool_id}' is not in the allow list; approval required",
            )
        return PolicyDecision(
            allowed=False,
            rule="allowlist",
            reason=f"Tool '{tool_id}' is not in the allow list",
        )

    # denylist
    if tool_id in policy.denied:
        return PolicyDecision(
            allowed=False,
            rule="denylist",
            reason=f"Tool '{tool_id}' is in the deny list",
        )
    return PolicyDecision(
        allowed=True,
        rule="denylist",
        reason=f"Tool '{tool_id}' is not in the deny list",
    )


def filter_tools_by_policy(tools: Iterable[str], policy: ToolPolicy) -> list[str]:
    """Tools the agent may see, in input order. Approval-gated tools stay in."""
    return [t for t in tools if check_tool_policy(t, policy).allowed]


def is_over_tool_call_limit(count: int, policy: ToolPolicy) -> bool:
    limit = policy.max_tool_calls_per_turn
    if limit is None:
        return False
    return count > limit


def describe_policy_summary(policy: ToolPolicy) -> str:
    """Short display string, e.g. ``Allowlist — 12 tools · max 5 calls/turn``."""
    if policy.mode == PolicyMode.ALLOWLIST:
        summary = f"Allowlist — {len(policy.allowed)} tools"
    elif policy.mode == PolicyMode.DENYLIST:
        summary = f"Denylist — {len(policy.denied)} blocked"
    else:
        summary = "Unrestricted"

    if policy.always_require_approval:
        summary += f" · {len(policy.always_require_approval)} need approval"
    if policy.max_tool_calls_per_turn is not None:
        summary += f" · max {policy.max_tool_calls_per_turn} calls/turn"
    return summary

"""Security alert heuristics over the guardrail audit log.

Scans audit entries for patterns worth an operator's attention:
- Burst of rate-limit rejections (an agent hammering a service)
- Repeated policy denials of the same tool (probing)
- Clustered hard-risk actions against one service
- Any refused sandbox command
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from contracts.audit import AuditEntry, AuditEvent
from runtime.audit.query import read_entries

_BURST_WINDOW_SECONDS = 60
_BURST_THRESHOLD = 5
_REPEATED_DENIAL_THRESHOLD = 3
_HARD_RISK_WINDOW_SECONDS = 300
_HARD_RISK_THRESHOLD = 3


def detect_alerts(
    log_path: str | Path,
    *,
    since: datetime | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Run all heuristic detectors and return alerts sorted by time (newest first)."""
    entries = read_entries(log_path)
    if since:
        entries = [e for e in entries if e.ts >= since]

    alerts: list[dict[str, Any]] = []
    alerts.extend(_detect_rate_limit_burst(entries))
    alerts.extend(_detect_repeated_denial(entries))
    alerts.extend(_detect_hard_risk_cluster(entries))
    alerts.extend(_detect_sandbox_refusal(entries))

    alerts.sort(key=lambda a: a["ts"], reverse=True)
    return alerts[:limit]


def _first_burst(
    entries: list[AuditEntry], window_seconds: int, threshold: int
) -> tuple[AuditEntry, int] | None:
    entries = sorted(entries, key=lambda e: e.ts)
    for i in range(len(entries)):
        window_end = entries[i].ts + timedelta(seconds=window_seconds)
        count = sum(1 for e in entries[i:] if e.ts <= window_end)
        if count >= threshold:
            return entries[i], count
    return None


def _detect_rate_limit_burst(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    blocks = [e for e in entries if e.event == AuditEvent.RATE_LIMIT_BLOCK]
    if len(blocks) < _BURST_THRESHOLD:
        return []

    burst = _first_burst(blocks, _BURST_WINDOW_SECONDS, _BURST_THRESHOLD)
    if burst is None:
        return []
    first, count = burst
    return [{
        "type": "rate_limit_burst",
        "severity": "medium",
        "ts": first.ts.isoformat(),
        "agent_id": first.agent_id,
        "event": AuditEvent.RATE_LIMIT_BLOCK.value,
        "detail": {"count": count, "window_seconds": _BURST_WINDOW_SECONDS},
        "message": f"{count} rate-limit rejections within {_BURST_WINDOW_SECONDS}s window",
    }]


def _detect_repeated_denial(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    blocks = [e for e in entries if e.event == AuditEvent.POLICY_BLOCK]
    by_tool: dict[tuple[str, str], list[AuditEntry]] = {}
    for b in blocks:
        tool = b.detail.get("tool") or b.action or "unknown"
        by_tool.setdefault((b.agent_id, tool), []).append(b)

    alerts = []
    for (agent_id, tool), hits in by_tool.items():
        if len(hits) >= _REPEATED_DENIAL_THRESHOLD:
            alerts.append({
                "type": "repeated_denial",
                "severity": "medium",
                "ts": hits[-1].ts.isoformat(),
                "agent_id": agent_id,
                "event": AuditEvent.POLICY_BLOCK.value,
                "detail": {"tool": tool, "count": len(hits)},
                "message": f"Tool '{tool}' blocked {len(hits)} times for agent "
                           f"'{agent_id}' (possible probing)",
            })
    return alerts


def _detect_hard_risk_cluster(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    by_service: dict[str, list[AuditEntry]] = {}
    for e in entries:
        if e.event == AuditEvent.RISK_HARD:
            by_service.setdefault(e.service, []).append(e)

    alerts = []
    for service, hits in by_service.items():
        burst = _first_burst(hits, _HARD_RISK_WINDOW_SECONDS, _HARD_RISK_THRESHOLD)
        if burst is None:
            continue
        first, count = burst
        alerts.append({
            "type": "hard_risk_cluster",
            "severity": "high",
            "ts": first.ts.isoformat(),
            "agent_id": first.agent_id,
            "event": AuditEvent.RISK_HARD.value,
            "detail": {"service": service, "count": count,
                       "window_seconds": _HARD_RISK_WINDOW_SECONDS},
            "message": f"{count} destructive actions against '{service}' "
                       f"within {_HARD_RISK_WINDOW_SECONDS}s",
        })
    return alerts


def _detect_sandbox_refusal(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    return [
        {
            "type": "sandbox_refusal",
            "severity": "critical",
            "ts": e.ts.isoformat(),
            "agent_id": e.agent_id,
            "event": AuditEvent.SANDBOX_REFUSE.value,
            "detail": e.detail,
            "message": f"Refused sandbox command: {e.action[:120]}",
        }
        for e in entries
        if e.event == AuditEvent.SANDBOX_REFUSE
    ]

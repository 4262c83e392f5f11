"""Metrics aggregation over the guardrail audit log.

Counts decisions by event, service and agent, and derives block rates.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from contracts.audit import AuditDecision, AuditEntry, AuditEvent
from runtime.audit.query import read_entries


def compute_metrics(
    log_path: str | Path,
    *,
    since: datetime | None = None,
) -> dict[str, Any]:
    """Compute aggregated metrics from the audit log."""
    entries = read_entries(log_path)
    if since:
        entries = [e for e in entries if e.ts >= since]

    return {
        "decisions": _decision_counts(entries),
        "services": _service_usage(entries),
        "block_rates": _block_rates(entries),
        "summary": _summary(entries),
    }


def _decision_counts(entries: list[AuditEntry]) -> dict[str, int]:
    counts = {d.value: 0 for d in AuditDecision}
    for e in entries:
        counts[e.decision.value] += 1
    return counts


def _service_usage(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    """Entries per service, busiest first."""
    rows: dict[str, dict[str, Any]] = {}
    for e in entries:
        if not e.service:
            continue
        row = rows.setdefault(e.service, {"service": e.service, "total": 0, "denied": 0})
        row["total"] += 1
        if e.decision == AuditDecision.DENY:
            row["denied"] += 1
    return sorted(rows.values(), key=lambda r: -r["total"])


def _block_rates(entries: list[AuditEntry]) -> dict[str, Any]:
    allowed = sum(
        1 for e in entries
        if e.event in (AuditEvent.ACTION_ALLOW, AuditEvent.POLICY_APPROVAL)
    )
    policy_blocks = sum(1 for e in entries if e.event == AuditEvent.POLICY_BLOCK)
    rate_blocks = sum(1 for e in entries if e.event == AuditEvent.RATE_LIMIT_BLOCK)
    access_blocks = sum(1 for e in entries if e.event == AuditEvent.ACCESS_BLOCK)
    blocked = policy_blocks + rate_blocks + access_blocks

    return {
        "evaluated": allowed + blocked,
        "policy_blocks": policy_blocks,
        "rate_limit_blocks": rate_blocks,
        "access_blocks": access_blocks,
        "block_rate": round(blocked / max(allowed + blocked, 1), 4),
    }


def _summary(entries: list[AuditEntry]) -> dict[str, Any]:
    """High-level summary stats."""
    if not entries:
        return {"total_entries": 0, "first_entry": None, "last_entry": None}

    sorted_entries = sorted(entries, key=lambda e: e.ts)
    event_counts: dict[str, int] = {}
    for e in entries:
        event_counts[e.event.value] = event_counts.get(e.event.value, 0) + 1

    return {
        "total_entries": len(entries),
        "first_entry": sorted_entries[0].ts.isoformat(),
        "last_entry": sorted_entries[-1].ts.isoformat(),
        "event_counts": event_counts,
        "agents": sorted({e.agent_id for e in entries}),
    }

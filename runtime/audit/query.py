"""Read-side helpers over a guardrail audit log file.

Everything here works from the JSONL path alone, so the CLI, the alert
heuristics and the metrics can read a log that another process writes.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from contracts.audit import AuditDecision, AuditEntry, AuditEvent

logger = logging.getLogger(__name__)


def read_entries(log_path: str | Path) -> list[AuditEntry]:
    """Every record in file order.  A missing file reads as empty.

    Lines that do not parse (a write cut short by a crash) are skipped
    with a warning.
    """
    p = Path(log_path)
    if not p.exists():
        return []
    entries: list[AuditEntry] = []
    with p.open("r", encoding="utf-8") as f:
        for lineno, raw in enumerate(f, start=1):
            raw = raw.strip()
            if not raw:
                continue
            try:
                entries.append(AuditEntry(**json.loads(raw)))
            except (json.JSONDecodeError, TypeError, ValidationError) as exc:
                logger.warning("Skipping unreadable audit record %s:%d: %s", p, lineno, exc)
    return entries


def query_by_agent(log_path: str | Path, agent_id: str) -> list[AuditEntry]:
    return [e for e in read_entries(log_path) if e.agent_id == agent_id]


def query_by_event(
    log_path: str | Path, event: AuditEvent, limit: int = 100
) -> list[AuditEntry]:
    """The newest *limit* records of one event type, oldest first."""
    return [e for e in read_entries(log_path) if e.event == event][-limit:]


def tail(log_path: str | Path, n: int = 20) -> list[AuditEntry]:
    return read_entries(log_path)[-n:]


def query_filtered(
    log_path: str | Path,
    *,
    event: AuditEvent | None = None,
    agent_id: str | None = None,
    service: str | None = None,
    decision: AuditDecision | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditEntry], int]:
    """One page of matching records, newest first, plus the match count.

    Unset filters match everything; ``since`` and ``until`` are inclusive.
    """

    def matches(e: AuditEntry) -> bool:
        return (
            (event is None or e.event == event)
            and (agent_id is None or e.agent_id == agent_id)
            and (service is None or e.service == service)
            and (decision is None or e.decision == decision)
            and (since is None or e.ts >= since)
            and (until is None or e.ts <= until)
        )

    hits = sorted(
        (e for e in read_entries(log_path) if matches(e)),
        key=lambda e: e.ts,
        reverse=True,
    )
    return hits[offset : offset + limit], len(hits)

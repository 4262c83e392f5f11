"""Unit tests for the audit logger and query helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from contracts.audit import AuditDecision, AuditEntry, AuditEvent
from runtime.audit import query as audit_query
from runtime.audit.logger import JsonlAuditLogger


# ── helpers ─────────────────────────────────────────────────────────

_T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _entry(
    agent_id: str = "agent-1",
    event: AuditEvent = AuditEvent.POLICY_BLOCK,
    service: str = "slack",
    decision: AuditDecision = AuditDecision.DENY,
    offset: int = 0,
) -> AuditEntry:
    return AuditEntry(
        ts=_T0 + timedelta(seconds=offset),
        agent_id=agent_id,
        event=event,
        service=service,
        action="send_message",
        decision=decision,
    )


# ── logger tests ────────────────────────────────────────────────────


class TestJsonlAuditLogger:
    def test_log_creates_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        logger.log(_entry())
        assert log_file.exists()

    def test_log_appends_lines(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        logger.log(_entry(agent_id="a1"))
        logger.log(_entry(agent_id="a2"))
        lines = log_file.read_text().strip().split("\n")
        assert len(lines) == 2

    def test_query_by_agent(self, tmp_path: Path) -> None:
        logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
        logger.log(_entry(agent_id="a1"))
        logger.log(_entry(agent_id="a2"))
        logger.log(_entry(agent_id="a1", event=AuditEvent.ACCESS_BLOCK))

        results = logger.query_by_agent("a1")
        assert len(results) == 2
        assert all(e.agent_id == "a1" for e in results)

    def test_query_by_event_limit(self, tmp_path: Path) -> None:
        logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
        for i in range(5):
            logger.log(_entry(event=AuditEvent.RATE_LIMIT_BLOCK, offset=i))
        logger.log(_entry(event=AuditEvent.ACTION_ALLOW))

        results = logger.query_by_event(AuditEvent.RATE_LIMIT_BLOCK, limit=2)
        assert len(results) == 2
        assert results[-1].ts == _T0 + timedelta(seconds=4)

    def test_tail(self, tmp_path: Path) -> None:
        logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
        for i in range(10):
            logger.log(_entry(agent_id=f"a{i}"))
        assert [e.agent_id for e in logger.tail(3)] == ["a7", "a8", "a9"]

    def test_prunes_to_max_entries(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file, max_entries=3)
        for i in range(5):
            logger.log(_entry(agent_id=f"a{i}"))
        entries = logger.tail(10)
        assert [e.agent_id for e in entries] == ["a2", "a3", "a4"]
        assert len(log_file.read_text().strip().split("\n")) == 3

    def test_max_entries_counts_existing_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        first = JsonlAuditLogger(log_file)
        for i in range(3):
            first.log(_entry(agent_id=f"a{i}"))
        second = JsonlAuditLogger(log_file, max_entries=3)
        second.log(_entry(agent_id="a3"))
        assert [e.agent_id for e in second.tail(10)] == ["a1", "a2", "a3"]

    def test_clear(self, tmp_path: Path) -> None:
        logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
        logger.log(_entry())
        logger.clear()
        assert logger.tail() == []

    def test_roundtrip_detail(self, tmp_path: Path) -> None:
        logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
        entry = _entry()
        entry.detail = {"rule": "denylist", "tool": "exec"}
        logger.log(entry)
        assert logger.tail(1)[0].detail == {"rule": "denylist", "tool": "exec"}


# ── query helper tests ──────────────────────────────────────────────


class TestAuditQuery:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert audit_query.tail(tmp_path / "nope.jsonl") == []

    def test_query_by_agent(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        logger.log(_entry(agent_id="a1"))
        logger.log(_entry(agent_id="a2"))
        assert len(audit_query.query_by_agent(log_file, "a1")) == 1

    def test_query_filtered(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        logger.log(_entry(service="slack", offset=0))
        logger.log(_entry(service="gmail", offset=1))
        logger.log(_entry(service="slack", decision=AuditDecision.ALLOW,
                          event=AuditEvent.ACTION_ALLOW, offset=2))
        logger.log(_entry(service="slack", offset=3))

        page, total = audit_query.query_filtered(
            log_file, service="slack", decision=AuditDecision.DENY
        )
        assert total == 2
        # newest first
        assert page[0].ts > page[1].ts

    def test_query_filtered_time_range_and_paging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        for i in range(10):
            logger.log(_entry(offset=i * 60))

        page, total = audit_query.query_filtered(
            log_file,
            since=_T0 + timedelta(minutes=2),
            until=_T0 + timedelta(minutes=7),
            limit=2,
            offset=1,
        )
        assert total == 6
        assert [e.ts for e in page] == [
            _T0 + timedelta(minutes=6),
            _T0 + timedelta(minutes=5),
        ]

    def test_torn_line_is_skipped(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(log_file)
        logger.log(_entry(agent_id="a1"))
        with log_file.open("a", encoding="utf-8") as f:
            f.write('{"agent_id": "a2", "ev\n')
        assert [e.agent_id for e in audit_query.read_entries(log_file)] == ["a1"]

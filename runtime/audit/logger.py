"""Append-only JSONL audit logger."""

from __future__ import annotations

import os
import threading
from pathlib import Path

from contracts.audit import AuditEntry, AuditEvent, AuditLogger
from runtime.audit.query import read_entries


class JsonlAuditLogger(AuditLogger):
    """Thread-safe, append-only JSONL audit logger.

    With *max_entries* set, the file is trimmed back to the newest
    *max_entries* records whenever it grows past that size.
    """

    def __init__(self, path: str | Path, max_entries: int | None = None) -> None:
        self._path = Path(path)
        self._max_entries = max_entries
        self._lock = threading.Lock()
        # Ensure parent directory exists
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._count = len(self._read_lines())

    @property
    def path(self) -> Path:
        return self._path

    def log(self, entry: AuditEntry) -> None:
        line = entry.model_dump_json() + "\n"
        with self._lock:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            self._count += 1
            if self._max_entries is not None and self._count > self._max_entries:
                self._prune(self._max_entries)

    def query_by_agent(self, agent_id: str) -> list[AuditEntry]:
        return [e for e in self._read_all() if e.agent_id == agent_id]

    def query_by_event(self, event: AuditEvent, limit: int = 100) -> list[AuditEntry]:
        matches = [e for e in self._read_all() if e.event == event]
        return matches[-limit:]

    def tail(self, n: int = 20) -> list[AuditEntry]:
        entries = self._read_all()
        return entries[-n:]

    def clear(self) -> None:
        with self._lock:
            self._path.write_text("", encoding="utf-8")
            self._count = 0

    # ── internal ────────────────────────────────────────────────────

    def _prune(self, keep: int) -> None:
        lines = self._read_lines()[-keep:]
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        os.replace(tmp, self._path)
        self._count = len(lines)

    def _read_lines(self) -> list[str]:
        if not self._path.exists():
            return []
        with self._path.open("r", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def _read_all(self) -> list[AuditEntry]:
        return read_entries(self._path)

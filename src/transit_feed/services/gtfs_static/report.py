"""Parse report - per-table record counters, warnings and timing."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

MAX_REPORTED_MESSAGES = 100


class ParseReport:
    """Collects parse metrics and warnings."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: datetime | None = None
        self.duration_ms: int | None = None
        self.counts: dict[str, dict[str, int]] = {}
        # trip_id -> stop-times reserved in the first pass but never loaded
        self.incomplete_trips: dict[str, int] = {}
        self.warnings: list[str] = []
        self.error: str | None = None

    def init_table(self, table: str) -> None:
        self.counts[table] = {"read": 0, "kept": 0, "dropped": 0, "filtered": 0}

    def count(self, table: str, key: str, amount: int = 1) -> None:
        if table not in self.counts:
            self.init_table(table)
        self.counts[table][key] += amount

    def finish(self, warnings: list[str] | None = None, error: str | None = None) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.ended_at - self.started_at).total_seconds() * 1000)
        if warnings:
            self.warnings.extend(warnings)
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "failed" if self.error else "success",
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "source": self.source,
            "counts": self.counts,
            "incomplete_trips": self.incomplete_trips,
            "warnings": self.warnings[:MAX_REPORTED_MESSAGES],  # cap for response size
            "error": self.error,
        }

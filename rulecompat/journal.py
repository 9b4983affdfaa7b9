"""
Migration journal.

Append-only record of every migration gate decision and checkpoint, so an
operator can see how far a world got, why a run stopped, and where the next
start will resume from.

Entries are JSON Lines in <state_dir>/migration.jsonl. With no state
directory the journal keeps entries in memory only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Journal event names
GATE_EVALUATED = "gate.evaluated"
MIGRATION_STAMPED = "migration.stamped"
MIGRATION_BLOCKED = "migration.blocked"
MIGRATION_RELOCATED = "migration.relocated"
MIGRATION_CHECKPOINT = "migration.checkpoint"
MIGRATION_FAILED = "migration.failed"
MIGRATION_COMPLETED = "migration.completed"

JOURNAL_FILENAME = "migration.jsonl"


@dataclass
class JournalEntry:
    """A single journal entry."""
    timestamp: str
    event: str
    from_version: str | None = None
    to_version: str | None = None
    state: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"timestamp": self.timestamp, "event": self.event}
        if self.from_version is not None:
            d["from_version"] = self.from_version
        if self.to_version is not None:
            d["to_version"] = self.to_version
        if self.state is not None:
            d["state"] = self.state
        if self.error is not None:
            d["error"] = self.error
        if self.metadata:
            d["metadata"] = self.metadata
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        return cls(
            timestamp=data["timestamp"],
            event=data["event"],
            from_version=data.get("from_version"),
            to_version=data.get("to_version"),
            state=data.get("state"),
            error=data.get("error"),
            metadata=data.get("metadata", {}),
        )


def get_journal_path(state_dir: Path) -> Path:
    return state_dir / JOURNAL_FILENAME


class MigrationJournal:
    def __init__(self, state_dir: Path | None = None):
        self.state_dir = state_dir
        self._entries: list[JournalEntry] = []

    @property
    def path(self) -> Path | None:
        return get_journal_path(self.state_dir) if self.state_dir is not None else None

    def record(
        self,
        event: str,
        *,
        from_version: str | None = None,
        to_version: str | None = None,
        state: str | None = None,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> JournalEntry:
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            from_version=from_version,
            to_version=to_version,
            state=state,
            error=error,
            metadata=metadata or {},
        )
        self._entries.append(entry)

        path = self.path
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        return entry

    def entries(self, last_n: int | None = None) -> list[JournalEntry]:
        """Entries recorded so far: from disk when persisted, else this process's."""
        if self.state_dir is not None:
            return read_journal(self.state_dir, last_n=last_n)
        if last_n is not None:
            return self._entries[-last_n:]
        return list(self._entries)


def read_journal(state_dir: Path, last_n: int | None = None) -> list[JournalEntry]:
    """
    Read journal entries, oldest first.

    Malformed lines are skipped.
    """
    path = get_journal_path(state_dir)
    if not path.exists():
        return []

    entries = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(JournalEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError):
                continue

    if last_n is not None:
        return entries[-last_n:]
    return entries


def format_entry(entry: JournalEntry) -> str:
    """Format a journal entry for human-readable display."""
    line = f"[{entry.timestamp}] {entry.event}"
    if entry.from_version or entry.to_version:
        line += f" {entry.from_version or '-'} -> {entry.to_version or '-'}"
    lines = [line]
    if entry.state:
        lines.append(f"  state: {entry.state}")
    if entry.error:
        lines.append(f"  error: {entry.error}")
    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")
    return "\n".join(lines)

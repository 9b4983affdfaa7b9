"""Journal command: show recorded migration events."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..journal import format_entry, get_journal_path, read_journal


def run_journal(state_dir: Path, *, last_n: int | None = None) -> int:
    console = Console()
    entries = read_journal(state_dir, last_n=last_n)
    if not entries:
        console.print(f"No journal entries at {get_journal_path(state_dir)}", style="dim")
        return 0

    for entry in entries:
        console.print(format_entry(entry), highlight=False, markup=False)
    return 0

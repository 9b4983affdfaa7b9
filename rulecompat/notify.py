"""
User-facing notifications.

Persistent notifications stay visible until dismissed; the migration gate
uses one to report a world that is too old to migrate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from rich.console import Console

Level = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    permanent: bool = False


@runtime_checkable
class Notifier(Protocol):
    def info(self, message: str, *, permanent: bool = False) -> None: ...

    def warn(self, message: str, *, permanent: bool = False) -> None: ...

    def error(self, message: str, *, permanent: bool = False) -> None: ...


class ConsoleNotifier:
    """Prints notifications to stderr."""

    _STYLES = {"info": "cyan", "warning": "yellow", "error": "bold red"}

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True)

    def _print(self, level: Level, message: str, permanent: bool) -> None:
        prefix = "[persistent] " if permanent else ""
        self.console.print(f"{prefix}{message}", style=self._STYLES[level], markup=False, highlight=False)

    def info(self, message: str, *, permanent: bool = False) -> None:
        self._print("info", message, permanent)

    def warn(self, message: str, *, permanent: bool = False) -> None:
        self._print("warning", message, permanent)

    def error(self, message: str, *, permanent: bool = False) -> None:
        self._print("error", message, permanent)


@dataclass
class RecordingNotifier:
    """Keeps every notification; persistent ones are also kept apart."""

    notifications: list[Notification] = field(default_factory=list)

    def _add(self, level: Level, message: str, permanent: bool) -> None:
        self.notifications.append(Notification(level=level, message=message, permanent=permanent))

    def info(self, message: str, *, permanent: bool = False) -> None:
        self._add("info", message, permanent)

    def warn(self, message: str, *, permanent: bool = False) -> None:
        self._add("warning", message, permanent)

    def error(self, message: str, *, permanent: bool = False) -> None:
        self._add("error", message, permanent)

    @property
    def persistent(self) -> list[Notification]:
        return [n for n in self.notifications if n.permanent]

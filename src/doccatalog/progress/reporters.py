"""Progress reporter protocol and concrete reporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Protocol

from rich.console import Console
from rich.markup import escape

StatusLevel = Literal["info", "success", "warning", "error"]

_LEVEL_STYLES: dict[str, str] = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


class ProgressReporter(Protocol):
    """Observer of a running scan."""

    def on_status(self, message: str, level: StatusLevel) -> None: ...

    def on_progress(self, done: int, total: int) -> None: ...

    def on_complete(self, processed: int, errors: int, summary: str) -> None: ...

    def on_log_file(self, path: Path) -> None: ...


class NullProgressReporter:
    """Reporter that discards every event."""

    def on_status(self, message: str, level: StatusLevel) -> None:
        return None

    def on_progress(self, done: int, total: int) -> None:
        return None

    def on_complete(self, processed: int, errors: int, summary: str) -> None:
        return None

    def on_log_file(self, path: Path) -> None:
        return None


@dataclass(slots=True)
class RecordingProgressReporter:
    """Reporter that keeps every event in memory."""

    statuses: list[tuple[str, str]] = field(default_factory=list)
    ticks: list[tuple[int, int]] = field(default_factory=list)
    completions: list[tuple[int, int, str]] = field(default_factory=list)
    log_files: list[Path] = field(default_factory=list)

    def on_status(self, message: str, level: StatusLevel) -> None:
        self.statuses.append((message, level))

    def on_progress(self, done: int, total: int) -> None:
        self.ticks.append((done, total))

    def on_complete(self, processed: int, errors: int, summary: str) -> None:
        self.completions.append((processed, errors, summary))

    def on_log_file(self, path: Path) -> None:
        self.log_files.append(path)

    @property
    def messages(self) -> list[str]:
        return [message for message, _ in self.statuses]


class ConsoleProgressReporter:
    """Render scan events with rich, honoring quiet and summary-only modes."""

    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        quiet: bool = False,
        summary_only: bool = False,
    ) -> None:
        self._console = console or Console()
        self._quiet = quiet
        self._summary_only = summary_only

    def on_status(self, message: str, level: StatusLevel) -> None:
        if self._quiet and level != "error":
            return
        if self._summary_only and level not in {"warning", "error"}:
            return
        style = _LEVEL_STYLES.get(level, "white")
        self._console.print(f"[{style}]{escape(message)}[/{style}]", highlight=False)

    def on_progress(self, done: int, total: int) -> None:
        if self._quiet or self._summary_only or total <= 0:
            return
        self._console.print(f"[dim]({done}/{total})[/dim]")

    def on_complete(self, processed: int, errors: int, summary: str) -> None:
        if self._quiet and errors == 0:
            return
        style = "red" if errors else "green"
        self._console.print(f"[{style}]{escape(summary)}[/{style}]", highlight=False)

    def on_log_file(self, path: Path) -> None:
        if self._quiet or self._summary_only:
            return
        self._console.print(f"[dim]Scan transcript written to {escape(str(path))}[/dim]")


__all__ = [
    "StatusLevel",
    "ProgressReporter",
    "NullProgressReporter",
    "RecordingProgressReporter",
    "ConsoleProgressReporter",
]

"""Failure-tolerant delivery of scan progress with a persisted transcript."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .reporters import NullProgressReporter, ProgressReporter, StatusLevel

LOGGER = logging.getLogger(__name__)

TRANSCRIPT_PREFIX = "catalog-log-"
MAX_NAME_ATTEMPTS = 1000

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ProgressChannel:
    """Wrap a reporter so that observers can never disturb a scan.

    Every status line is timestamped, mirrored to the module logger, and kept
    in a transcript. Exceptions raised by the wrapped reporter are logged and
    swallowed. :meth:`complete` writes the transcript to
    ``catalog-log-YYYYmmdd-HHMMSS.txt``, adding a ``-N`` suffix when a concurrent
    scan already used that name, and delivers the summary exactly once.
    """

    def __init__(
        self,
        reporter: Optional[ProgressReporter] = None,
        transcript_dir: Optional[Path] = None,
    ) -> None:
        self._reporter: ProgressReporter = reporter or NullProgressReporter()
        self._transcript_dir = transcript_dir
        self._lines: list[str] = []
        self._completed = False
        self.transcript_path: Optional[Path] = None

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def transcript(self) -> list[str]:
        return list(self._lines)

    def status(self, message: str, level: StatusLevel = "info") -> None:
        stamped = f"[{datetime.now().strftime('%H:%M:%S')}] {message}"
        self._lines.append(stamped)
        LOGGER.log(_LOG_LEVELS.get(level, logging.INFO), message)
        self._deliver("on_status", stamped, level)

    def info(self, message: str) -> None:
        self.status(message, "info")

    def success(self, message: str) -> None:
        self.status(message, "success")

    def warning(self, message: str) -> None:
        self.status(message, "warning")

    def error(self, message: str) -> None:
        self.status(message, "error")

    def progress(self, done: int, total: int) -> None:
        self._deliver("on_progress", done, total)

    def complete(self, processed: int, errors: int, summary: str) -> None:
        """Persist the transcript and deliver the terminal summary once."""
        if self._completed:
            return
        self._completed = True

        for line in summary.splitlines():
            self._lines.append(line)

        self.transcript_path = self._write_transcript()
        if self.transcript_path is not None:
            self._deliver("on_log_file", self.transcript_path)
        self._deliver("on_complete", processed, errors, summary)

    def _write_transcript(self) -> Optional[Path]:
        if self._transcript_dir is None:
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        content = "\n".join(self._lines) + "\n"
        path = self._transcript_dir / f"{TRANSCRIPT_PREFIX}{stamp}.txt"
        try:
            self._transcript_dir.mkdir(parents=True, exist_ok=True)
            for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
                try:
                    with path.open("x", encoding="utf-8") as handle:
                        handle.write(content)
                    return path
                except FileExistsError:
                    # Another scan finished within the same second.
                    path = self._transcript_dir / f"{TRANSCRIPT_PREFIX}{stamp}-{attempt}.txt"
        except OSError as exc:
            LOGGER.error("Could not write scan transcript %s: %s", path, exc)
            return None
        LOGGER.error("Could not find a free transcript name for %s", stamp)
        return None

    def _deliver(self, method: str, *args: object) -> None:
        try:
            getattr(self._reporter, method)(*args)
        except Exception:
            LOGGER.exception("Progress reporter failed during %s", method)


__all__ = ["ProgressChannel", "TRANSCRIPT_PREFIX"]

"""Scan result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

SUMMARY_ERROR_LIMIT = 5


@dataclass(slots=True)
class ScanOutcome:
    """Aggregate result of one scan invocation.

    Attributes:
        discovered: Candidate files found under usable targets.
        processed: Files ingested plus files already catalogued.
        skipped: Files that were already catalogued.
        ingested: Documents created by this scan.
        errors: Failed files and targets, plus fatal configuration errors.
        error_details: Failing path (or setting) mapped to its message, in order.
        target_errors: Paths of watch targets that could not be used or read.
        transcript_path: Location of the persisted status transcript.
    """

    discovered: int = 0
    processed: int = 0
    skipped: int = 0
    ingested: int = 0
    errors: int = 0
    error_details: dict[str, str] = field(default_factory=dict)
    target_errors: list[str] = field(default_factory=list)
    transcript_path: Optional[Path] = None

    def record_error(self, key: str, message: str) -> None:
        self.error_details[key] = message
        self.errors += 1

    def record_target_error(self, target: str, message: str) -> None:
        self.target_errors.append(target)
        self.record_error(target, message)

    def summary_lines(self, limit: int = SUMMARY_ERROR_LIMIT) -> list[str]:
        """Return the human-readable summary.

        At most ``limit`` failing entries are listed; the rest are collapsed
        into a single ``... and N more errors`` line.
        """
        lines: list[str] = []
        if self.processed > 0:
            headline = f"Cataloguing complete: {self.processed} documents processed"
            if self.errors:
                headline += f", {self.errors} errors"
            lines.append(headline)
        elif self.errors > 0:
            lines.append(f"Cataloguing finished with errors: {self.errors} errors")
        else:
            lines.append("No new documents found in the watched folders")

        if self.errors and self.error_details:
            lines.append("Error details:")
            for key, message in list(self.error_details.items())[:limit]:
                lines.append(f"  - {Path(key).name or key}: {message}")
            remaining = len(self.error_details) - limit
            if remaining > 0:
                lines.append(f"  ... and {remaining} more errors. Check the logs for details.")
        return lines

    @property
    def summary(self) -> str:
        return "\n".join(self.summary_lines())

    def to_dict(self) -> dict[str, Any]:
        return {
            "discovered": self.discovered,
            "processed": self.processed,
            "skipped": self.skipped,
            "ingested": self.ingested,
            "errors": self.errors,
            "error_details": dict(self.error_details),
            "target_errors": list(self.target_errors),
            "transcript_path": str(self.transcript_path) if self.transcript_path else None,
        }


__all__ = ["ScanOutcome", "SUMMARY_ERROR_LIMIT"]

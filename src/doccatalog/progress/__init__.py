"""Scan progress reporting."""

from .channel import TRANSCRIPT_PREFIX, ProgressChannel
from .reporters import (
    ConsoleProgressReporter,
    NullProgressReporter,
    ProgressReporter,
    RecordingProgressReporter,
    StatusLevel,
)

__all__ = [
    "ProgressChannel",
    "TRANSCRIPT_PREFIX",
    "ProgressReporter",
    "NullProgressReporter",
    "RecordingProgressReporter",
    "ConsoleProgressReporter",
    "StatusLevel",
]

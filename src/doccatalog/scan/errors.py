"""Errors raised by the scan orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from doccatalog.ingestion.errors import TargetError

if TYPE_CHECKING:
    from .models import ScanOutcome


class ScanError(Exception):
    """Base exception for scan failures.

    Attributes:
        outcome: Partial outcome accumulated before the scan was aborted.
    """

    def __init__(self, message: str, outcome: Optional["ScanOutcome"] = None) -> None:
        super().__init__(message)
        self.outcome = outcome


class ConfigurationError(ScanError):
    """Raised when the scan cannot start because of its configuration."""


class NoUsableTargetsError(ConfigurationError):
    """Raised when none of the configured folders can be used."""


class NoOwnerIdentityError(ConfigurationError):
    """Raised when no owner identity is configured or discoverable."""


__all__ = [
    "ScanError",
    "ConfigurationError",
    "NoUsableTargetsError",
    "NoOwnerIdentityError",
    "TargetError",
]

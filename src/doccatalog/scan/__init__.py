"""Scan orchestration."""

from .errors import (
    ConfigurationError,
    NoOwnerIdentityError,
    NoUsableTargetsError,
    ScanError,
    TargetError,
)
from .models import ScanOutcome
from .service import ScanService

__all__ = [
    "ScanService",
    "ScanOutcome",
    "ScanError",
    "ConfigurationError",
    "NoUsableTargetsError",
    "NoOwnerIdentityError",
    "TargetError",
]

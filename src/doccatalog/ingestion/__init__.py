"""File discovery and content extraction."""

from .detectors import KindDetector
from .discovery import DirectoryScanner, ensure_target
from .errors import TargetError
from .extractors import ContentExtractor, truncate_text
from .models import (
    SUPPORTED_EXTENSIONS,
    CandidateFile,
    DocumentKind,
    ExtractionResult,
    WatchTarget,
    kind_label,
)

__all__ = [
    "KindDetector",
    "DirectoryScanner",
    "ensure_target",
    "TargetError",
    "ContentExtractor",
    "truncate_text",
    "SUPPORTED_EXTENSIONS",
    "CandidateFile",
    "DocumentKind",
    "ExtractionResult",
    "WatchTarget",
    "kind_label",
]

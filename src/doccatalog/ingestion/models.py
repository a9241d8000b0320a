"""Data models shared by the ingestion stages."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel


class DocumentKind(str, Enum):
    """Kinds of documents the extractor knows how to read."""

    PDF = "pdf"
    WORD = "word"
    TEXT = "text"
    SPREADSHEET = "spreadsheet"
    EMAIL = "email"
    OTHER = "other"


EXTENSION_KINDS: Dict[str, DocumentKind] = {
    ".pdf": DocumentKind.PDF,
    ".docx": DocumentKind.WORD,
    ".doc": DocumentKind.WORD,
    ".txt": DocumentKind.TEXT,
    ".csv": DocumentKind.TEXT,
    ".xlsx": DocumentKind.SPREADSHEET,
    ".xls": DocumentKind.SPREADSHEET,
    ".eml": DocumentKind.EMAIL,
    ".msg": DocumentKind.EMAIL,
}

SUPPORTED_EXTENSIONS = frozenset(EXTENSION_KINDS)

_EXTENSION_LABELS = {
    ".pdf": "PDF",
    ".docx": "Word",
    ".doc": "Word",
    ".xlsx": "Excel",
    ".xls": "Excel",
    ".csv": "CSV",
    ".txt": "Text",
    ".eml": "Email",
    ".msg": "Email",
}


def kind_label(extension: str) -> str:
    """Return the human label used for an extension in status lines."""
    extension = extension.lower()
    return _EXTENSION_LABELS.get(extension, extension.lstrip(".") or "file")


class CandidateFile(BaseModel):
    """A supported file discovered under a watch target.

    Attributes:
        path: Absolute path to the file.
        extension: Lower-cased file extension including the dot.
        kind: Detected document kind.
    """

    path: Path
    extension: str
    kind: DocumentKind

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def label(self) -> str:
        return kind_label(self.extension)


class ExtractionResult(BaseModel):
    """Text pulled out of a candidate file.

    Attributes:
        text: Extracted text, possibly a bracketed placeholder.
        diagnostic: Reason extraction failed or was skipped, when it did.
        truncated: Whether the text was cut to the configured maximum.
    """

    text: str = ""
    diagnostic: Optional[str] = None
    truncated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class WatchTarget(BaseModel):
    """State of a configured directory at the start of a scan.

    Attributes:
        path: Directory to scan.
        existed: Whether the directory was already present.
        created: Whether the scan created the directory.
        error: Reason the target cannot be used, if any.
    """

    path: Path
    existed: bool = False
    created: bool = False
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.error is None


__all__ = [
    "DocumentKind",
    "EXTENSION_KINDS",
    "SUPPORTED_EXTENSIONS",
    "kind_label",
    "CandidateFile",
    "ExtractionResult",
    "WatchTarget",
]

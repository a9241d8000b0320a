"""Document kind detection."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from .models import EXTENSION_KINDS, DocumentKind


class KindDetector:
    """Map a file to a :class:`DocumentKind` using its extension."""

    def __init__(self, mapping: Mapping[str, DocumentKind] | None = None) -> None:
        self._mapping = dict(mapping if mapping is not None else EXTENSION_KINDS)

    def detect(self, path: Path) -> DocumentKind:
        """Return the kind for ``path``; unknown extensions map to ``OTHER``."""
        return self._mapping.get(path.suffix.lower(), DocumentKind.OTHER)

"""Durable storage for ingested files."""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class FileStore:
    """Copy ingested files into an owner-scoped archive directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    def destination_for(self, source: Path, owner_id: str) -> Path:
        return self.root / str(owner_id) / f"{uuid.uuid4().hex}_{source.name}"

    def archive(self, source: Path, owner_id: str) -> Path:
        """Copy ``source`` into the archive and return the stored path.

        The original is left in place. When the copy fails for any I/O reason
        the source path itself is returned, so callers can still catalogue the
        file where it lies.

        Args:
            source: File to archive.
            owner_id: Identity whose archive directory receives the copy.

        Returns:
            Path: Location of the archived copy, or ``source`` on failure.
        """
        destination = self.destination_for(source, owner_id)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as exc:
            LOGGER.warning("Could not archive %s, keeping original location: %s", source, exc)
            return source
        LOGGER.debug("Archived %s to %s", source, destination)
        return destination

    def delete_original(self, source: Path) -> bool:
        """Remove ``source``; failures are logged and reported as ``False``."""
        try:
            source.unlink()
        except OSError as exc:
            LOGGER.warning("Could not delete original file %s: %s", source, exc)
            return False
        return True

    def discard(self, stored: Path) -> None:
        """Remove an archived copy that never made it into the catalog."""
        if self.root not in stored.parents:
            return
        try:
            stored.unlink()
        except OSError as exc:
            LOGGER.warning("Could not remove orphaned archive copy %s: %s", stored, exc)


__all__ = ["FileStore"]

"""File archival helpers."""

from .archive import FileStore

__all__ = ["FileStore"]

"""Catalog data models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from doccatalog.ingestion.models import DocumentKind

MAX_CATEGORY_NAME = 100
MAX_CATEGORY_DESCRIPTION = 255

_WHITESPACE = re.compile(r"\s+")


def clean_category_name(name: str) -> str:
    """Return the stored display form: whitespace collapsed, capped in length."""
    return _WHITESPACE.sub(" ", name.strip())[:MAX_CATEGORY_NAME].rstrip()


def normalize_category_name(name: str) -> str:
    """Return the comparison key used for case-insensitive category uniqueness."""
    return clean_category_name(name).casefold()


class Category(BaseModel):
    """Shared grouping for catalogued documents."""

    id: int
    name: str
    description: str = ""


class NewDocument(BaseModel):
    """Document record prior to insertion.

    Attributes:
        name: Display name, normally the original file name.
        description: Free-text description, usually the classification rationale.
        kind: Detected document kind.
        storage_path: Where the catalogued bytes live.
        size_bytes: Size of the stored file.
        uploaded_at: Ingestion timestamp (UTC).
        category_id: Owning category.
        tags: Ordered tags.
        confidential: Confidentiality flag.
        uploaded_by: Identity of the owner the document is filed under.
        source_path: Original path of the file; the deduplication key.
    """

    name: str
    description: str = ""
    kind: DocumentKind = DocumentKind.OTHER
    storage_path: str
    size_bytes: int = 0
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    category_id: int
    tags: List[str] = Field(default_factory=list)
    confidential: bool = False
    uploaded_by: str
    source_path: str


class Document(NewDocument):
    """Persisted document record."""

    id: int


class UserRecord(BaseModel):
    """User known to the catalog; only used to resolve the default owner."""

    id: str
    username: str
    role: Optional[str] = None


__all__ = [
    "Category",
    "Document",
    "NewDocument",
    "UserRecord",
    "clean_category_name",
    "normalize_category_name",
    "MAX_CATEGORY_NAME",
    "MAX_CATEGORY_DESCRIPTION",
]

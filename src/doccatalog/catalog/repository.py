"""SQLite-backed document and category repository."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import CatalogError, DuplicateCategoryError, DuplicateDocumentError
from .models import (
    MAX_CATEGORY_DESCRIPTION,
    Category,
    Document,
    NewDocument,
    UserRecord,
    clean_category_name,
    normalize_category_name,
)

LOGGER = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30.0


class SQLiteCatalog:
    """Persistence layer for categories, documents, and users.

    Every operation opens its own short-lived connection so that separate
    threads, and separate processes, can share one database file. Uniqueness of
    category names and document source paths is enforced by the schema.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    normalized_name TEXT NOT NULL UNIQUE,
                    description TEXT NOT NULL DEFAULT '',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    kind TEXT NOT NULL,
                    storage_path TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    uploaded_at TEXT NOT NULL,
                    category_id INTEGER NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    confidential INTEGER NOT NULL DEFAULT 0,
                    uploaded_by TEXT NOT NULL,
                    source_path TEXT NOT NULL UNIQUE,
                    FOREIGN KEY(category_id) REFERENCES categories(id)
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_documents_category_id
                    ON documents(category_id)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    role TEXT
                )
                """
            )

    # ------------------------------------------------------------------ #
    # Documents                                                          #
    # ------------------------------------------------------------------ #

    def exists_by_source_path(self, path: Path | str) -> bool:
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM documents WHERE source_path = ?", (str(path),)
            ).fetchone()
        return row is not None

    def get_document_by_source_path(self, path: Path | str) -> Optional[Document]:
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM documents WHERE source_path = ?", (str(path),)
            ).fetchone()
        return _document_from_row(row) if row is not None else None

    def create_document(self, document: NewDocument) -> Document:
        """Insert a document record.

        Args:
            document: Record to persist.

        Returns:
            Document: The stored record including its identifier.

        Raises:
            DuplicateDocumentError: If the source path is already catalogued.
            CatalogError: If the database rejects the record for another reason.
        """
        try:
            with self.transaction() as conn:
                doc_id = conn.execute(
                    """
                    INSERT INTO documents(
                        name, description, kind, storage_path, size_bytes, uploaded_at,
                        category_id, tags, confidential, uploaded_by, source_path
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        document.name,
                        document.description,
                        document.kind.value,
                        document.storage_path,
                        document.size_bytes,
                        document.uploaded_at.isoformat(),
                        document.category_id,
                        json.dumps(document.tags, ensure_ascii=False),
                        int(document.confidential),
                        document.uploaded_by,
                        document.source_path,
                    ),
                ).lastrowid
        except sqlite3.IntegrityError as exc:
            if "source_path" in str(exc):
                raise DuplicateDocumentError(
                    f"Document already catalogued for {document.source_path}"
                ) from exc
            raise CatalogError(f"Could not store document {document.name}: {exc}") from exc
        except sqlite3.Error as exc:
            raise CatalogError(f"Could not store document {document.name}: {exc}") from exc

        return Document(id=int(doc_id), **document.model_dump())

    def count_documents(self) -> int:
        with self.transaction() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM documents").fetchone()
        return int(row["total"])

    # ------------------------------------------------------------------ #
    # Categories                                                         #
    # ------------------------------------------------------------------ #

    def find_category_by_name(self, name: str) -> Optional[Category]:
        """Return the category whose normalized name matches ``name``, if any."""
        key = normalize_category_name(name)
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT id, name, description FROM categories WHERE normalized_name = ?",
                (key,),
            ).fetchone()
        return _category_from_row(row) if row is not None else None

    def create_category(self, name: str, description: str = "") -> Category:
        """Insert a new category.

        Raises:
            DuplicateCategoryError: If a category with the same normalized name exists.
            CatalogError: If the name is blank or the insert fails.
        """
        display = clean_category_name(name)
        if not display:
            raise CatalogError("Category name must not be empty")
        description = (description or "")[:MAX_CATEGORY_DESCRIPTION]

        try:
            with self.transaction() as conn:
                category_id = conn.execute(
                    """
                    INSERT INTO categories(name, normalized_name, description)
                    VALUES (?, ?, ?)
                    """,
                    (display, normalize_category_name(display), description),
                ).lastrowid
        except sqlite3.IntegrityError as exc:
            raise DuplicateCategoryError(f"Category '{display}' already exists") from exc
        except sqlite3.Error as exc:
            raise CatalogError(f"Could not create category '{display}': {exc}") from exc

        LOGGER.info("Created category '%s' (id=%s)", display, category_id)
        return Category(id=int(category_id), name=display, description=description)

    def list_categories(self) -> List[Category]:
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT id, name, description FROM categories ORDER BY name COLLATE NOCASE"
            ).fetchall()
        return [_category_from_row(row) for row in rows]

    def count_documents_by_category(self) -> dict[int, int]:
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT category_id, COUNT(*) AS total FROM documents GROUP BY category_id"
            ).fetchall()
        return {int(row["category_id"]): int(row["total"]) for row in rows}

    # ------------------------------------------------------------------ #
    # Users                                                              #
    # ------------------------------------------------------------------ #

    def add_user(self, user_id: str, username: str, role: Optional[str] = None) -> UserRecord:
        try:
            with self.transaction() as conn:
                conn.execute(
                    "INSERT INTO users(id, username, role) VALUES (?, ?, ?)",
                    (user_id, username, role),
                )
        except sqlite3.Error as exc:
            raise CatalogError(f"Could not add user {username}: {exc}") from exc
        return UserRecord(id=user_id, username=username, role=role)

    def find_users_in_role(self, role: str) -> List[UserRecord]:
        """Return users holding ``role`` (case-insensitive), oldest first."""
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT id, username, role FROM users WHERE lower(role) = lower(?) ORDER BY rowid",
                (role,),
            ).fetchall()
        return [UserRecord(id=row["id"], username=row["username"], role=row["role"]) for row in rows]


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(id=int(row["id"]), name=row["name"], description=row["description"] or "")


def _document_from_row(row: sqlite3.Row) -> Document:
    return Document(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"],
        kind=row["kind"],
        storage_path=row["storage_path"],
        size_bytes=int(row["size_bytes"]),
        uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        category_id=int(row["category_id"]),
        tags=json.loads(row["tags"] or "[]"),
        confidential=bool(row["confidential"]),
        uploaded_by=row["uploaded_by"],
        source_path=row["source_path"],
    )


__all__ = ["SQLiteCatalog"]

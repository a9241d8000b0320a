"""Catalog persistence and category resolution."""

from .errors import CatalogError, DuplicateCategoryError, DuplicateDocumentError
from .models import (
    Category,
    Document,
    NewDocument,
    UserRecord,
    clean_category_name,
    normalize_category_name,
)
from .repository import SQLiteCatalog
from .resolver import CategoryResolution, CategoryResolutionError, CategoryResolver

__all__ = [
    "CatalogError",
    "DuplicateCategoryError",
    "DuplicateDocumentError",
    "Category",
    "Document",
    "NewDocument",
    "UserRecord",
    "clean_category_name",
    "normalize_category_name",
    "SQLiteCatalog",
    "CategoryResolution",
    "CategoryResolutionError",
    "CategoryResolver",
]

"""Catalog persistence errors."""


class CatalogError(Exception):
    """Base exception for catalog repository operations."""


class DuplicateCategoryError(CatalogError):
    """Raised when a category with the same normalized name already exists."""


class DuplicateDocumentError(CatalogError):
    """Raised when a document for the same source path is already catalogued."""

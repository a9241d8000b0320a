"""Find-or-create resolution of suggested category names."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from doccatalog.classification.models import UNCATEGORIZED_DESCRIPTION, UNCATEGORIZED_NAME

from .errors import CatalogError, DuplicateCategoryError
from .models import Category

LOGGER = logging.getLogger(__name__)


class CategoryStore(Protocol):
    def find_category_by_name(self, name: str) -> Optional[Category]: ...

    def create_category(self, name: str, description: str = "") -> Category: ...


class CategoryResolutionError(CatalogError):
    """Raised when no strategy could produce a category for a name."""


@dataclass(slots=True)
class CategoryResolution:
    """Outcome of resolving a single category name."""

    category: Category
    created: bool
    strategy: str


Strategy = Callable[[str, str], Optional[Category]]


class CategoryResolver:
    """Resolve category names against a shared store.

    Resolution walks an ordered chain of strategies; each returns a category
    or ``None`` to fall through to the next:

    * ``lookup`` finds an existing category by normalized name.
    * ``create`` inserts a new row; a uniqueness violation falls through.
    * ``reread`` looks the name up again, observing whichever concurrent
      caller won the insert.
    """

    def __init__(self, store: CategoryStore) -> None:
        self._store = store
        self._strategies: Sequence[tuple[str, Strategy]] = (
            ("lookup", self._lookup),
            ("create", self._create),
            ("reread", self._lookup),
        )

    def resolve(self, name: str, description: str = "") -> CategoryResolution:
        """Find or create the category called ``name``.

        Args:
            name: Suggested category display name (case-insensitive).
            description: Description used if the category has to be created.

        Returns:
            CategoryResolution: The category and the strategy that produced it.

        Raises:
            CategoryResolutionError: If every strategy fell through.
        """
        if not name or not name.strip():
            raise CategoryResolutionError("Category name must not be empty")

        for label, strategy in self._strategies:
            try:
                category = strategy(name, description)
            except Exception as exc:
                LOGGER.warning("Category %s for '%s' failed: %s", label, name, exc)
                continue
            if category is not None:
                return CategoryResolution(category=category, created=label == "create", strategy=label)

        raise CategoryResolutionError(f"Could not resolve or create category '{name}'")

    def resolve_or_create(self, name: str, description: str = "") -> Category:
        return self.resolve(name, description).category

    def ensure_sentinel(self) -> Category:
        """Return the ``Uncategorized`` category, creating it on first use."""
        return self.resolve_or_create(UNCATEGORIZED_NAME, UNCATEGORIZED_DESCRIPTION)

    def _lookup(self, name: str, description: str) -> Optional[Category]:
        return self._store.find_category_by_name(name)

    def _create(self, name: str, description: str) -> Optional[Category]:
        try:
            return self._store.create_category(name, description)
        except DuplicateCategoryError:
            LOGGER.debug("Category '%s' was created concurrently; re-reading", name)
            return None


__all__ = ["CategoryResolver", "CategoryResolution", "CategoryResolutionError", "CategoryStore"]

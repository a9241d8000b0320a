"""Classification data models."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_DESCRIPTION = "Documents awaiting categorization"
UNCATEGORIZED_TAG = "uncategorized"


class ClassificationSuggestion(BaseModel):
    """Category and tag proposal returned for a single document.

    Attributes:
        category: Suggested category display name.
        description: Suggested description for a newly created category.
        tags: Ordered, de-duplicated tags.
        confidential: Whether the document should be flagged confidential.
        rationale: Free-text explanation of the classification.
    """

    category: str = UNCATEGORIZED_NAME
    description: str = UNCATEGORIZED_DESCRIPTION
    tags: List[str] = Field(default_factory=lambda: [UNCATEGORIZED_TAG])
    confidential: bool = False
    rationale: str = ""

    @classmethod
    def fallback(cls, reason: str) -> "ClassificationSuggestion":
        """Return the sentinel suggestion used whenever classification degrades."""
        return cls(rationale=reason)

    @property
    def is_fallback(self) -> bool:
        return self.category.strip().casefold() == UNCATEGORIZED_NAME.casefold()


__all__ = [
    "ClassificationSuggestion",
    "UNCATEGORIZED_NAME",
    "UNCATEGORIZED_DESCRIPTION",
    "UNCATEGORIZED_TAG",
]

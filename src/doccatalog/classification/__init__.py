"""Classification client and suggestion parsing."""

from .client import ClassificationClient, ExchangeLog, read_exchange_log
from .models import (
    UNCATEGORIZED_DESCRIPTION,
    UNCATEGORIZED_NAME,
    UNCATEGORIZED_TAG,
    ClassificationSuggestion,
)
from .parsing import parse_suggestion

__all__ = [
    "ClassificationClient",
    "ExchangeLog",
    "read_exchange_log",
    "ClassificationSuggestion",
    "UNCATEGORIZED_NAME",
    "UNCATEGORIZED_DESCRIPTION",
    "UNCATEGORIZED_TAG",
    "parse_suggestion",
]

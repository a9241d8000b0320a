"""Recover a classification suggestion from loosely structured model output.

The classification service is asked for a JSON object but is not guaranteed
to return one. Parsing walks through progressively looser strategies:

1. the whole reply as JSON;
2. the span between the first ``{`` and the last ``}``;
3. fenced code blocks and brace groups that mention ``"category"``;
4. ``key: value`` pairs scraped from prose.

When a category is recovered without tags, the category name itself becomes
the only tag. ``None`` means nothing usable was found.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Iterator, Mapping, Optional

from .models import UNCATEGORIZED_DESCRIPTION, ClassificationSuggestion

_BLOCK_PATTERNS = (
    re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE),
    re.compile(r"```\s*(\{.*?\})\s*```", re.DOTALL),
    re.compile(r"(\{[^{}]*[\"']category[\"'][^{}]*\})", re.IGNORECASE),
)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

# Markdown emphasis around keys, e.g. ``**Category**: Finance``.
_EMPHASIS = r"[*_`]*"

_VALUE_TEMPLATE = (
    r"\b(?:{keys})" + _EMPHASIS + r"[\"']?\s*(?:[:=]|\bis\b)" + _EMPHASIS + r"\s*[\"']?"
    r"(?P<value>[^\n\"']+?)(?=\s*(?:[.;](?:\s|$)|\n|[\"']|$))"
)
_CATEGORY_VALUE = re.compile(_VALUE_TEMPLATE.format(keys="category"), re.IGNORECASE)
_DESCRIPTION_VALUE = re.compile(
    _VALUE_TEMPLATE.format(keys=r"(?:category[ _]?)?description"), re.IGNORECASE
)
_RATIONALE_VALUE = re.compile(
    _VALUE_TEMPLATE.format(keys="rationale|explanation|reasoning"), re.IGNORECASE
)
_TAG_PATTERNS = (
    re.compile(
        r"\btags?" + _EMPHASIS + r"[\"']?\s*[:=]?" + _EMPHASIS + r"\s*\[(?P<value>.*?)\]",
        re.DOTALL | re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:tags?|keywords?)" + _EMPHASIS + r"[\"']?\s*[:=]" + _EMPHASIS
        + r"\s*(?P<value>[^\n]+)",
        re.IGNORECASE,
    ),
)
_CONFIDENTIAL_VALUE = re.compile(
    r"\bconfidential" + _EMPHASIS + r"[\"']?\s*[:=]" + _EMPHASIS + r"\s*[\"']?(?P<value>\w+)",
    re.IGNORECASE,
)
_CONFIDENTIAL_PHRASES = ("document is confidential", "confidential document")

_TRUTHY = {"true", "yes", "y", "1", "si", "sì"}
_CATEGORY_KEYS = ("category",)
_DESCRIPTION_KEYS = ("categorydescription", "description")
_RATIONALE_KEYS = ("rationale", "explanation", "reasoning")


def parse_suggestion(text: str) -> Optional[ClassificationSuggestion]:
    """Return the best suggestion recoverable from ``text``, or ``None``."""
    if not text or not text.strip():
        return None

    for candidate in _json_candidates(text):
        payload = _load_object(candidate)
        if payload is None:
            continue
        suggestion = suggestion_from_mapping(payload)
        if suggestion is not None:
            return suggestion

    return _from_prose(text)


def suggestion_from_mapping(payload: Mapping[str, Any]) -> Optional[ClassificationSuggestion]:
    """Build a suggestion from a decoded JSON object.

    Keys are compared case-insensitively with underscores and spaces removed,
    so ``category_description`` and ``categoryDescription`` are equivalent.
    """
    fields = {_normalize_key(key): value for key, value in payload.items()}

    category = _first_text(fields, _CATEGORY_KEYS)
    if not category:
        return None

    description = _first_text(fields, _DESCRIPTION_KEYS) or UNCATEGORIZED_DESCRIPTION
    tags = _coerce_tags(fields.get("tags", fields.get("tag")))
    return ClassificationSuggestion(
        category=category,
        description=description,
        tags=tags or [tag_from_category(category)],
        confidential=_coerce_bool(fields.get("confidential")),
        rationale=_first_text(fields, _RATIONALE_KEYS),
    )


def tag_from_category(category: str) -> str:
    """Return the tag synthesized from a category name."""
    return category.strip().lower().replace(" ", "_")


# ---------------------------------------------------------------------- #
# JSON recovery                                                          #
# ---------------------------------------------------------------------- #


def _json_candidates(text: str) -> Iterator[str]:
    yield text.strip()

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        yield text[start : end + 1]

    for pattern in _BLOCK_PATTERNS:
        for match in pattern.finditer(text):
            yield match.group(1)


def _load_object(candidate: str) -> Optional[dict]:
    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            payload = json.loads(attempt)
        except ValueError:
            continue
        if isinstance(payload, dict):
            return payload
    return None


# ---------------------------------------------------------------------- #
# Prose recovery                                                         #
# ---------------------------------------------------------------------- #


def _from_prose(text: str) -> Optional[ClassificationSuggestion]:
    category = _search_value(_CATEGORY_VALUE, text)
    if not category:
        return None

    tags: list[str] = []
    for pattern in _TAG_PATTERNS:
        match = pattern.search(text)
        if match:
            tags = _coerce_tags(match.group("value"))
            if tags:
                break

    return ClassificationSuggestion(
        category=category,
        description=_search_value(_DESCRIPTION_VALUE, text) or UNCATEGORIZED_DESCRIPTION,
        tags=tags or [tag_from_category(category)],
        confidential=_prose_confidential(text),
        rationale=_search_value(_RATIONALE_VALUE, text)
        or "Recovered from an unstructured classification response",
    )


def _search_value(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    if not match:
        return ""
    return _clean(match.group("value"))


def _prose_confidential(text: str) -> bool:
    match = _CONFIDENTIAL_VALUE.search(text)
    if match:
        return match.group("value").lower() in _TRUTHY
    lowered = text.lower()
    if "not confidential" in lowered:
        return False
    return any(phrase in lowered for phrase in _CONFIDENTIAL_PHRASES)


# ---------------------------------------------------------------------- #
# Coercion helpers                                                       #
# ---------------------------------------------------------------------- #


def _normalize_key(key: Any) -> str:
    return str(key).casefold().replace("_", "").replace(" ", "").replace("-", "")


def _first_text(fields: Mapping[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = fields.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _clean(value: str) -> str:
    return value.strip().strip("\"'`*").strip().rstrip(".,;").strip()


def _coerce_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = re.split(r"[,;]", value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []

    tags: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        tag = _clean(item.strip().strip("[]"))
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


__all__ = ["parse_suggestion", "suggestion_from_mapping", "tag_from_category"]

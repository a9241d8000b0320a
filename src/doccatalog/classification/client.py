"""HTTP client for the external classification service.

The service speaks a chat-completions protocol. The client owns one shared
``httpx.Client`` but never mutates it: the bearer credential travels with each
request, so a single client can be used from concurrent scans.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx

from doccatalog.config.models import ClassifierSettings
from doccatalog.ingestion.extractors import DEFAULT_MAX_CHARS, truncate_text

from .models import ClassificationSuggestion
from .parsing import parse_suggestion

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an assistant that classifies business documents. Analyse the content "
    "of each document and suggest an appropriate category, a short description of "
    "that category, relevant tags, and whether the document is confidential."
)

_USER_PROMPT = """Analyse the following document and suggest an appropriate category and relevant tags.

File name: {file_name}
File type: {kind_label}

Document content:
{content}

Reply ONLY with JSON using this structure:
{{
    "category": "category name",
    "category_description": "short description of the category",
    "tags": ["tag1", "tag2", "tag3"],
    "confidential": true/false,
    "rationale": "short explanation of the classification"
}}"""


class ExchangeLog:
    """Append-only plain-text transcript of classification requests and replies."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def append(self, message: str) -> None:
        """Write a timestamped entry; failures are logged and ignored."""
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(f"[{stamp}] {message}\n\n")
        except OSError as exc:
            LOGGER.error("Could not write classification exchange log %s: %s", self.path, exc)


def read_exchange_log(path: Path, max_lines: int = 0) -> str:
    """Return the exchange log, or only its last ``max_lines`` lines when positive."""
    if not path.exists():
        return ""
    lines = path.read_text(encoding="utf-8", errors="replace").rstrip("\n").splitlines()
    if max_lines > 0:
        lines = lines[-max_lines:]
    return "\n".join(lines)


class ClassificationClient:
    """Ask the classification service for a category and tags."""

    def __init__(
        self,
        settings: ClassifierSettings,
        *,
        http_client: Optional[httpx.Client] = None,
        exchange_log: Optional[ExchangeLog] = None,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self._settings = settings
        self._http = http_client or httpx.Client(timeout=settings.timeout_seconds)
        self._owns_http = http_client is None
        self._max_chars = max_chars
        if exchange_log is None and settings.exchange_log_path:
            exchange_log = ExchangeLog(Path(settings.exchange_log_path).expanduser())
        self._exchange_log = exchange_log

    @property
    def available(self) -> bool:
        """Whether an endpoint and a credential are configured."""
        return bool(self._settings.endpoint and self._settings.api_key)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def classify(self, text: str, file_name: str, kind_label: str) -> ClassificationSuggestion:
        """Return a suggestion for the document; never raises.

        Args:
            text: Extracted document text.
            file_name: Base name of the document.
            kind_label: Human label for the document kind (``PDF``, ``Word``...).

        Returns:
            ClassificationSuggestion: Parsed suggestion, or the ``Uncategorized``
            fallback describing why none could be produced.
        """
        if not self.available:
            return ClassificationSuggestion.fallback("Classification service is not configured")

        try:
            reply = self._request(truncate_text(text, self._max_chars), file_name, kind_label)
        except httpx.HTTPError as exc:
            LOGGER.error("Classification request failed for %s: %s", file_name, exc)
            return ClassificationSuggestion.fallback(f"Classification request failed: {exc}")
        except Exception as exc:
            LOGGER.exception("Unexpected classification failure for %s", file_name)
            return ClassificationSuggestion.fallback(f"Classification failed: {exc}")

        if not reply.strip():
            LOGGER.warning("Empty classification reply for %s", file_name)
            return ClassificationSuggestion.fallback("No analysis available: empty reply")

        suggestion = parse_suggestion(reply)
        if suggestion is None:
            LOGGER.warning("Unusable classification reply for %s", file_name)
            return ClassificationSuggestion.fallback("Classification reply could not be parsed")

        self._log(
            f"RESULT for {file_name}:\n"
            f"Category: {suggestion.category}\n"
            f"Description: {suggestion.description}\n"
            f"Confidential: {suggestion.confidential}\n"
            f"Tags: {', '.join(suggestion.tags)}\n"
            f"Rationale: {suggestion.rationale}"
        )
        return suggestion

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _request(self, content: str, file_name: str, kind_label: str) -> str:
        payload = self._build_payload(content, file_name, kind_label)
        self._log(f"REQUEST for {file_name}:\n{json.dumps(payload, indent=2)}")

        response = self._http.post(
            str(self._settings.endpoint),
            json=payload,
            headers={"Authorization": f"Bearer {self._settings.api_key}"},
        )
        self._log(f"RESPONSE for {file_name} (status {response.status_code}):\n{response.text}")
        response.raise_for_status()
        return _reply_content(response.text)

    def _build_payload(self, content: str, file_name: str, kind_label: str) -> dict[str, Any]:
        prompt = _USER_PROMPT.format(file_name=file_name, kind_label=kind_label, content=content)
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }

    def _log(self, message: str) -> None:
        LOGGER.debug(message)
        if self._exchange_log is not None:
            self._exchange_log.append(message)


def _reply_content(body: str) -> str:
    """Pull the assistant message out of a chat-completions envelope.

    Falls back to a top-level ``content`` field, then to the raw body when the
    envelope is not JSON at all.
    """
    try:
        envelope = json.loads(body)
    except ValueError:
        return body

    if not isinstance(envelope, dict):
        return body

    choices = envelope.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]

    content = envelope.get("content")
    if isinstance(content, str):
        return content
    return body


__all__ = ["ClassificationClient", "ExchangeLog", "read_exchange_log", "SYSTEM_PROMPT"]

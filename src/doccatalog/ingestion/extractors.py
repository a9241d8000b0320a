"""Text extraction for the supported document kinds.

Every extractor returns plain text. Failures never escape
:meth:`ContentExtractor.extract`; they are turned into a bracketed diagnostic
so the classification step always receives something to work with.
"""

from __future__ import annotations

import logging
import re
from email import policy
from email.parser import BytesParser
from pathlib import Path
from typing import Callable, Dict

import openpyxl
from docx import Document as load_docx
from pypdf import PdfReader

from .models import DocumentKind, ExtractionResult

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 10_000
DEFAULT_MAX_ROWS = 100
ELLIPSIS = "..."
ROWS_OMITTED_MARKER = "... [more rows omitted] ..."

_HTML_TAG = re.compile(r"<[^>]*>")


def truncate_text(text: str, limit: int = DEFAULT_MAX_CHARS) -> str:
    """Cut ``text`` to ``limit`` characters, appending an ellipsis when shortened."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


class ContentExtractor:
    """Dispatch text extraction by :class:`DocumentKind`."""

    def __init__(
        self,
        *,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_rows: int = DEFAULT_MAX_ROWS,
    ) -> None:
        self.max_chars = max_chars
        self.max_rows = max_rows
        self._handlers: Dict[DocumentKind, Callable[[Path], str]] = {
            DocumentKind.TEXT: self._read_text,
            DocumentKind.PDF: self._read_pdf,
            DocumentKind.WORD: self._read_word,
            DocumentKind.SPREADSHEET: self._read_spreadsheet,
            DocumentKind.EMAIL: self._read_email,
        }

    def extract(self, path: Path, kind: DocumentKind) -> ExtractionResult:
        """Return the text content of ``path``.

        Args:
            path: File to read.
            kind: Kind detected for the file.

        Returns:
            ExtractionResult: Extracted text truncated to ``max_chars``, or a
            placeholder with ``diagnostic`` set when nothing could be read.
        """
        handler = self._handlers.get(kind)
        if handler is None:
            extension = path.suffix.lower() or "unknown"
            message = (
                f"[This is a {extension} file. "
                "A dedicated parser is required to extract its content.]"
            )
            return ExtractionResult(text=message, diagnostic="unsupported document kind")

        try:
            raw = handler(path)
        except Exception as exc:
            LOGGER.error("Text extraction failed for %s: %s", path, exc)
            return ExtractionResult(text=f"[extraction failed: {exc}]", diagnostic=str(exc))

        text = truncate_text(raw, self.max_chars)
        return ExtractionResult(text=text, truncated=len(raw) > self.max_chars)

    # ------------------------------------------------------------------ #
    # Per-kind readers                                                   #
    # ------------------------------------------------------------------ #

    def _read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8", errors="replace")

    def _read_pdf(self, path: Path) -> str:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n".join(pages)

    def _read_word(self, path: Path) -> str:
        document = load_docx(str(path))
        parts = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                parts.append("\t".join(cell.text for cell in row.cells))
        return "\n".join(parts)

    def _read_spreadsheet(self, path: Path) -> str:
        workbook = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
        lines: list[str] = []
        try:
            for sheet in workbook.worksheets:
                lines.append(f"Sheet: {sheet.title}")
                row_count = 0
                for row in sheet.iter_rows(values_only=True):
                    row_count += 1
                    if row_count > self.max_rows:
                        lines.append(ROWS_OMITTED_MARKER)
                        break
                    lines.append("\t".join("" if value is None else str(value) for value in row))
        finally:
            workbook.close()
        return "\n".join(lines)

    def _read_email(self, path: Path) -> str:
        with path.open("rb") as fh:
            message = BytesParser(policy=policy.default).parse(fh)

        lines = [
            f"From: {message.get('From', '')}",
            f"To: {message.get('To', '')}",
            f"Cc: {message.get('Cc', '')}",
            f"Subject: {message.get('Subject', '')}",
            f"Date: {message.get('Date', '')}",
            "",
        ]

        plain = message.get_body(preferencelist=("plain",))
        if plain is not None:
            lines.append(plain.get_content())
        else:
            html = message.get_body(preferencelist=("html",))
            if html is not None:
                lines.append(_HTML_TAG.sub("", html.get_content()))

        attachments = list(message.iter_attachments())
        if attachments:
            lines.append("")
            lines.append("Attachments:")
            for attachment in attachments:
                lines.append(f"- {attachment.get_filename() or 'unnamed attachment'}")
        return "\n".join(lines)


__all__ = [
    "ContentExtractor",
    "truncate_text",
    "DEFAULT_MAX_CHARS",
    "DEFAULT_MAX_ROWS",
    "ELLIPSIS",
    "ROWS_OMITTED_MARKER",
]

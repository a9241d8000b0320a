"""Tests for the HTTP classification client."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from doccatalog.classification import ClassificationClient, read_exchange_log
from doccatalog.config.models import ClassifierSettings

ENDPOINT = "https://classifier.test/v1/chat/completions"


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    tmp_path: Path,
    **overrides: Any,
) -> tuple[ClassificationClient, httpx.Client]:
    values: dict[str, Any] = {
        "endpoint": ENDPOINT,
        "api_key": "secret",
        "exchange_log_path": str(tmp_path / "exchanges.txt"),
    }
    values.update(overrides)
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ClassificationClient(ClassifierSettings(**values), http_client=http), http


def _chat_reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_classify_sends_chat_payload_with_per_request_credential(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _chat_reply(
            json.dumps({"category": "Invoices", "tags": ["billing"], "confidential": False})
        )

    client, http = _client(handler, tmp_path)

    suggestion = client.classify("Invoice total 100 EUR", "invoice.pdf", "PDF")

    assert suggestion.category == "Invoices"
    assert suggestion.tags == ["billing"]
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer secret"
    assert "Authorization" not in http.headers
    payload = json.loads(request.content)
    assert payload["model"] == "mistral-small-latest"
    assert payload["temperature"] == pytest.approx(0.3)
    assert payload["max_tokens"] == 1000
    assert [message["role"] for message in payload["messages"]] == ["system", "user"]
    user_prompt = payload["messages"][1]["content"]
    assert "invoice.pdf" in user_prompt
    assert "PDF" in user_prompt
    assert "Invoice total 100 EUR" in user_prompt


def test_classify_truncates_text_to_limit(tmp_path: Path) -> None:
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["messages"][1]["content"])
        return _chat_reply('{"category": "Notes"}')

    client, _ = _client(handler, tmp_path)

    client.classify("a" * 15_000, "long.txt", "Text")

    assert "a" * 10_000 + "..." in prompts[0]
    assert "a" * 10_001 not in prompts[0]


def test_top_level_content_and_raw_body_envelopes(tmp_path: Path) -> None:
    replies = iter(
        [
            httpx.Response(200, json={"content": "Category: Travel"}),
            httpx.Response(200, text="Category: Payroll\nTags: salary, hr"),
        ]
    )

    client, _ = _client(lambda request: next(replies), tmp_path)

    first = client.classify("trip", "trip.txt", "Text")
    second = client.classify("pay", "pay.txt", "Text")

    assert first.category == "Travel"
    assert first.tags == ["travel"]
    assert second.category == "Payroll"
    assert second.tags == ["salary", "hr"]


def test_unparsable_reply_falls_back(tmp_path: Path) -> None:
    client, _ = _client(lambda request: _chat_reply("The model is overloaded, sorry."), tmp_path)

    suggestion = client.classify("text", "a.txt", "Text")

    assert suggestion.is_fallback
    assert suggestion.category
    assert suggestion.tags


def test_empty_reply_falls_back(tmp_path: Path) -> None:
    client, _ = _client(lambda request: _chat_reply("   "), tmp_path)

    suggestion = client.classify("text", "a.txt", "Text")

    assert suggestion.is_fallback
    assert "empty" in suggestion.rationale


def test_http_error_falls_back(tmp_path: Path) -> None:
    client, _ = _client(lambda request: httpx.Response(500, text="boom"), tmp_path)

    suggestion = client.classify("text", "a.txt", "Text")

    assert suggestion.is_fallback
    assert "failed" in suggestion.rationale


def test_transport_error_falls_back(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = _client(handler, tmp_path)

    suggestion = client.classify("text", "a.txt", "Text")

    assert suggestion.is_fallback
    assert "connection refused" in suggestion.rationale


def test_unconfigured_client_is_unavailable(tmp_path: Path) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _chat_reply('{"category": "Never"}')

    client, _ = _client(handler, tmp_path, api_key=None)

    assert not client.available
    assert client.classify("text", "a.txt", "Text").is_fallback
    assert calls == []


def test_exchange_log_records_requests_and_results(tmp_path: Path) -> None:
    client, _ = _client(lambda request: _chat_reply('{"category": "Letters"}'), tmp_path)

    client.classify("Dear Sir", "letter.txt", "Text")

    log_path = tmp_path / "exchanges.txt"
    full = read_exchange_log(log_path)
    assert "REQUEST for letter.txt" in full
    assert "RESPONSE for letter.txt (status 200)" in full
    assert "Category: Letters" in full

    tail = read_exchange_log(log_path, max_lines=3)
    assert len(tail.splitlines()) == 3
    assert read_exchange_log(tmp_path / "missing.txt") == ""

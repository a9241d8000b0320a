"""Tests for recovering suggestions from classification replies."""

from __future__ import annotations

from doccatalog.classification import UNCATEGORIZED_NAME, ClassificationSuggestion, parse_suggestion
from doccatalog.classification.parsing import suggestion_from_mapping, tag_from_category


def test_strict_json_reply() -> None:
    reply = (
        '{"category": "Invoices", "category_description": "Billing documents", '
        '"tags": ["billing", "q1"], "confidential": true, "rationale": "Mentions VAT"}'
    )

    suggestion = parse_suggestion(reply)

    assert suggestion == ClassificationSuggestion(
        category="Invoices",
        description="Billing documents",
        tags=["billing", "q1"],
        confidential=True,
        rationale="Mentions VAT",
    )


def test_json_embedded_in_prose() -> None:
    reply = 'Sure! Here it is: {"category": "Contracts", "tags": "legal, signed"} Hope it helps.'

    suggestion = parse_suggestion(reply)

    assert suggestion is not None
    assert suggestion.category == "Contracts"
    assert suggestion.tags == ["legal", "signed"]
    assert not suggestion.confidential


def test_fenced_block_with_trailing_comma_and_aliases() -> None:
    reply = (
        "Answer below.\n"
        "```json\n"
        '{"Category": "HR", "categoryDescription": "People matters", "confidential": "yes",}\n'
        "```\n"
        "Ignore this {stray} brace."
    )

    suggestion = parse_suggestion(reply)

    assert suggestion is not None
    assert suggestion.category == "HR"
    assert suggestion.description == "People matters"
    assert suggestion.confidential is True
    assert suggestion.tags == ["hr"]


def test_prose_key_values_are_recovered() -> None:
    reply = (
        "Category: Legal Documents\n"
        "Description: Signed agreements\n"
        "Tags: contract, legal\n"
        "I believe the document is confidential."
    )

    suggestion = parse_suggestion(reply)

    assert suggestion is not None
    assert suggestion.category == "Legal Documents"
    assert suggestion.description == "Signed agreements"
    assert suggestion.tags == ["contract", "legal"]
    assert suggestion.confidential is True


def test_markdown_emphasis_around_keys() -> None:
    suggestion = parse_suggestion("**Category**: Finance\n**Tags**: invoice, vat")

    assert suggestion is not None
    assert suggestion.category == "Finance"
    assert suggestion.tags == ["invoice", "vat"]

    bolded = parse_suggestion("**Category:** **Legal**\n**Confidential:** yes")

    assert bolded is not None
    assert bolded.category == "Legal"
    assert bolded.confidential is True


def test_prose_without_tags_synthesizes_one_from_category() -> None:
    suggestion = parse_suggestion("I think the category is Travel Expenses. This is not confidential.")

    assert suggestion is not None
    assert suggestion.category == "Travel Expenses"
    assert suggestion.tags == ["travel_expenses"]
    assert suggestion.confidential is False


def test_unusable_reply_returns_none() -> None:
    assert parse_suggestion("I cannot help with that request.") is None
    assert parse_suggestion("") is None
    assert parse_suggestion('{"tags": ["orphan"]}') is None


def test_mapping_without_category_is_rejected() -> None:
    assert suggestion_from_mapping({"description": "no category"}) is None


def test_tag_from_category() -> None:
    assert tag_from_category("  Human Resources ") == "human_resources"


def test_fallback_suggestion_is_complete() -> None:
    suggestion = ClassificationSuggestion.fallback("service down")

    assert suggestion.category == UNCATEGORIZED_NAME
    assert suggestion.tags == ["uncategorized"]
    assert suggestion.confidential is False
    assert suggestion.rationale == "service down"
    assert suggestion.is_fallback

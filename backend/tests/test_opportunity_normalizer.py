from __future__ import annotations

import pytest

from kings_canvas.opportunities.normalizer import normalize_draft, normalize_drafts

VALID = {
    "title": "Studio skills lab",
    "summary": "Drop into the maker space to learn one new prototyping technique.",
    "source": "edge_simulated",
    "form": "short_form",
    "focus": ["capability", "capital"],
}


@pytest.mark.parametrize("field", ["title", "summary", "source", "form", "focus"])
def test_missing_required_field_is_rejected(field):
    raw = {k: v for k, v in VALID.items() if k != field}
    assert normalize_draft(raw) is None


@pytest.mark.parametrize(
    "field,value",
    [
        ("title", "   "),
        ("summary", ""),
        ("source", "partner"),
        ("form", "workshop"),
        ("focus", ["unknown"]),
        ("focus", []),
        ("title", 12),
    ],
)
def test_invalid_field_is_rejected(field, value):
    assert normalize_draft({**VALID, field: value}) is None


def test_unknown_focus_tokens_are_dropped():
    out = normalize_draft({**VALID, "focus": ["capability", "unknown"]})
    assert out is not None
    assert out.focus == ["capability"]


def test_focus_accepts_single_string_and_dedupes():
    assert normalize_draft({**VALID, "focus": "Credibility"}).focus == ["credibility"]
    assert normalize_draft({**VALID, "focus": ["credibility", " CREDIBILITY ", "capital"]}).focus == [
        "credibility",
        "capital",
    ]


def test_missing_or_unknown_status_defaults_to_suggested():
    assert normalize_draft(VALID).status == "suggested"
    assert normalize_draft({**VALID, "status": "archived"}).status == "suggested"
    assert normalize_draft({**VALID, "status": " Saved "}).status == "saved"


def test_enum_values_are_case_and_separator_insensitive():
    out = normalize_draft({**VALID, "source": "Edge-Simulated", "form": "Short-Form", "title": "  Padded  "})
    assert out.source == "edge_simulated"
    assert out.form == "short_form"
    assert out.title == "Padded"


def test_normalization_is_idempotent():
    once = normalize_draft({**VALID, "status": "dismissed", "focus": "capital"})
    twice = normalize_draft(once)
    assert twice == once
    assert normalize_draft(once.model_dump()) == once


def test_non_mapping_is_rejected_and_batch_keeps_order():
    assert normalize_draft("nope") is None
    assert normalize_draft(None) is None
    kept = normalize_drafts([{**VALID, "title": "A"}, 7, {**VALID, "title": ""}, {**VALID, "title": "B"}])
    assert [d.title for d in kept] == ["A", "B"]

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .types import DEFAULT_STATUS, FOCUSES, FORMS, SOURCES, STATUSES, OpportunityDraft


def normalize_token(value: Any) -> str:
    # "Short-Form " -> "short_form"; non-strings become an empty token.
    if not isinstance(value, str):
        return ""
    return "_".join(value.strip().lower().replace("-", " ").split())


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def normalize_focus(value: Any) -> list[str]:
    if isinstance(value, str):
        candidates = [value]
    elif isinstance(value, (list, tuple)):
        candidates = list(value)
    else:
        return []

    out: list[str] = []
    for c in candidates:
        token = normalize_token(c)
        if token in FOCUSES and token not in out:
            out.append(token)
    return out


def normalize_draft(raw: Any) -> OpportunityDraft | None:
    """
    Validate one untrusted model item.

    Returns None when title, summary, source, form or focus is unusable.
    A missing or unknown status becomes "suggested".
    """
    if isinstance(raw, OpportunityDraft):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        return None

    title = _text(raw.get("title"))
    summary = _text(raw.get("summary"))
    if not title or not summary:
        return None

    source = normalize_token(raw.get("source"))
    if source not in SOURCES:
        return None

    form = normalize_token(raw.get("form"))
    if form not in FORMS:
        return None

    focus = normalize_focus(raw.get("focus"))
    if not focus:
        return None

    status = normalize_token(raw.get("status"))
    if status not in STATUSES:
        status = DEFAULT_STATUS

    return OpportunityDraft(
        title=title,
        summary=summary,
        source=source,
        form=form,
        focus=focus,
        status=status,
    )


def normalize_drafts(items: Any) -> list[OpportunityDraft]:
    """Keep only the items that normalise, in their original order."""
    out: list[OpportunityDraft] = []
    for item in items or []:
        draft = normalize_draft(item)
        if draft is not None:
            out.append(draft)
    return out

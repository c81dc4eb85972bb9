from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from .types import EXCLUDED_STEP_STATUSES, Step


def _field(step: Any, *names: str) -> Any:
    for name in names:
        if isinstance(step, Mapping):
            value = step.get(name)
        else:
            value = getattr(step, name, None)
        if value is not None:
            return value
    return None


def canonical_id(value: Any) -> str | None:
    """
    Render a persisted identifier as a string.

    Strings are trimmed; UUIDs render as hex and raw bytes as their hex digest.
    Anything else (including blanks) has no persisted identity.
    """
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, uuid.UUID):
        return value.hex
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex() or None
    return None


def canonical_step_id(step: Any) -> str | None:
    if step is None:
        return None
    if isinstance(step, Step):
        # A client-side `id` alone is not a persisted identity.
        return canonical_id(step.step_id)
    try:
        for name in ("step_id", "stepId", "_id", "id"):
            cid = canonical_id(_field(step, name))
            if cid:
                return cid
    except Exception:
        return None
    return None


def is_eligible(step: Any) -> bool:
    """
    Whether a step may have opportunities generated or fetched.

    Requires a persisted identifier and a status outside ghost/suggested/rejected
    (case-insensitive). An absent status is eligible. Never raises.
    """
    if canonical_step_id(step) is None:
        return False
    try:
        status = _field(step, "status")
    except Exception:
        return False
    if isinstance(status, str) and status.strip().lower() in EXCLUDED_STEP_STATUSES:
        return False
    return True

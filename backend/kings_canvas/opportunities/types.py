from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BucketId = Literal["do-now", "do-later", "before-graduation", "after-graduation"]
OpportunitySource = Literal["edge_simulated", "independent"]
OpportunityForm = Literal["intensive", "evergreen", "short_form", "sustained"]
OpportunityFocus = Literal["capability", "capital", "credibility"]
OpportunityStatus = Literal["suggested", "saved", "dismissed"]

BUCKETS: tuple[tuple[str, str], ...] = (
    ("do-now", "Do Now"),
    ("do-later", "Do Later"),
    ("before-graduation", "Before I Graduate"),
    ("after-graduation", "After I Graduate"),
)
BUCKET_LABELS: dict[str, str] = dict(BUCKETS)

_BUCKET_ALIASES: dict[str, str] = {
    "now": "do-now",
    "donow": "do-now",
    "later": "do-later",
    "do_later": "do-later",
    "before-i-graduate": "before-graduation",
    "before_i_graduate": "before-graduation",
    "before_graduation": "before-graduation",
    "after-i-graduate": "after-graduation",
    "after_i_graduate": "after-graduation",
    "after_graduation": "after-graduation",
}

SOURCES: frozenset[str] = frozenset({"edge_simulated", "independent"})
FORM_VALUES: tuple[str, ...] = ("intensive", "evergreen", "short_form", "sustained")
FORMS: frozenset[str] = frozenset(FORM_VALUES)
FOCUSES: tuple[str, ...] = ("capability", "capital", "credibility")
STATUSES: frozenset[str] = frozenset({"suggested", "saved", "dismissed"})
DEFAULT_STATUS = "suggested"

# Step statuses that never take part in opportunity operations.
EXCLUDED_STEP_STATUSES: frozenset[str] = frozenset({"ghost", "suggested", "rejected"})


def normalize_bucket(bucket_id: str | None) -> str | None:
    """Known bucket id for `bucket_id` (aliases included), else None."""
    key = "-".join(str(bucket_id or "").strip().lower().split())
    if not key:
        return None
    if key in BUCKET_LABELS:
        return key
    return _BUCKET_ALIASES.get(key)


class Step(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    step_id: str | None = Field(default=None, alias="stepId")
    id: str | None = None
    user: str | None = None
    title: str = ""
    intention_id: str | None = Field(default=None, alias="intentionId")
    bucket: str | None = None
    order: int = 0
    status: str | None = None
    source: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Intention(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    description: str | None = None
    bucket: str | None = None


class OpportunityDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    summary: str
    source: OpportunitySource
    form: OpportunityForm
    focus: list[OpportunityFocus]
    status: OpportunityStatus = DEFAULT_STATUS


class Opportunity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    step_id: str = Field(alias="stepId")
    user: str
    title: str
    summary: str
    source: OpportunitySource
    form: OpportunityForm
    focus: list[OpportunityFocus]
    status: OpportunityStatus = DEFAULT_STATUS
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class GenerationSkipped:
    """Result of generate_if_needed when no generation ran."""

    step_id: str
    reason: Literal["ineligible", "existing"]

from __future__ import annotations

from .eligibility import canonical_step_id, is_eligible
from .generation import (
    GenerationPolicy,
    OpportunityGenerationError,
    OpportunityGenerator,
    StepNotFoundError,
)
from .normalizer import normalize_draft
from .prompts import build_prompt
from .simulation import OpportunityParseError, SimulationClient, TemplateSimulation
from .types import GenerationSkipped, Opportunity, OpportunityDraft, Step

__all__ = [
    "GenerationPolicy",
    "GenerationSkipped",
    "Opportunity",
    "OpportunityDraft",
    "OpportunityGenerationError",
    "OpportunityGenerator",
    "OpportunityParseError",
    "SimulationClient",
    "Step",
    "StepNotFoundError",
    "TemplateSimulation",
    "build_prompt",
    "canonical_step_id",
    "is_eligible",
    "normalize_draft",
]

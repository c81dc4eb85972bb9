from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Protocol

from ..ai.client import AiParseError
from ..observability.logging import get_logger
from .fallback import build_template_drafts
from .normalizer import normalize_drafts
from .prompts import build_prompt
from .types import OpportunityDraft

log = get_logger("opportunities.simulation")

PARSE_ERROR_MESSAGE = "Failed to parse simulate-opportunities response"


class CompletionClient(Protocol):
    async def complete(self, prompt: str) -> Any: ...


class DraftSimulator(Protocol):
    async def generate_drafts(
        self,
        step_title: str,
        intention_title: str | None = None,
        bucket_id: str | None = None,
    ) -> list[OpportunityDraft]: ...


class OpportunityParseError(AiParseError):
    def __init__(self, message: str = PARSE_ERROR_MESSAGE):
        super().__init__(message)


def _segment_text(segment: Any) -> str:
    if isinstance(segment, str):
        return segment
    if isinstance(segment, Mapping):
        text = segment.get("text")
    else:
        text = getattr(segment, "text", None)
    return text if isinstance(text, str) else ""


def extract_text(response: Any) -> str:
    """
    Text payload of a completion response.

    Accepts a plain string, or a mapping/object whose `content` is a string or
    a list of segments; segment text is concatenated in order.
    """
    if response is None:
        return ""
    if isinstance(response, str):
        return response

    if isinstance(response, Mapping):
        content = response.get("content")
    else:
        content = getattr(response, "content", None)

    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        return "".join(_segment_text(s) for s in content)
    return ""


class SimulationClient:
    def __init__(self, completion: CompletionClient):
        self._completion = completion

    async def generate_drafts(
        self,
        step_title: str,
        intention_title: str | None = None,
        bucket_id: str | None = None,
    ) -> list[OpportunityDraft]:
        prompt = build_prompt(step_title, intention_title, bucket_id)
        response = await self._completion.complete(prompt)

        text = extract_text(response).strip()
        if not text:
            log.info("simulate_opportunities_empty")
            return []

        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise OpportunityParseError() from e
        if not isinstance(parsed, list):
            raise OpportunityParseError()

        drafts = normalize_drafts(parsed)
        log.info("simulate_opportunities_parsed", raw_count=len(parsed), kept_count=len(drafts))
        return drafts


class TemplateSimulation:
    """
    Draft source used when no completion model is configured: a themed batch
    from the built-in template library. Same contract as SimulationClient.
    """

    async def generate_drafts(
        self,
        step_title: str,
        intention_title: str | None = None,
        bucket_id: str | None = None,
    ) -> list[OpportunityDraft]:
        drafts = build_template_drafts(step_title, intention_title, bucket_id)
        log.info("simulate_opportunities_from_templates", kept_count=len(drafts))
        return drafts

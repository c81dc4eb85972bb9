from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..observability.logging import get_logger
from ..settings import Settings
from .eligibility import canonical_step_id, is_eligible
from .fallback import build_independent_draft
from .simulation import DraftSimulator
from .types import GenerationSkipped, Intention, Opportunity, OpportunityDraft, Step

log = get_logger("opportunities.generation")


class OpportunityGenerationError(Exception):
    def __init__(self, message: str, *, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)


class StepNotFoundError(OpportunityGenerationError):
    def __init__(self, step_id: str):
        super().__init__("Step not found", status_code=404)
        self.step_id = step_id


class StepStore(Protocol):
    async def find_by_id(self, step_id: str) -> Step | None: ...


class IntentionStore(Protocol):
    async def get_for_user(self, user: str) -> list[Intention]: ...


class OpportunityStore(Protocol):
    async def list_for_step(self, user: str, step_id: str) -> list[Opportunity]: ...

    async def delete_for_step(self, user: str, step_id: str) -> int: ...

    async def create_for_step(
        self, user: str, step_id: str, drafts: Sequence[OpportunityDraft]
    ) -> list[Opportunity]: ...


@dataclass(frozen=True)
class GenerationPolicy:
    min_drafts: int = 1
    max_drafts: int = 6
    ensure_independent: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationPolicy":
        lo = max(0, int(settings.opportunities_min_drafts))
        hi = max(lo, int(settings.opportunities_max_drafts), 1)
        return cls(min_drafts=lo, max_drafts=hi)


class OpportunityGenerator:
    """
    Replace-on-regenerate workflow for one step's opportunities.

    Delete and insert are two awaited store calls with no transaction around
    them: a failure in between leaves the step with no opportunities. Two
    concurrent runs for the same step end with whichever insert finished last.
    """

    def __init__(
        self,
        *,
        steps: StepStore,
        intentions: IntentionStore,
        opportunities: OpportunityStore,
        simulation: DraftSimulator,
        policy: GenerationPolicy | None = None,
    ):
        self.steps = steps
        self.intentions = intentions
        self.opportunities = opportunities
        self.simulation = simulation
        self.policy = policy or GenerationPolicy()

    async def find_step(self, step_id: str) -> Step | None:
        sid = str(step_id or "").strip()
        if not sid:
            return None
        return await self.steps.find_by_id(sid)

    async def list_for_step(self, user: str, step_id: str) -> list[Opportunity]:
        return await self.opportunities.list_for_step(user, step_id)

    async def generate_for_step(self, step_id: str, origin: str = "manual") -> list[Opportunity]:
        step = await self._require_step(step_id, origin)
        return await self._generate(step, origin)

    async def generate_if_needed(self, step_id: str, origin: str = "manual") -> list[Opportunity] | GenerationSkipped:
        step = await self._require_step(step_id, origin)
        canonical = canonical_step_id(step) or str(step_id)

        if not is_eligible(step):
            log.info("opportunities_generation_skipped", stepId=canonical, origin=origin, reason="ineligible")
            return GenerationSkipped(step_id=canonical, reason="ineligible")

        if step.user and await self.opportunities.list_for_step(step.user, canonical):
            log.info("opportunities_generation_skipped", stepId=canonical, origin=origin, reason="existing")
            return GenerationSkipped(step_id=canonical, reason="existing")

        return await self._generate(step, origin)

    async def safely_generate_if_needed(self, step_id: str, origin: str) -> None:
        """Auto-trigger entry point: failures are logged, never raised."""
        log.info("opportunities_auto_generation_requested", stepId=step_id, origin=origin)
        try:
            await self.generate_if_needed(step_id, origin)
        except Exception as e:
            log.error(
                "opportunities_auto_generation_failed",
                stepId=step_id,
                origin=origin,
                message=str(e) or type(e).__name__,
            )

    async def _require_step(self, step_id: str, origin: str) -> Step:
        step = await self.find_step(step_id)
        if step is None:
            log.warning("opportunities_step_not_found", stepId=step_id, origin=origin)
            raise StepNotFoundError(str(step_id))
        return step

    async def _intention_title(self, user: str, intention_id: str | None) -> str | None:
        if not user or not intention_id:
            return None
        for intention in await self.intentions.get_for_user(user):
            if intention.id == intention_id and intention.title.strip():
                return intention.title.strip()
        return None

    def _apply_policy(
        self,
        drafts: list[OpportunityDraft],
        *,
        step_title: str,
        intention_title: str | None,
        bucket_id: str | None,
    ) -> list[OpportunityDraft]:
        kept = drafts[: self.policy.max_drafts]
        if len(kept) < self.policy.min_drafts:
            raise OpportunityGenerationError(
                f"Model returned {len(kept)} usable opportunities; at least {self.policy.min_drafts} required",
                status_code=502,
            )
        if self.policy.ensure_independent and not any(d.source == "independent" for d in kept):
            kept.append(build_independent_draft(step_title, intention_title, bucket_id))
        return kept

    async def _generate(self, step: Step, origin: str) -> list[Opportunity]:
        step_id = canonical_step_id(step)
        if not step_id:
            raise StepNotFoundError(str(step.id or ""))
        if not step.user:
            raise OpportunityGenerationError("Step is missing an owner")
        step_title = step.title.strip()
        if not step_title:
            raise OpportunityGenerationError("Step is missing a title", status_code=422)

        intention_title = await self._intention_title(step.user, step.intention_id)
        log.info("opportunities_generation_started", stepId=step_id, origin=origin)

        try:
            drafts = await self.simulation.generate_drafts(step_title, intention_title, step.bucket)
            drafts = self._apply_policy(
                drafts,
                step_title=step_title,
                intention_title=intention_title,
                bucket_id=step.bucket,
            )
            await self.opportunities.delete_for_step(step.user, step_id)
            created = await self.opportunities.create_for_step(step.user, step_id, drafts)
        except Exception as e:
            log.error(
                "opportunities_generation_failed",
                stepId=step_id,
                origin=origin,
                message=str(e) or type(e).__name__,
            )
            raise

        log.info("opportunities_generation_succeeded", stepId=step_id, origin=origin, count=len(created))
        return created

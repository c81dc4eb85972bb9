from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from ..ai.client import AiNotConfigured, AiUpstreamError
from ..observability.logging import get_logger
from ..opportunities.eligibility import is_eligible
from ..opportunities.generation import OpportunityGenerationError, StepNotFoundError
from ..opportunities.normalizer import normalize_focus, normalize_token
from ..opportunities.types import FORMS, SOURCES, STATUSES, Opportunity
from ..services import Services
from .deps import current_user, get_services, owned_step

router = APIRouter(tags=["opportunities"])
log = get_logger("opportunities.api")


class UpdateOpportunityRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Any = None
    summary: Any = None
    source: Any = None
    form: Any = None
    focus: Any = None
    status: Any = None


def _payload(step_id: str, opportunities: list[Opportunity]) -> dict[str, Any]:
    return {"stepId": step_id, "opportunities": [o.to_api() for o in opportunities]}


def _validated_changes(body: UpdateOpportunityRequest) -> dict[str, Any]:
    raw = body.model_dump(exclude_unset=True)
    changes: dict[str, Any] = {}

    for field in ("title", "summary"):
        if field in raw:
            value = raw[field].strip() if isinstance(raw[field], str) else ""
            if not value:
                raise HTTPException(status_code=400, detail=f"{field} must be a non-empty string")
            changes[field] = value

    for field, allowed in (("source", SOURCES), ("form", FORMS), ("status", STATUSES)):
        if field in raw:
            token = normalize_token(raw[field])
            if token not in allowed:
                raise HTTPException(status_code=400, detail=f"Invalid {field}")
            changes[field] = token

    if "focus" in raw:
        focus = normalize_focus(raw["focus"])
        if not focus:
            raise HTTPException(status_code=400, detail="Invalid focus")
        changes["focus"] = focus

    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    return changes


async def _owned_opportunity(services: Services, opportunity_id: str, user: str) -> Opportunity:
    opp = await services.opportunities.get(opportunity_id)
    if opp is None or opp.user.lower() != user.lower():
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return opp


@router.get("/steps/{stepId}/opportunities")
async def list_step_opportunities(
    stepId: str,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    step = await owned_step(services, stepId, user)
    canonical = step.step_id or stepId
    return _payload(canonical, await services.generator.list_for_step(step.user or user, canonical))


@router.post("/steps/{stepId}/opportunities/shuffle")
async def shuffle_step_opportunities(
    stepId: str,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    step = await owned_step(services, stepId, user)
    if not is_eligible(step):
        raise HTTPException(status_code=409, detail="Step is not eligible for opportunities")

    canonical = step.step_id or stepId
    try:
        created = await services.generator.generate_for_step(canonical, "shuffle")
    except StepNotFoundError:
        raise HTTPException(status_code=404, detail="Step not found")
    except Exception as e:
        log.exception("opportunities_shuffle_failed", stepId=canonical)
        raise HTTPException(status_code=500, detail="Failed to shuffle opportunities") from e
    return _payload(canonical, created)


@router.post("/steps/{stepId}/generate-opportunities")
async def generate_step_opportunities(
    stepId: str,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Manual trigger. OpportunityGenerationError keeps its own status code via the
    app handler; upstream model failures become 503.
    """
    step = await owned_step(services, stepId, user)
    canonical = step.step_id or stepId
    try:
        created = await services.generator.generate_for_step(canonical, "api-manual-trigger")
    except OpportunityGenerationError:
        raise
    except (AiUpstreamError, AiNotConfigured) as e:
        raise HTTPException(status_code=503, detail=str(e) or "Opportunity generation is unavailable") from e
    except Exception as e:
        log.exception("opportunities_manual_generation_failed", stepId=canonical)
        raise HTTPException(status_code=500, detail="Failed to generate opportunities") from e
    return _payload(canonical, created)


@router.put("/opportunities/{opportunityId}")
async def update_opportunity(
    opportunityId: str,
    body: UpdateOpportunityRequest,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    changes = _validated_changes(body)
    await _owned_opportunity(services, opportunityId, user)
    updated = await services.opportunities.update(opportunityId, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return {"opportunity": updated.to_api()}


@router.delete("/opportunities/{opportunityId}")
async def delete_opportunity(
    opportunityId: str,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    await _owned_opportunity(services, opportunityId, user)
    await services.opportunities.delete(opportunityId)
    return {"ok": True, "id": opportunityId}

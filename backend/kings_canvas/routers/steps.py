from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..opportunities.types import Step
from ..services import Services
from .deps import current_user, get_services, owned_step

router = APIRouter(tags=["steps"])


class SaveStepRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stepId: str | None = None
    id: str | None = None
    title: str = Field(..., min_length=1)
    intentionId: str | None = None
    bucket: str | None = None
    order: int | None = None
    status: str | None = None
    source: str | None = None


class BulkSuggestedStepsRequest(BaseModel):
    intentionId: str = Field(..., min_length=1)
    steps: list[dict[str, Any]]


class UpdateStepStatusRequest(BaseModel):
    stepId: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)


@router.get("/steps")
async def list_steps(user: str = Depends(current_user), services: Services = Depends(get_services)):
    steps = await services.steps.list_for_user(user)
    return {"steps": [s.to_api() for s in steps]}


@router.post("/steps")
async def save_steps(
    body: dict[str, Any] = Body(...),
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Save one step, or bulk-create AI suggestions when the body carries
    `intentionId` plus a `steps` list. Suggestions never trigger generation.
    """
    try:
        if isinstance(body.get("steps"), list):
            bulk = BulkSuggestedStepsRequest.model_validate(body)
            created = await services.steps.create_suggested(user, bulk.intentionId, bulk.steps)
            return {"steps": [s.to_api() for s in created]}
        req = SaveStepRequest.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e.errors()[0].get("msg") or "Invalid step"))

    existing: Step | None = None
    lookup_id = (req.stepId or req.id or "").strip()
    if lookup_id:
        existing = await services.steps.find_by_id(lookup_id)
        if existing is not None and str(existing.user or "").lower() != user.lower():
            raise HTTPException(status_code=403, detail="You do not have access to this step")

    incoming = Step.model_validate(req.model_dump(exclude_unset=True, exclude_none=True, exclude={"stepId"}))
    saved = await services.steps.save(user, incoming, existing=existing)

    await services.generator.safely_generate_if_needed(saved.step_id or "", "manual")
    return {"step": saved.to_api()}


@router.put("/steps")
async def update_step_status(
    body: UpdateStepStatusRequest,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    step = await owned_step(services, body.stepId, user)
    status = body.status.strip().lower()
    updated = await services.steps.update_status(step, status)

    if status == "accepted":
        await services.generator.safely_generate_if_needed(updated.step_id or "", "ai-accepted")
    return {"step": updated.to_api()}

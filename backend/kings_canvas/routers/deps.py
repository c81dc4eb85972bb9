from __future__ import annotations

from fastapi import HTTPException, Request

from ..opportunities.types import Step
from ..services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(request: Request) -> str:
    user = getattr(request.state, "user", None)
    identity = getattr(user, "identity", None) if user else None
    if not identity:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return str(identity)


async def owned_step(services: Services, step_id: str, user: str) -> Step:
    """The step for `step_id`, 404 when missing and 403 when owned by someone else."""
    step = await services.generator.find_step(step_id)
    if step is None:
        raise HTTPException(status_code=404, detail="Step not found")
    if str(step.user or "").strip().lower() != user.strip().lower():
        raise HTTPException(status_code=403, detail="You do not have access to this step")
    return step

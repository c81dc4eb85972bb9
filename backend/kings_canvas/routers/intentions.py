from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..services import Services
from .deps import current_user, get_services

router = APIRouter(tags=["intentions"])


class IntentionIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str = ""
    description: str | None = None
    bucket: str | None = None


class SaveIntentionsRequest(BaseModel):
    intentions: list[IntentionIn] = Field(default_factory=list)


@router.get("/intentions")
async def get_intentions(user: str = Depends(current_user), services: Services = Depends(get_services)):
    intentions = await services.intentions.get_for_user(user)
    return {"intentions": [i.model_dump(exclude_none=True) for i in intentions]}


@router.put("/intentions")
async def save_intentions(
    body: SaveIntentionsRequest,
    user: str = Depends(current_user),
    services: Services = Depends(get_services),
):
    entries = [i.model_dump(exclude_none=True) for i in body.intentions]
    saved = await services.intentions.save_for_user(user, entries)
    return {"intentions": [i.model_dump(exclude_none=True) for i in saved]}

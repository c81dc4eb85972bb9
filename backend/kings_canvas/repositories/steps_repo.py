from __future__ import annotations

import uuid
from typing import Any

from ..opportunities.types import BUCKET_LABELS, Step
from .common import GSI1, DynamoStore, as_int, now_iso, strip_keys

_BUCKET_INDEX = {b: i for i, b in enumerate(BUCKET_LABELS)}


def step_key(step_id: str) -> dict[str, str]:
    sid = str(step_id or "").strip()
    if not sid:
        raise ValueError("step_id is required")
    return {"pk": f"STEP#{sid}", "sk": "PROFILE"}


def step_alias_pk(client_id: str) -> str:
    return f"STEP_ALIAS#{str(client_id).strip()}"


def user_steps_pk(user: str) -> str:
    return f"USER#{user}#STEPS"


def _lookup_candidates(step_id: str) -> list[str]:
    sid = str(step_id or "").strip()
    out: list[str] = []
    try:
        out.append(uuid.UUID(sid).hex)
    except ValueError:
        pass
    if sid and sid not in out:
        out.append(sid)
    return out


def step_from_item(item: dict[str, Any] | None) -> Step | None:
    if not item:
        return None
    data = strip_keys(item)
    return Step(
        stepId=data.get("stepId"),
        id=data.get("id"),
        user=data.get("user"),
        title=str(data.get("title") or data.get("text") or ""),
        intentionId=data.get("intentionId"),
        bucket=data.get("bucket") or data.get("bucketId"),
        order=as_int(data.get("order")),
        status=data.get("status"),
        source=data.get("source"),
        createdAt=data.get("createdAt"),
        updatedAt=data.get("updatedAt"),
    )


def _step_item(step: Step) -> dict[str, Any]:
    item: dict[str, Any] = {
        **step_key(step.step_id or ""),
        "entityType": "Step",
        "gsi1pk": user_steps_pk(step.user or ""),
        "gsi1sk": f"{step.created_at}#{step.step_id}",
        **step.model_dump(by_alias=True, exclude_none=True),
    }
    return item


class StepsRepository(DynamoStore):
    async def find_by_id(self, step_id: str) -> Step | None:
        for candidate in _lookup_candidates(step_id):
            item = await self._run(self.table.get_item, key=step_key(candidate))
            if item:
                return step_from_item(item)

        sid = str(step_id or "").strip()
        if not sid:
            return None
        aliases = await self._run(
            self.table.query_all, key_name="pk", key_value=step_alias_pk(sid), consistent_read=True
        )
        for alias in aliases:
            target = str(alias.get("stepId") or "").strip()
            if target:
                item = await self._run(self.table.get_item, key=step_key(target))
                if item:
                    return step_from_item(item)
        return None

    async def list_for_user(self, user: str) -> list[Step]:
        items = await self._run(
            self.table.query_all, key_name="gsi1pk", key_value=user_steps_pk(user), index_name=GSI1
        )
        steps = [s for s in (step_from_item(it) for it in items) if s is not None]
        steps.sort(key=lambda s: (_BUCKET_INDEX.get(s.bucket or "", len(_BUCKET_INDEX)), s.order, s.created_at or ""))
        return steps

    async def save(self, user: str, step: Step, *, existing: Step | None = None) -> Step:
        """Upsert one step for `user`. New steps get a uuid hex id."""
        now = now_iso()
        if existing is not None and existing.step_id:
            merged = existing.model_copy(
                update={
                    **step.model_dump(exclude_unset=True, exclude={"step_id", "user", "created_at"}),
                    "updated_at": now,
                }
            )
            await self._run(self.table.put_item, item=_step_item(merged))
            return merged

        created = step.model_copy(
            update={
                "step_id": uuid.uuid4().hex,
                "user": user,
                "created_at": now,
                "updated_at": now,
            }
        )
        await self._run(self.table.put_item, item=_step_item(created))
        if created.id:
            alias = {
                "pk": step_alias_pk(created.id),
                "sk": f"STEP#{created.step_id}",
                "entityType": "StepAlias",
                "stepId": created.step_id,
            }
            await self._run(self.table.put_item, item=alias)
        return created

    async def create_suggested(self, user: str, intention_id: str, steps: list[dict[str, Any]]) -> list[Step]:
        now = now_iso()
        created: list[Step] = []
        for i, raw in enumerate(steps):
            title = str(raw.get("title") or raw.get("text") or "").strip()
            if not title:
                continue
            created.append(
                Step(
                    stepId=uuid.uuid4().hex,
                    id=str(raw.get("id") or "").strip() or None,
                    user=user,
                    title=title,
                    intentionId=intention_id,
                    bucket=raw.get("bucket") or raw.get("bucketId"),
                    order=as_int(raw.get("order"), i),
                    status="suggested",
                    source="ai",
                    createdAt=now,
                    updatedAt=now,
                )
            )
        if created:
            await self._run(self.table.batch_write, puts=[_step_item(s) for s in created])
        return created

    async def update_status(self, step: Step, status: str) -> Step:
        updated = step.model_copy(update={"status": status, "updated_at": now_iso()})
        await self._run(self.table.put_item, item=_step_item(updated))
        return updated

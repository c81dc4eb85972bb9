from __future__ import annotations

import uuid
from typing import Any, Sequence

from ..opportunities.types import Opportunity, OpportunityDraft
from .common import DynamoStore, now_iso, strip_keys


def step_opportunities_pk(user: str, step_id: str) -> str:
    u = str(user or "").strip()
    sid = str(step_id or "").strip()
    if not u or not sid:
        raise ValueError("user and step_id are required")
    return f"USER#{u}#STEP#{sid}#OPPORTUNITIES"


def opportunity_record_key(opp: Opportunity, *, seq: int) -> dict[str, str]:
    return {
        "pk": step_opportunities_pk(opp.user, opp.step_id),
        "sk": f"OPP#{opp.created_at}#{seq:04d}#{opp.id}",
    }


def opportunity_lookup_key(opportunity_id: str) -> dict[str, str]:
    oid = str(opportunity_id or "").strip()
    if not oid:
        raise ValueError("opportunity_id is required")
    return {"pk": f"OPPORTUNITY#{oid}", "sk": "LOOKUP"}


def opportunity_from_item(item: dict[str, Any] | None) -> Opportunity | None:
    if not item:
        return None
    data = strip_keys(item)
    focus = data.get("focus")
    if isinstance(focus, str):
        data["focus"] = [focus]
    return Opportunity.model_validate(data)


def _opportunity_item(opp: Opportunity, *, seq: int) -> dict[str, Any]:
    return {
        **opportunity_record_key(opp, seq=seq),
        "entityType": "Opportunity",
        "seq": seq,
        **opp.model_dump(by_alias=True, exclude_none=True),
    }


def _lookup_item(opp: Opportunity, record_key: dict[str, str]) -> dict[str, Any]:
    return {
        **opportunity_lookup_key(opp.id),
        "entityType": "OpportunityLookup",
        "recordPk": record_key["pk"],
        "recordSk": record_key["sk"],
    }


class OpportunitiesRepository(DynamoStore):
    """
    A step's batch lives in one base-table partition, so replace and existence
    checks read it with ConsistentRead. Each id also has a LOOKUP item pointing
    at its record for single-opportunity reads and writes.
    """

    async def _items_for_step(self, user: str, step_id: str) -> list[dict[str, Any]]:
        items = await self._run(
            self.table.query_all,
            key_name="pk",
            key_value=step_opportunities_pk(user, step_id),
            consistent_read=True,
        )
        return sorted(items, key=lambda it: str(it.get("sk") or ""))

    async def _record_for(self, opportunity_id: str) -> dict[str, Any] | None:
        lookup = await self._run(self.table.get_item, key=opportunity_lookup_key(opportunity_id))
        if not lookup:
            return None
        key = {"pk": str(lookup.get("recordPk") or ""), "sk": str(lookup.get("recordSk") or "")}
        if not key["pk"] or not key["sk"]:
            return None
        return await self._run(self.table.get_item, key=key)

    async def list_for_step(self, user: str, step_id: str) -> list[Opportunity]:
        items = await self._items_for_step(user, step_id)
        return [o for o in (opportunity_from_item(it) for it in items) if o is not None]

    async def delete_for_step(self, user: str, step_id: str) -> int:
        items = await self._items_for_step(user, step_id)
        keys: list[dict[str, str]] = []
        for it in items:
            keys.append({"pk": it["pk"], "sk": it["sk"]})
            if it.get("id"):
                keys.append(opportunity_lookup_key(str(it["id"])))
        await self._run(self.table.batch_write, deletes=keys)
        return len(items)

    async def create_for_step(
        self, user: str, step_id: str, drafts: Sequence[OpportunityDraft]
    ) -> list[Opportunity]:
        now = now_iso()
        created: list[Opportunity] = []
        items: list[dict[str, Any]] = []
        for seq, draft in enumerate(drafts):
            opp = Opportunity(
                id=uuid.uuid4().hex,
                stepId=step_id,
                user=user,
                createdAt=now,
                updatedAt=now,
                **draft.model_dump(),
            )
            record = _opportunity_item(opp, seq=seq)
            created.append(opp)
            items.append(record)
            items.append(_lookup_item(opp, record))
        await self._run(self.table.batch_write, puts=items)
        return created

    async def get(self, opportunity_id: str) -> Opportunity | None:
        return opportunity_from_item(await self._record_for(opportunity_id))

    async def update(self, opportunity_id: str, changes: dict[str, Any]) -> Opportunity | None:
        item = await self._record_for(opportunity_id)
        current = opportunity_from_item(item)
        if current is None:
            return None
        updated = current.model_copy(update={**changes, "updated_at": now_iso()})
        # The sort key embeds createdAt and seq, neither of which changes here.
        await self._run(self.table.put_item, item=_opportunity_item(updated, seq=int(item.get("seq") or 0)))
        return updated

    async def delete(self, opportunity_id: str) -> None:
        item = await self._record_for(opportunity_id)
        keys = [opportunity_lookup_key(opportunity_id)]
        if item:
            keys.append({"pk": item["pk"], "sk": item["sk"]})
        await self._run(self.table.batch_write, deletes=keys)

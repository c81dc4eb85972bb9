from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..observability.logging import get_logger
from ..opportunities.types import Intention
from .common import DynamoStore, now_iso

log = get_logger("repositories.intentions")


def intentions_key(user: str) -> dict[str, str]:
    u = str(user or "").strip()
    if not u:
        raise ValueError("user is required")
    return {"pk": f"USER#{u}", "sk": "INTENTIONS"}


def _parse_intentions(raw: Any) -> list[Intention]:
    """Entries without an id, or with fields of the wrong type, are dropped."""
    out: list[Intention] = []
    for entry in raw if isinstance(raw, list) else []:
        if not isinstance(entry, dict) or not str(entry.get("id") or "").strip():
            continue
        try:
            out.append(Intention.model_validate({**entry, "id": str(entry["id"]).strip()}))
        except ValidationError as e:
            log.warning("intention_entry_dropped", intentionId=str(entry["id"]), errors=e.error_count())
    return out


class IntentionsRepository(DynamoStore):
    """One document per user holding the whole intentions list."""

    async def get_for_user(self, user: str) -> list[Intention]:
        item = await self._run(self.table.get_item, key=intentions_key(user))
        return _parse_intentions((item or {}).get("intentions"))

    async def save_for_user(self, user: str, intentions: list[dict[str, Any]]) -> list[Intention]:
        parsed = _parse_intentions(intentions)
        item = {
            **intentions_key(user),
            "entityType": "Intentions",
            "user": user,
            "intentions": [i.model_dump(exclude_none=True) for i in parsed],
            "updatedAt": now_iso(),
        }
        await self._run(self.table.put_item, item=item)
        return parsed

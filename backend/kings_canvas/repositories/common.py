from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Any, Callable, TypeVar

import anyio

from ..db.dynamodb.table import DynamoTable, get_main_table

T = TypeVar("T")

GSI1 = "GSI1"
_INTERNAL_KEYS = ("pk", "sk", "gsi1pk", "gsi1sk", "entityType")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def strip_keys(item: dict[str, Any] | None) -> dict[str, Any]:
    out = dict(item or {})
    for k in _INTERNAL_KEYS:
        out.pop(k, None)
    return out


def as_int(value: Any, default: int = 0) -> int:
    # Numbers come back from DynamoDB as Decimal.
    if isinstance(value, (int, Decimal)):
        return int(value)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


class DynamoStore:
    """Async facade over a DynamoTable; each boto3 call runs on a worker thread."""

    def __init__(self, table: DynamoTable | None = None):
        self._table = table

    @property
    def table(self) -> DynamoTable:
        if self._table is None:
            self._table = get_main_table()
        return self._table

    async def _run(self, fn: Callable[..., T], /, **kwargs: Any) -> T:
        return await anyio.to_thread.run_sync(partial(fn, **kwargs))

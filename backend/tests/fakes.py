from __future__ import annotations

import copy
import uuid
from typing import Any, Sequence

from botocore.exceptions import ClientError

from kings_canvas.opportunities.types import Intention, Opportunity, OpportunityDraft, Step


class RecordingLog:
    """Stands in for a structlog logger; keeps (level, event, fields)."""

    def __init__(self):
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def _rec(self, level: str, event: str, **kw: Any) -> None:
        self.events.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._rec("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._rec("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._rec("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._rec("error", event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        self._rec("exception", event, **kw)

    def find(self, event: str) -> list[dict[str, Any]]:
        return [kw for _lvl, ev, kw in self.events if ev == event]


class FakeCompletion:
    def __init__(self, response: Any = None, *, error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> Any:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeSimulation:
    def __init__(self, drafts: list[OpportunityDraft] | None = None, *, error: Exception | None = None):
        self.drafts = list(drafts or [])
        self.error = error
        self.calls: list[tuple[str, str | None, str | None]] = []

    async def generate_drafts(self, step_title: str, intention_title: str | None = None, bucket_id: str | None = None):
        self.calls.append((step_title, intention_title, bucket_id))
        if self.error is not None:
            raise self.error
        return list(self.drafts)


class FakeStepStore:
    def __init__(self, steps: Sequence[Step] = ()):
        self.steps: dict[str, Step] = {s.step_id: s for s in steps if s.step_id}

    async def find_by_id(self, step_id: str) -> Step | None:
        return self.steps.get(step_id)


class FakeIntentionStore:
    def __init__(self, by_user: dict[str, list[Intention]] | None = None):
        self.by_user = by_user or {}

    async def get_for_user(self, user: str) -> list[Intention]:
        return list(self.by_user.get(user, []))


class FakeOpportunityStore:
    """In-memory store that records the order of mutating calls."""

    def __init__(self, calls: list[str] | None = None):
        self.records: list[Opportunity] = []
        self.calls = calls if calls is not None else []
        self.fail_create: Exception | None = None

    async def list_for_step(self, user: str, step_id: str) -> list[Opportunity]:
        return [o for o in self.records if o.user == user and o.step_id == step_id]

    async def delete_for_step(self, user: str, step_id: str) -> int:
        self.calls.append("delete")
        before = len(self.records)
        self.records = [o for o in self.records if not (o.user == user and o.step_id == step_id)]
        return before - len(self.records)

    async def create_for_step(self, user: str, step_id: str, drafts: Sequence[OpportunityDraft]) -> list[Opportunity]:
        self.calls.append("create")
        if self.fail_create is not None:
            raise self.fail_create
        created = [
            Opportunity(id=uuid.uuid4().hex, stepId=step_id, user=user, **d.model_dump())
            for d in drafts
        ]
        self.records.extend(created)
        return created


def draft(title: str, *, source: str = "edge_simulated", form: str = "intensive", focus=("capability",)) -> OpportunityDraft:
    return OpportunityDraft(
        title=title,
        summary=f"{title} summary.",
        source=source,
        form=form,
        focus=list(focus),
    )


class _BatchWriter:
    def __init__(self, table: "FakeBotoTable"):
        self._table = table

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def put_item(self, Item):
        self._table.put_item(Item=Item)

    def delete_item(self, Key):
        self._table.delete_item(Key=Key)


class FakeBotoTable:
    """
    The subset of a boto3 Table resource DynamoTable uses. Query understands
    single-attribute equality conditions and pages by `page_size`.

    With `lag_index=True`, GSI queries do not see items written since the last
    `settle_index()`, like a secondary index that has not caught up yet.
    """

    def __init__(self, *, page_size: int = 100, lag_index: bool = False):
        self.items: dict[tuple[str, str], dict[str, Any]] = {}
        self.page_size = page_size
        self.lag_index = lag_index
        self.unindexed: set[tuple[str, str]] = set()
        self.ops: list[str] = []
        self.queries: list[dict[str, Any]] = []

    def settle_index(self):
        self.unindexed.clear()

    def get_item(self, Key, ConsistentRead=False):
        self.ops.append("get_item")
        item = self.items.get((Key["pk"], Key["sk"]))
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, Item, **_kwargs):
        self.ops.append("put_item")
        self.items[(Item["pk"], Item["sk"])] = copy.deepcopy(Item)
        if self.lag_index:
            self.unindexed.add((Item["pk"], Item["sk"]))
        return {}

    def delete_item(self, Key):
        self.ops.append("delete_item")
        self.items.pop((Key["pk"], Key["sk"]), None)
        return {}

    def query(
        self, KeyConditionExpression, ScanIndexForward=True, IndexName=None, ExclusiveStartKey=None, ConsistentRead=False
    ):
        self.ops.append("query")
        self.queries.append({"IndexName": IndexName, "ConsistentRead": ConsistentRead})
        if IndexName and ConsistentRead:
            raise ClientError(
                {"Error": {"Code": "ValidationException", "Message": "Consistent reads are not supported on global secondary indexes"}},
                "Query",
            )
        key, value = KeyConditionExpression.get_expression()["values"]
        sort_attr = "gsi1sk" if IndexName else "sk"
        visible = [
            it for k, it in self.items.items() if not (IndexName and k in self.unindexed)
        ]
        matches = sorted(
            (copy.deepcopy(it) for it in visible if it.get(key.name) == value),
            key=lambda it: str(it.get(sort_attr) or ""),
            reverse=not ScanIndexForward,
        )
        start = int((ExclusiveStartKey or {}).get("offset", 0))
        page = matches[start : start + self.page_size]
        resp: dict[str, Any] = {"Items": page}
        if start + self.page_size < len(matches):
            resp["LastEvaluatedKey"] = {"offset": start + self.page_size}
        return resp

    def batch_writer(self):
        self.ops.append("batch_writer")
        return _BatchWriter(self)

from __future__ import annotations

from typing import Any, Iterable

from boto3.dynamodb.conditions import Key

from .client import table_resource
from .errors import DdbInternal, DdbNotFound
from .retry import RetryPolicy, ddb_call
from ...settings import get_settings


class DynamoTable:
    """
    Thin wrapper over a boto3 Table resource.

    Every call goes through ddb_call so botocore failures surface as DdbError.
    """

    def __init__(self, *, table_name: str, resource: Any | None = None, retry_policy: RetryPolicy | None = None):
        self.table_name = str(table_name)
        self._table = resource if resource is not None else table_resource(self.table_name)
        self._retry = retry_policy

    def _call(self, operation: str, fn, *, key: dict[str, Any] | None = None):
        return ddb_call(operation, fn, table_name=self.table_name, key=key, retry_policy=self._retry)

    def get_item(self, *, key: dict[str, Any], consistent_read: bool = True) -> dict[str, Any] | None:
        def _op():
            resp = self._table.get_item(Key=key, ConsistentRead=consistent_read)
            return resp.get("Item")

        return self._call("GetItem", _op, key=key)

    def get_required(self, *, key: dict[str, Any], message: str = "Item not found") -> dict[str, Any]:
        item = self.get_item(key=key)
        if not item:
            raise DdbNotFound(message=message, operation="GetItem", table_name=self.table_name, key=key)
        return item

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> None:
        def _op():
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression
            self._table.put_item(**kwargs)

        self._call("PutItem", _op, key={"pk": item.get("pk"), "sk": item.get("sk")})

    def delete_item(self, *, key: dict[str, Any]) -> None:
        self._call("DeleteItem", lambda: self._table.delete_item(Key=key), key=key)

    def query_all(
        self,
        *,
        key_name: str,
        key_value: str,
        index_name: str | None = None,
        scan_index_forward: bool = True,
        consistent_read: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Every item under one partition key, following LastEvaluatedKey.

        Strongly consistent reads exist only on the base table; DynamoDB rejects
        them on a GSI.
        """
        if consistent_read and index_name:
            raise ValueError("consistent_read is not supported on a secondary index")
        items: list[dict[str, Any]] = []
        start_key: dict[str, Any] | None = None

        while True:
            kwargs: dict[str, Any] = {
                "KeyConditionExpression": Key(key_name).eq(key_value),
                "ScanIndexForward": bool(scan_index_forward),
            }
            if index_name:
                kwargs["IndexName"] = index_name
            if consistent_read:
                kwargs["ConsistentRead"] = True
            if start_key:
                kwargs["ExclusiveStartKey"] = start_key

            resp = self._call("Query", lambda: self._table.query(**kwargs))
            items.extend(resp.get("Items") or [])
            start_key = resp.get("LastEvaluatedKey")
            if not start_key:
                return items

    def batch_write(
        self,
        *,
        puts: Iterable[dict[str, Any]] = (),
        deletes: Iterable[dict[str, Any]] = (),
    ) -> None:
        """
        Unordered, non-atomic bulk write. batch_writer chunks to 25 and resends
        unprocessed items itself.
        """
        puts = list(puts)
        deletes = list(deletes)
        if not puts and not deletes:
            return

        def _op():
            with self._table.batch_writer() as batch:
                for key in deletes:
                    batch.delete_item(Key=key)
                for item in puts:
                    batch.put_item(Item=item)

        self._call("BatchWriteItem", _op)


def get_main_table() -> DynamoTable:
    settings = get_settings()
    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return DynamoTable(table_name=settings.ddb_table_name)

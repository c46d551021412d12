from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping
from datetime import datetime
from typing import Any

from .codec import decode_item, encode_item, encode_key
from .config import ClientConfig
from .errors import TableWaitTimeoutError, ValidationError
from .paginate import (
    BATCH_GET_TABLE_FLAGS,
    BatchQueue,
    BatchSummary,
    PageEngine,
    ScanSummary,
)
from .params import build_payload, reject_unknown, resolve_param
from .request import RequestBuilder
from .retry import RetryOrchestrator
from .signing import Signer, SigV4Signer
from .tables import build_create_table_request
from .transport import HttpxTransport, Transport

type ItemCallback = Callable[[dict[str, Any]], Any]
type TableItemCallback = Callable[[str, dict[str, Any]], Any]

_CREATE_TABLE_FIELDS = (
    "TableName",
    "KeySchema",
    "AttributeDefinitions",
    "ReadCapacityUnits",
    "WriteCapacityUnits",
    "GlobalSecondaryIndexes",
    "LocalSecondaryIndexes",
)
_TABLE_FIELDS = ("TableName",)
_LIST_TABLES_FIELDS = ("ExclusiveStartTableName", "Limit")
_PUT_ITEM_FIELDS = (
    "ConditionalOperator",
    "Expected",
    "Item",
    "ReturnConsumedCapacity",
    "ReturnItemCollectionMetrics",
    "ReturnValues",
    "TableName",
)
_UPDATE_ITEM_FIELDS = (
    "AttributeUpdates",
    "ConditionalOperator",
    "Expected",
    "Key",
    "ReturnConsumedCapacity",
    "ReturnItemCollectionMetrics",
    "ReturnValues",
    "TableName",
)
_DELETE_ITEM_FIELDS = (
    "ConditionalOperator",
    "Expected",
    "Key",
    "ReturnConsumedCapacity",
    "ReturnItemCollectionMetrics",
    "ReturnValues",
    "TableName",
)
_GET_ITEM_FIELDS = ("AttributesToGet", "ConsistentRead", "Key", "ReturnConsumedCapacity", "TableName")
_QUERY_FIELDS = (
    "AttributesToGet",
    "ConsistentRead",
    "ConditionalOperator",
    "ExclusiveStartKey",
    "IndexName",
    "KeyConditions",
    "Limit",
    "QueryFilter",
    "ReturnConsumedCapacity",
    "ScanIndexForward",
    "Select",
    "TableName",
)
_SCAN_FIELDS = (
    "AttributesToGet",
    "ConditionalOperator",
    "ExclusiveStartKey",
    "Limit",
    "ReturnConsumedCapacity",
    "ScanFilter",
    "Segment",
    "Select",
    "TableName",
    "TotalSegments",
)
_BATCH_WRITE_FIELDS = ("RequestItems", "ReturnConsumedCapacity", "ReturnItemCollectionMetrics")
_BATCH_GET_FIELDS = ("RequestItems", "ReturnConsumedCapacity", "ResultLimit")

DEFAULT_WAIT_INTERVAL_SECONDS = 2.0


def _result_limit(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"ResultLimit must be a positive integer, got {value!r}")
    return value


def _decode_single_item_change(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("Attributes") is not None:
        data["Attributes"] = decode_item(data["Attributes"])
    metrics = data.get("ItemCollectionMetrics")
    if isinstance(metrics, dict) and metrics.get("ItemCollectionKey") is not None:
        metrics["ItemCollectionKey"] = decode_item(metrics["ItemCollectionKey"])
    return data


def _batch_write_record(table_name: str, record: Any) -> dict[str, Any]:
    if not isinstance(record, Mapping):
        raise ValidationError(f"batch write request for {table_name} must be a mapping")
    has_delete = record.get("DeleteRequest") is not None
    has_put = record.get("PutRequest") is not None
    if has_delete and has_put:
        raise ValidationError("cannot have DeleteRequest and PutRequest in the same batch write record")
    if not (has_delete or has_put):
        raise ValidationError(f"must have either a DeleteRequest or PutRequest: {record!r}")

    kind, field_name = ("DeleteRequest", "Key") if has_delete else ("PutRequest", "Item")
    source = record[kind].get(field_name) if isinstance(record[kind], Mapping) else None
    if not isinstance(source, Mapping):
        raise ValidationError(f"no {field_name} defined for {kind}")
    return {kind: {field_name: encode_item(source)}}


class DynamoDBClient:
    """Client for DynamoDB API version 20120810."""

    api_version = "20120810"

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Transport | None = None,
        signer: Signer | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()
        self._signer = signer or SigV4Signer(config)
        self._builder = RequestBuilder(config, self._signer, now=now)
        self._orchestrator = RetryOrchestrator(
            self._transport, max_retries=config.max_retries, debug=config.debug
        )
        self._engine = PageEngine(self._builder, self._orchestrator)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    async def aclose(self) -> None:
        # a caller-supplied transport stays open; its owner closes it
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> DynamoDBClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def _call(self, target: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._engine.exchange(target, payload)

    # Tables

    async def create_table(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("create_table", kwargs, _CREATE_TABLE_FIELDS)
        payload = build_create_table_request(**kwargs)
        data = await self._call("CreateTable", payload)
        return dict(data.get("TableDescription") or {})

    async def describe_table(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("describe_table", kwargs, _TABLE_FIELDS)
        data = await self._call("DescribeTable", build_payload(kwargs, *_TABLE_FIELDS))
        return dict(data.get("Table") or {})

    async def delete_table(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("delete_table", kwargs, _TABLE_FIELDS)
        data = await self._call("DeleteTable", build_payload(kwargs, *_TABLE_FIELDS))
        return dict(data.get("TableDescription") or {})

    async def wait_for_table_status(
        self,
        *,
        TableName: str | None = None,  # noqa: N803
        DesiredStatus: str = "ACTIVE",  # noqa: N803
        WaitInterval: float = DEFAULT_WAIT_INTERVAL_SECONDS,  # noqa: N803
        Timeout: float | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        """Poll describe_table until the table reports ``DesiredStatus``.

        The first poll is immediate; later polls wait ``WaitInterval`` seconds.
        Without a ``Timeout`` the loop polls until the status is reached.
        """
        if not TableName:
            raise ValidationError("no TableName specified")
        if WaitInterval < 0:
            raise ValidationError("WaitInterval must be >= 0")

        loop = asyncio.get_running_loop()
        deadline = None if Timeout is None else loop.time() + Timeout
        first = True
        while True:
            await self._transport.delay(0 if first else WaitInterval)
            first = False
            table = await self.describe_table(TableName=TableName)
            if table.get("TableStatus") == DesiredStatus:
                return table
            if deadline is not None and loop.time() >= deadline:
                raise TableWaitTimeoutError(table_name=TableName, desired_status=DesiredStatus)

    def iter_tables(self, **kwargs: Any) -> AsyncIterator[str]:
        reject_unknown("list_tables", kwargs, _LIST_TABLES_FIELDS)
        return self._engine.iter_table_names(build_payload(kwargs, *_LIST_TABLES_FIELDS))

    async def list_tables(self, callback: Callable[[str], Any], /, **kwargs: Any) -> int:
        """Invoke ``callback`` once per table name across every page; return the count."""
        if not callable(callback):
            raise ValidationError("callback is not callable")
        seen = 0
        async for table_name in self.iter_tables(**kwargs):
            callback(table_name)
            seen += 1
        return seen

    # Single items

    async def put_item(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("put_item", kwargs, _PUT_ITEM_FIELDS)
        data = await self._call("PutItem", build_payload(kwargs, *_PUT_ITEM_FIELDS))
        return _decode_single_item_change(data)

    async def update_item(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("update_item", kwargs, _UPDATE_ITEM_FIELDS)
        data = await self._call("UpdateItem", build_payload(kwargs, *_UPDATE_ITEM_FIELDS))
        return _decode_single_item_change(data)

    async def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        reject_unknown("delete_item", kwargs, _DELETE_ITEM_FIELDS)
        data = await self._call("DeleteItem", build_payload(kwargs, *_DELETE_ITEM_FIELDS))
        return _decode_single_item_change(data)

    async def get_item(self, callback: ItemCallback | None = None, /, **kwargs: Any) -> dict[str, Any] | None:
        reject_unknown("get_item", kwargs, _GET_ITEM_FIELDS)
        data = await self._call("GetItem", build_payload(kwargs, *_GET_ITEM_FIELDS))
        item = decode_item(data.get("Item"))
        if callback is not None:
            callback(item)
        return item

    # Batches

    async def batch_write_item(self, **kwargs: Any) -> BatchSummary:
        reject_unknown("batch_write_item", kwargs, _BATCH_WRITE_FIELDS)
        request_items = kwargs.get("RequestItems")
        if not isinstance(request_items, Mapping) or not request_items:
            raise ValidationError("RequestItems must be a non-empty mapping")

        queue: BatchQueue[dict[str, Any]] = BatchQueue()
        for table_name, records in request_items.items():
            if not isinstance(records, (list, tuple)):
                raise ValidationError(f"requests for table {table_name} must be a list")
            queue.extend(table_name, [_batch_write_record(table_name, r) for r in records])

        base_payload = {
            "ReturnConsumedCapacity": resolve_param(
                "ReturnConsumedCapacity", kwargs.get("ReturnConsumedCapacity") or "NONE"
            ),
            "ReturnItemCollectionMetrics": resolve_param(
                "ReturnItemCollectionMetrics", kwargs.get("ReturnItemCollectionMetrics") or "NONE"
            ),
        }
        return await self._engine.run_batch_write(queue, base_payload)

    def iter_batch_get(self, **kwargs: Any) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        reject_unknown("batch_get_item", kwargs, _BATCH_GET_FIELDS)
        request_items = kwargs.get("RequestItems")
        if not isinstance(request_items, Mapping) or not request_items:
            raise ValidationError("RequestItems must be a non-empty mapping")

        queue: BatchQueue[dict[str, Any]] = BatchQueue()
        table_flags: dict[str, dict[str, Any]] = {}
        for table_name, details in request_items.items():
            if not isinstance(details, Mapping):
                raise ValidationError(f"request for table {table_name} must be a mapping")
            keys = details.get("Keys")
            if not keys:
                raise ValidationError(f"no defined keys to retrieve for table {table_name}")
            if not isinstance(keys, (list, tuple)):
                raise ValidationError(f"Keys for table {table_name} must be a list")

            flags = {name: details[name] for name in BATCH_GET_TABLE_FLAGS if details.get(name) is not None}
            if "AttributesToGet" in flags:
                flags["AttributesToGet"] = resolve_param("AttributesToGet", flags["AttributesToGet"])
            if "ConsistentRead" in flags:
                flags["ConsistentRead"] = resolve_param("ConsistentRead", flags["ConsistentRead"])
            table_flags[table_name] = flags

            for key in keys:
                if not isinstance(key, Mapping):
                    raise ValidationError(f"each key for table {table_name} must be a mapping")
                queue.push(table_name, encode_key(key))

        base_payload = {
            "ReturnConsumedCapacity": resolve_param(
                "ReturnConsumedCapacity", kwargs.get("ReturnConsumedCapacity") or "NONE"
            )
        }
        return self._engine.iter_batch_get(
            queue, table_flags, base_payload, result_limit=_result_limit(kwargs.get("ResultLimit"))
        )

    async def batch_get_item(self, callback: TableItemCallback, /, **kwargs: Any) -> int:
        """Invoke ``callback(table_name, item)`` for each item found; return the count."""
        if not callable(callback):
            raise ValidationError("callback is not callable")
        seen = 0
        async for table_name, item in self.iter_batch_get(**kwargs):
            callback(table_name, item)
            seen += 1
        return seen

    # Query and scan

    def _query_payload(self, kwargs: Mapping[str, Any]) -> dict[str, Any]:
        reject_unknown("query", kwargs, (*_QUERY_FIELDS, "ResultLimit"))
        if kwargs.get("KeyConditions") is None:
            raise ValidationError("no KeyConditions specified for query, conditions are required")
        return build_payload(kwargs, *_QUERY_FIELDS)

    def _scan_payload(self, kwargs: Mapping[str, Any]) -> dict[str, Any]:
        reject_unknown("scan", kwargs, (*_SCAN_FIELDS, "ResultLimit"))
        payload = build_payload(kwargs, *_SCAN_FIELDS)
        segment = payload.get("Segment")
        total = payload.get("TotalSegments")
        if (segment is None) != (total is None):
            raise ValidationError("Segment and TotalSegments must be provided together")
        if segment is not None and total is not None and (total <= 0 or segment >= total):
            raise ValidationError("invalid Segment/TotalSegments")
        return payload

    def iter_query(self, *, summary: ScanSummary | None = None, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        payload = self._query_payload(kwargs)
        return self._engine.iter_items(
            "Query", payload, result_limit=_result_limit(kwargs.get("ResultLimit")), summary=summary
        )

    def iter_scan(self, *, summary: ScanSummary | None = None, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        payload = self._scan_payload(kwargs)
        return self._engine.iter_items(
            "Scan", payload, result_limit=_result_limit(kwargs.get("ResultLimit")), summary=summary
        )

    async def query(self, callback: ItemCallback | None = None, /, **kwargs: Any) -> ScanSummary:
        summary = ScanSummary()
        async for item in self.iter_query(summary=summary, **kwargs):
            if callback is not None:
                callback(item)
        return summary

    async def scan(self, callback: ItemCallback | None = None, /, **kwargs: Any) -> ScanSummary:
        summary = ScanSummary()
        async for item in self.iter_scan(summary=summary, **kwargs):
            if callback is not None:
                callback(item)
        return summary


_IMPLEMENTATIONS: dict[str, type[DynamoDBClient]] = {DynamoDBClient.api_version: DynamoDBClient}


def connect(
    config: ClientConfig | None = None,
    *,
    transport: Transport | None = None,
    signer: Signer | None = None,
    **overrides: Any,
) -> DynamoDBClient:
    if config is None:
        config = ClientConfig.from_env(**overrides)
    elif overrides:
        config = config.with_overrides(**overrides)

    implementation = _IMPLEMENTATIONS.get(config.api_version)
    if implementation is None:
        raise ValidationError(f"No support for version {config.api_version}")
    return implementation(config, transport=transport, signer=signer)


__all__ = ["DynamoDBClient", "connect"]

from __future__ import annotations

import json
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from .codec import decode_item
from .errors import BatchRetryExceededError, DecodeError
from .request import RequestBuilder
from .retry import RetryOrchestrator, backoff_seconds

logger = structlog.get_logger(__name__)

BATCH_WRITE_LIMIT = 25
BATCH_GET_LIMIT = 100

BATCH_GET_TABLE_FLAGS = (
    "ConsistentRead",
    "AttributesToGet",
    "ProjectionExpression",
    "ExpressionAttributeNames",
)


def parse_body(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body) if body else {}
    except ValueError as err:
        raise DecodeError("response body is not valid JSON") from err
    if not isinstance(data, dict):
        raise DecodeError("response body must be a JSON object")
    return data


@dataclass
class ScanSummary:
    """Running totals for a scan or query.

    ``count`` is the number of items delivered (or the service ``Count`` for
    pages without ``Items``). ``scanned_count`` sums whole pages, so it may
    exceed what was evaluated up to a ``ResultLimit`` stop.

    ``last_evaluated_key`` is the resume point after the last delivered item
    and can be passed back as ``ExclusiveStartKey``. After a stop partway
    through the final page the key attributes are unknown, so it is None
    while ``exhausted`` stays False.
    """

    count: int = 0
    scanned_count: int = 0
    pages: int = 0
    last_evaluated_key: dict[str, Any] | None = None
    exhausted: bool = False


@dataclass
class BatchSummary:
    requests: int = 0
    rounds: int = 0


@dataclass
class BatchQueue[T]:
    entries: deque[tuple[str, T]] = field(default_factory=deque)

    def push(self, table_name: str, record: T) -> None:
        self.entries.append((table_name, record))

    def extend(self, table_name: str, records: Iterable[T]) -> None:
        for record in records:
            self.push(table_name, record)

    def take(self, size: int) -> list[tuple[str, T]]:
        out: list[tuple[str, T]] = []
        while self.entries and len(out) < size:
            out.append(self.entries.popleft())
        return out

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)


def _resume_key(entry: Mapping[str, Any], key_names: list[str]) -> dict[str, Any] | None:
    # the page cursor names the key attributes; items carry them unless projected away
    if not key_names or any(name not in entry for name in key_names):
        return None
    return decode_item({name: entry[name] for name in key_names})


type PageBuilder = Callable[[], dict[str, Any] | None]
type Extractor[R] = Callable[[dict[str, Any]], Iterable[R]]
type Advance = Callable[[dict[str, Any]], Awaitable[bool]]


class PageEngine:
    def __init__(self, builder: RequestBuilder, orchestrator: RetryOrchestrator) -> None:
        self._builder = builder
        self._orchestrator = orchestrator

    async def exchange(self, target: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        request = self._builder.make_request(target, payload)
        return await self._orchestrator.process(request, parse_body)

    async def cycle[R](
        self,
        target: str,
        build_page: PageBuilder,
        extract: Extractor[R],
        advance: Advance,
        *,
        result_limit: int | None = None,
    ) -> AsyncIterator[R]:
        # pages are strictly sequential: the next payload depends on this response
        seen = 0
        while True:
            payload = build_page()
            if payload is None:
                return
            data = await self.exchange(target, payload)
            for result in extract(data):
                yield result
                seen += 1
                if result_limit is not None and seen >= result_limit:
                    return
            if not await advance(data):
                return

    def iter_table_names(self, payload: dict[str, Any]) -> AsyncIterator[str]:
        async def advance(data: dict[str, Any]) -> bool:
            cursor = data.get("LastEvaluatedTableName")
            logger.debug("dynamodb_page", operation="ListTables", cursor=cursor)
            if cursor is None:
                return False
            payload["ExclusiveStartTableName"] = cursor
            return True

        return self.cycle(
            "ListTables", lambda: payload, lambda data: list(data.get("TableNames") or []), advance
        )

    def iter_items(
        self,
        target: str,
        payload: dict[str, Any],
        *,
        result_limit: int | None = None,
        summary: ScanSummary | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        totals = summary if summary is not None else ScanSummary()

        def extract(data: dict[str, Any]) -> Iterable[dict[str, Any]]:
            totals.pages += 1
            totals.scanned_count += int(data.get("ScannedCount") or 0)
            cursor = data.get("LastEvaluatedKey")
            entries = data.get("Items")
            if not entries:
                totals.count += int(data.get("Count") or 0)
                totals.last_evaluated_key = decode_item(cursor)
                return

            key_names = list(cursor or ())
            last = len(entries) - 1
            for position, entry in enumerate(entries):
                totals.count += 1
                if position == last:
                    totals.last_evaluated_key = decode_item(cursor)
                    totals.exhausted = cursor is None
                else:
                    totals.last_evaluated_key = _resume_key(entry, key_names)
                yield decode_item(entry) or {}

        async def advance(data: dict[str, Any]) -> bool:
            cursor = data.get("LastEvaluatedKey")
            logger.debug("dynamodb_page", operation=target, page=totals.pages, more=cursor is not None)
            if cursor is None:
                totals.exhausted = True
                return False
            # already wire-encoded, passed back verbatim
            payload["ExclusiveStartKey"] = cursor
            return True

        return self.cycle(target, lambda: payload, extract, advance, result_limit=result_limit)

    async def _pause_for_unprocessed(self, operation: str, rounds: int, pending: int) -> None:
        max_retries = self._orchestrator.max_retries
        if max_retries is not None and rounds > max_retries:
            raise BatchRetryExceededError(operation=operation, unprocessed_count=pending)
        delay = backoff_seconds(rounds)
        logger.debug("dynamodb_batch_round", operation=operation, unprocessed=pending, delay=delay)
        await self._orchestrator.transport.delay(delay)

    async def iter_batch_get(
        self,
        queue: BatchQueue[dict[str, Any]],
        table_flags: Mapping[str, Mapping[str, Any]],
        base_payload: Mapping[str, Any],
        *,
        result_limit: int | None = None,
    ) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        unprocessed_rounds = 0

        def build_page() -> dict[str, Any] | None:
            records = queue.take(BATCH_GET_LIMIT)
            if not records:
                return None
            request_items: dict[str, dict[str, Any]] = {}
            for table_name, key in records:
                entry = request_items.get(table_name)
                if entry is None:
                    entry = {**table_flags.get(table_name, {}), "Keys": []}
                    request_items[table_name] = entry
                entry["Keys"].append(key)
            return {**base_payload, "RequestItems": request_items}

        def extract(data: dict[str, Any]) -> Iterable[tuple[str, dict[str, Any]]]:
            for table_name, items in (data.get("Responses") or {}).items():
                for entry in items:
                    yield table_name, decode_item(entry) or {}

        async def advance(data: dict[str, Any]) -> bool:
            nonlocal unprocessed_rounds
            unprocessed = data.get("UnprocessedKeys") or {}
            pending = 0
            for table_name, details in unprocessed.items():
                keys = list((details or {}).get("Keys") or [])
                queue.extend(table_name, keys)
                pending += len(keys)
            if pending:
                unprocessed_rounds += 1
                await self._pause_for_unprocessed("batch_get_item", unprocessed_rounds, pending)
            else:
                unprocessed_rounds = 0
            return len(queue) > 0

        try:
            async for result in self.cycle(
                "BatchGetItem", build_page, extract, advance, result_limit=result_limit
            ):
                yield result
        finally:
            queue.clear()

    async def run_batch_write(
        self,
        queue: BatchQueue[dict[str, Any]],
        base_payload: Mapping[str, Any],
    ) -> BatchSummary:
        summary = BatchSummary()
        unprocessed_rounds = 0

        def build_page() -> dict[str, Any] | None:
            records = queue.take(BATCH_WRITE_LIMIT)
            if not records:
                return None
            request_items: dict[str, list[dict[str, Any]]] = {}
            for table_name, record in records:
                request_items.setdefault(table_name, []).append(record)
            summary.rounds += 1
            summary.requests += len(records)
            return {**base_payload, "RequestItems": request_items}

        async def advance(data: dict[str, Any]) -> bool:
            nonlocal unprocessed_rounds
            pending = 0
            for table_name, records in (data.get("UnprocessedItems") or {}).items():
                queue.extend(table_name, records or [])
                pending += len(records or [])
            if pending:
                unprocessed_rounds += 1
                await self._pause_for_unprocessed("batch_write_item", unprocessed_rounds, pending)
            else:
                unprocessed_rounds = 0
            return len(queue) > 0

        try:
            async for _ in self.cycle("BatchWriteItem", build_page, lambda _data: (), advance):
                pass
        finally:
            queue.clear()
        return summary

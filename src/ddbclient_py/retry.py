from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from .errors import (
    THROUGHPUT_EXCEEDED,
    DdbClientError,
    TransportFailure,
    map_service_error,
    short_error_type,
)
from .request import SignedRequest
from .transport import Transport, TransportError

logger = structlog.get_logger(__name__)

BASE_DELAY_SECONDS = 0.05


class Outcome(Enum):
    RETRY = "retry"
    FATAL = "fatal"


@dataclass
class RetryState:
    attempt: int = 0
    slept: float = 0.0


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    delay: float = 0.0
    error: DdbClientError | None = None
    reason: str = ""


def backoff_seconds(attempt: int) -> float:
    return (2**attempt) * BASE_DELAY_SECONDS


def _error_payload(response: Any) -> dict[str, Any] | None:
    try:
        data = json.loads(response.text)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    raw_type = data.get("__type")
    if isinstance(raw_type, str) and raw_type:
        data["type"] = short_error_type(raw_type)
    return data


def classify(err: TransportError, state: RetryState, max_retries: int | None) -> Decision:
    response = err.response
    if response is None:
        return Decision(Outcome.FATAL, error=TransportFailure(err.status), reason="no_response")

    status = int(response.status_code)
    payload = _error_payload(response)

    retryable = False
    reason = ""
    if status >= 500:
        retryable = True
        reason = "server_error"
        payload = {"type": "InternalServerError", "message": err.status, **(payload or {})}
    elif payload is not None and payload.get("type") == THROUGHPUT_EXCEEDED:
        retryable = True
        reason = "throughput_exceeded"

    if payload is None or "type" not in payload:
        return Decision(Outcome.FATAL, error=TransportFailure(err.status), reason="unstructured")

    if retryable:
        next_attempt = state.attempt + 1
        if max_retries is None or next_attempt <= max_retries:
            return Decision(Outcome.RETRY, delay=backoff_seconds(next_attempt), reason=reason)
        reason = f"{reason}_retries_exhausted"

    return Decision(Outcome.FATAL, error=map_service_error(status, payload), reason=reason or "rejected")


class RetryOrchestrator:
    def __init__(self, transport: Transport, *, max_retries: int | None = None, debug: bool = False) -> None:
        self._transport = transport
        self._max_retries = max_retries
        self._debug = debug

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def max_retries(self) -> int | None:
        return self._max_retries

    async def process[T](self, request: SignedRequest, done: Callable[[str], T]) -> T:
        state = RetryState()
        while True:
            try:
                body = await self._transport.send(request)
            except TransportError as err:
                decision = classify(err, state, self._max_retries)
                if decision.outcome is Outcome.RETRY:
                    state.attempt += 1
                    state.slept += decision.delay
                    logger.debug(
                        "dynamodb_retry",
                        operation=request.target,
                        attempt=state.attempt,
                        delay=decision.delay,
                        reason=decision.reason,
                    )
                    await self._transport.delay(decision.delay)
                    continue

                if self._debug:
                    logger.warning(
                        "dynamodb_failure",
                        operation=request.target,
                        status=err.status,
                        reason=decision.reason,
                        response=err.response.text if err.response is not None else None,
                        request=err.request.dump(),
                    )
                raise (decision.error or TransportFailure(err.status)) from err

            return done(body)

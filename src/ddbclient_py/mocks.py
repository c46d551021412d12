from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from botocore.awsrequest import AWSRequest

from .request import SignedRequest
from .signing import ALGORITHM
from .transport import TransportError

ERROR_NAMESPACE = "com.amazonaws.dynamodb.v20120810"


class _Wildcard:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _Wildcard()


def _payload_mismatches(expected: Any, actual: Any, where: str) -> Iterator[str]:
    """Yield one message per place ``actual`` departs from ``expected``.

    Objects match on the fields ``expected`` names; lists match element-wise.
    """
    if expected is ANY:
        return
    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            yield f"{where}: wanted an object, got {type(actual).__name__}"
            return
        for name, wanted in expected.items():
            if name in actual:
                yield from _payload_mismatches(wanted, actual[name], f"{where}.{name}")
            else:
                yield f"{where}: field {name!r} not sent"
    elif isinstance(expected, list):
        if not isinstance(actual, list):
            yield f"{where}: wanted a list, got {type(actual).__name__}"
        elif len(expected) != len(actual):
            yield f"{where}: wanted {len(expected)} entries, sent {len(actual)}"
        else:
            for index, (wanted, sent) in enumerate(zip(expected, actual, strict=True)):
                yield from _payload_mismatches(wanted, sent, f"{where}[{index}]")
    elif expected != actual:
        yield f"{where}: wanted {expected!r}, sent {actual!r}"


@dataclass(frozen=True)
class ExpectedExchange:
    target: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    status: int = 200
    body: str | None = None
    error: Exception | None = None


def error_body(error_type: str, message: str = "") -> str:
    return json.dumps({"__type": f"{ERROR_NAMESPACE}#{error_type}", "message": message})


class FakeTransport:
    """Scripted transport: each ``send`` consumes the next expected exchange.

    Payloads are matched structurally (``ANY`` matches anything) and
    ``delay`` records the requested seconds without sleeping.
    """

    def __init__(self) -> None:
        self._expected: list[ExpectedExchange] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.requests: list[SignedRequest] = []
        self.delays: list[float] = []
        self.closed = False

    def expect(
        self,
        target: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        status: int = 200,
        error_type: str | None = None,
        message: str = "",
        body: str | None = None,
        error: Exception | None = None,
    ) -> None:
        if error_type is not None and body is None:
            body = error_body(error_type, message)
        self._expected.append(
            ExpectedExchange(
                target=target, expected=expected, response=response, status=status, body=body, error=error
            )
        )

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected exchanges: {self._expected!r}")

    def targets(self) -> list[str]:
        return [target for target, _ in self.calls]

    async def send(self, request: SignedRequest) -> str:
        payload = json.loads(request.body)
        self.calls.append((request.target, payload))
        self.requests.append(request)
        if not self._expected:
            raise AssertionError(f"unexpected exchange: {request.target}")

        call = self._expected.pop(0)
        if call.target != request.target:
            raise AssertionError(f"expected {call.target}, got {request.target}")

        if callable(call.expected):
            call.expected(payload)
        elif call.expected is not None:
            problems = list(_payload_mismatches(dict(call.expected), payload, request.target))
            if problems:
                raise AssertionError("; ".join(problems))

        if call.error is not None:
            raise call.error

        text = call.body if call.body is not None else json.dumps(dict(call.response or {}))
        if not 200 <= call.status < 300:
            response = httpx.Response(call.status, text=text)
            raise TransportError(f"{call.status} {response.reason_phrase}".strip(), response, request)
        return text

    async def delay(self, seconds: float) -> None:
        self.delays.append(seconds)

    async def aclose(self) -> None:
        self.closed = True


class FakeSigner:
    def __init__(self, signature: str = "fake") -> None:
        self.signature = signature
        self.calls: list[dict[str, str]] = []

    def sign(self, request: AWSRequest) -> str:
        self.calls.append({str(k): str(v) for k, v in request.headers.items()})
        return f"{ALGORITHM} Credential=AKIDEXAMPLE, Signature={self.signature}"

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from .client import DynamoDBClient
from .config import ClientConfig
from .mocks import ANY, FakeSigner, FakeTransport, error_body


def fixed_now(moment: datetime | None = None) -> Callable[[], datetime]:
    moment = moment or datetime(2013, 8, 10, 12, 0, 0, tzinfo=UTC)

    def now() -> datetime:
        return moment

    return now


def local_config(**overrides: Any) -> ClientConfig:
    values: dict[str, Any] = {
        "host": "localhost",
        "port": 8000,
        "ssl": False,
        "access_key": "AKIDEXAMPLE",
        "secret_key": "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    }
    values.update(overrides)
    return ClientConfig(**values)


def make_client(
    transport: FakeTransport | None = None,
    **config_overrides: Any,
) -> tuple[DynamoDBClient, FakeTransport]:
    transport = transport or FakeTransport()
    client = DynamoDBClient(
        local_config(**config_overrides),
        transport=transport,
        signer=FakeSigner(),
        now=fixed_now(),
    )
    return client, transport


__all__ = [
    "ANY",
    "FakeSigner",
    "FakeTransport",
    "error_body",
    "fixed_now",
    "local_config",
    "make_client",
]

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

import boto3
from botocore.credentials import Credentials

from .errors import ValidationError

DEFAULT_API_VERSION = "20120810"
DEFAULT_REGION = "us-east-1"
SCOPE_TERMINATOR = "aws4_request"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientConfig:
    host: str
    port: int | None = None
    ssl: bool = True
    access_key: str | None = None
    secret_key: str | None = None
    session_token: str | None = None
    scope: str = f"{DEFAULT_REGION}/dynamodb/{SCOPE_TERMINATOR}"
    max_retries: int | None = None
    debug: bool = False
    api_version: str = DEFAULT_API_VERSION

    def __post_init__(self) -> None:
        if not self.host:
            raise ValidationError("host is required")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValidationError("max_retries must be >= 0")
        self._scope_parts()

    def _scope_parts(self) -> tuple[str, str, str]:
        parts = self.scope.split("/")
        if len(parts) != 3 or not all(parts):
            raise ValidationError(f"scope must look like region/service/{SCOPE_TERMINATOR}: {self.scope!r}")
        return parts[0], parts[1], parts[2]

    @property
    def region(self) -> str:
        return self._scope_parts()[0]

    @property
    def service(self) -> str:
        return self._scope_parts()[1]

    @property
    def endpoint(self) -> str:
        scheme = "https" if self.ssl else "http"
        port = f":{self.port}" if self.port else ""
        return f"{scheme}://{self.host}{port}/"

    def credentials(self) -> Credentials:
        if self.access_key and self.secret_key:
            return Credentials(self.access_key, self.secret_key, self.session_token)

        resolved = boto3.session.Session(region_name=self.region).get_credentials()
        if resolved is None:
            raise ValidationError("no AWS credentials configured")
        return resolved

    def with_overrides(self, **overrides: Any) -> ClientConfig:
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ, **overrides: Any) -> ClientConfig:
        region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
        values: dict[str, Any] = {
            "host": environ.get("DYNAMODB_HOST") or f"dynamodb.{region}.amazonaws.com",
            "scope": f"{region}/dynamodb/{SCOPE_TERMINATOR}",
            "access_key": environ.get("AWS_ACCESS_KEY_ID") or None,
            "secret_key": environ.get("AWS_SECRET_ACCESS_KEY") or None,
            "session_token": environ.get("AWS_SESSION_TOKEN") or None,
            "debug": (environ.get("DYNAMODB_DEBUG") or "").strip().lower() in _TRUTHY,
        }

        if environ.get("DYNAMODB_PORT"):
            values["port"] = _env_int(environ, "DYNAMODB_PORT")
        if environ.get("DYNAMODB_SSL"):
            values["ssl"] = environ["DYNAMODB_SSL"].strip().lower() in _TRUTHY
        if environ.get("DYNAMODB_MAX_RETRIES"):
            values["max_retries"] = _env_int(environ, "DYNAMODB_MAX_RETRIES")

        values.update(overrides)
        return cls(**values)


def _env_int(environ: Mapping[str, str], name: str) -> int:
    raw = environ[name].strip()
    try:
        return int(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be an integer: {raw!r}") from err

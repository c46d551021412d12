from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit

from botocore.awsrequest import AWSRequest

from .config import ClientConfig
from .signing import Signer

CONTENT_TYPE = "application/x-amz-json-1.0"
SERVICE_FAMILY = "DynamoDB"


@dataclass(frozen=True)
class SignedRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    body: str
    target: str

    def dump(self) -> str:
        lines = [f"{self.method} {self.url} HTTP/1.1"]
        lines.extend(f"{k}: {v}" for k, v in self.headers.items())
        lines.append("")
        lines.append(self.body)
        return "\n".join(lines)


def target_header(api_version: str, operation: str) -> str:
    return f"{SERVICE_FAMILY}_{api_version}.{operation}"


class RequestBuilder:
    """Builds and signs protocol requests.

    ``now`` stamps ``X-Amz-Date`` before signing. A signer that dates its own
    signature replaces that header; ``SigV4Signer`` stamps the real signing
    time, so ``now`` only fixes the date for signers that leave it alone.
    """

    def __init__(
        self,
        config: ClientConfig,
        signer: Signer,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._signer = signer
        self._now = now or (lambda: datetime.now(UTC))

    def make_request(self, target: str, payload: Mapping[str, Any]) -> SignedRequest:
        body = json.dumps(payload, separators=(",", ":"))
        url = self._config.endpoint
        host = urlsplit(url).netloc

        aws_request = AWSRequest(
            method="POST",
            url=url,
            data=body,
            headers={
                "Host": host,
                "Content-Type": CONTENT_TYPE,
                "X-Amz-Date": self._now().strftime("%Y%m%dT%H%M%SZ"),
                "X-Amz-Target": target_header(self._config.api_version, target),
                "Content-Length": str(len(body.encode("utf-8"))),
            },
        )
        authorization = self._signer.sign(aws_request)
        # HTTPHeaders appends on assignment
        del aws_request.headers["Authorization"]
        aws_request.headers["Authorization"] = authorization

        return SignedRequest(
            method="POST",
            url=url,
            headers=MappingProxyType({str(k): str(v) for k, v in aws_request.headers.items()}),
            body=body,
            target=target,
        )

from __future__ import annotations

from typing import Protocol

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest

from .config import ClientConfig

ALGORITHM = "AWS4-HMAC-SHA256"


class Signer(Protocol):
    def sign(self, request: AWSRequest) -> str:
        """Return the Authorization header value for ``request``.

        Implementations may add the headers their algorithm covers
        (``X-Amz-Date``, ``X-Amz-Security-Token``) to ``request`` in place.
        """
        ...


class SigV4Signer:
    def __init__(self, config: ClientConfig) -> None:
        self._auth = SigV4Auth(config.credentials(), config.service, config.region)

    def sign(self, request: AWSRequest) -> str:
        self._auth.add_auth(request)
        return str(request.headers["Authorization"])

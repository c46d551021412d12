from __future__ import annotations

import json
import re
from importlib.resources import files

from .client import DynamoDBClient, connect
from .codec import decode, decode_attribute, decode_item, encode, encode_attribute, encode_item, encode_key
from .conditions import Condition
from .config import ClientConfig
from .errors import (
    BatchRetryExceededError,
    ConditionFailedError,
    DdbClientError,
    DecodeError,
    NotFoundError,
    ResourceInUseError,
    ServiceError,
    ServiceRejected,
    ServiceThrottling,
    ServiceTransient,
    TableWaitTimeoutError,
    TransportFailure,
    ValidationError,
)
from .paginate import BatchSummary, ScanSummary
from .signing import Signer, SigV4Signer
from .tables import build_create_table_request
from .transport import BlockingHttpxTransport, HttpxTransport, Transport, TransportError


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


__all__ = [
    "BatchRetryExceededError",
    "BatchSummary",
    "BlockingHttpxTransport",
    "build_create_table_request",
    "ClientConfig",
    "Condition",
    "ConditionFailedError",
    "connect",
    "DdbClientError",
    "decode",
    "decode_attribute",
    "decode_item",
    "DecodeError",
    "DynamoDBClient",
    "encode",
    "encode_attribute",
    "encode_item",
    "encode_key",
    "HttpxTransport",
    "NotFoundError",
    "ResourceInUseError",
    "ScanSummary",
    "ServiceError",
    "ServiceRejected",
    "ServiceThrottling",
    "ServiceTransient",
    "Signer",
    "SigV4Signer",
    "TableWaitTimeoutError",
    "Transport",
    "TransportError",
    "TransportFailure",
    "ValidationError",
    "__repo_version__",
    "__version__",
]

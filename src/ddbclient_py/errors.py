from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class DdbClientError(Exception):
    pass


class ValidationError(DdbClientError):
    pass


class DecodeError(DdbClientError):
    pass


class ServiceError(DdbClientError):
    def __init__(
        self,
        *,
        status: int,
        error_type: str,
        message: str = "",
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{error_type}: {message}" if message else error_type)
        self.status = status
        self.error_type = error_type
        self.message = message
        self.payload: dict[str, Any] = dict(payload or {})


class ServiceThrottling(ServiceError):
    pass


class ServiceTransient(ServiceError):
    pass


class ServiceRejected(ServiceError):
    pass


class ConditionFailedError(ServiceRejected):
    pass


class NotFoundError(ServiceRejected):
    pass


class ResourceInUseError(ServiceRejected):
    pass


class TransportFailure(DdbClientError):
    def __init__(self, status: str) -> None:
        super().__init__(status)
        self.status = status


class BatchRetryExceededError(DdbClientError):
    def __init__(self, *, operation: str, unprocessed_count: int) -> None:
        super().__init__(f"{operation}: retry limit exceeded (unprocessed={unprocessed_count})")
        self.operation = operation
        self.unprocessed_count = unprocessed_count


class TableWaitTimeoutError(DdbClientError):
    def __init__(self, *, table_name: str, desired_status: str) -> None:
        super().__init__(f"timed out waiting for table {table_name} to reach {desired_status}")
        self.table_name = table_name
        self.desired_status = desired_status


THROUGHPUT_EXCEEDED = "ProvisionedThroughputExceededException"

_REJECTED_BY_TYPE: dict[str, type[ServiceRejected]] = {
    "ConditionalCheckFailedException": ConditionFailedError,
    "ResourceNotFoundException": NotFoundError,
    "ResourceInUseException": ResourceInUseError,
}


def short_error_type(raw_type: str) -> str:
    # "com.amazonaws.dynamodb.v20120810#ResourceNotFoundException" -> "ResourceNotFoundException"
    return raw_type.rsplit("#", 1)[-1]


def map_service_error(status: int, payload: Mapping[str, Any]) -> ServiceError:
    error_type = str(payload.get("type") or short_error_type(str(payload.get("__type", ""))))
    message = str(payload.get("message") or payload.get("Message") or "")

    if status >= 500:
        return ServiceTransient(
            status=status, error_type=error_type or "InternalServerError", message=message, payload=payload
        )
    if error_type == THROUGHPUT_EXCEEDED:
        return ServiceThrottling(status=status, error_type=error_type, message=message, payload=payload)

    cls = _REJECTED_BY_TYPE.get(error_type, ServiceRejected)
    return cls(status=status, error_type=error_type or "UnknownError", message=message, payload=payload)

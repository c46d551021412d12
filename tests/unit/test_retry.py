from __future__ import annotations

import asyncio

import pytest
from structlog.testing import capture_logs

from ddbclient_py.errors import (
    THROUGHPUT_EXCEEDED,
    ConditionFailedError,
    ServiceRejected,
    ServiceThrottling,
    ServiceTransient,
    TransportFailure,
    map_service_error,
    short_error_type,
)
from ddbclient_py.mocks import FakeSigner
from ddbclient_py.request import RequestBuilder
from ddbclient_py.retry import Outcome, RetryState, backoff_seconds, classify
from ddbclient_py.testkit import fixed_now, local_config, make_client
from ddbclient_py.transport import TransportError


def test_backoff_formula() -> None:
    assert [backoff_seconds(n) for n in (1, 2, 3)] == pytest.approx([0.1, 0.2, 0.4])


def test_three_server_errors_then_success() -> None:
    client, transport = make_client()
    for _ in range(3):
        transport.expect("DescribeTable", status=500, body="")
    transport.expect("DescribeTable", response={"Table": {"TableName": "t", "TableStatus": "ACTIVE"}})

    table = asyncio.run(client.describe_table(TableName="t"))

    assert table["TableStatus"] == "ACTIVE"
    assert len(transport.calls) == 4
    assert transport.delays == pytest.approx([0.1, 0.2, 0.4])
    transport.assert_no_pending()


def test_throttling_past_ceiling_is_fatal() -> None:
    client, transport = make_client(max_retries=2)
    for _ in range(3):
        transport.expect("GetItem", status=400, error_type=THROUGHPUT_EXCEEDED, message="slow down")

    with pytest.raises(ServiceThrottling) as excinfo:
        asyncio.run(client.get_item(TableName="t", Key={"id": 1}))

    assert len(transport.calls) == 3
    assert transport.delays == pytest.approx([0.1, 0.2])
    assert excinfo.value.error_type == THROUGHPUT_EXCEEDED
    assert excinfo.value.payload["type"] == THROUGHPUT_EXCEEDED
    assert excinfo.value.message == "slow down"
    assert isinstance(excinfo.value.__cause__, TransportError)


def test_server_errors_past_ceiling_are_transient() -> None:
    client, transport = make_client(max_retries=1)
    transport.expect("DescribeTable", status=503, body="")
    transport.expect("DescribeTable", status=500, body="")

    with pytest.raises(ServiceTransient) as excinfo:
        asyncio.run(client.describe_table(TableName="t"))

    assert excinfo.value.status == 500
    assert excinfo.value.error_type == "InternalServerError"
    assert transport.delays == pytest.approx([0.1])


def test_structured_client_error_is_not_retried() -> None:
    client, transport = make_client()
    transport.expect("PutItem", status=400, error_type="ConditionalCheckFailedException", message="nope")

    with pytest.raises(ConditionFailedError) as excinfo:
        asyncio.run(client.put_item(TableName="t", Item={"id": 1}))

    assert isinstance(excinfo.value, ServiceRejected)
    assert excinfo.value.payload["type"] == "ConditionalCheckFailedException"
    assert excinfo.value.payload["__type"].endswith("#ConditionalCheckFailedException")
    assert transport.delays == []


def test_unstructured_client_error_is_transport_failure() -> None:
    client, transport = make_client()
    transport.expect("PutItem", status=403, body="<html>forbidden</html>")

    with pytest.raises(TransportFailure, match="403 Forbidden"):
        asyncio.run(client.put_item(TableName="t", Item={"id": 1}))


def test_classify_without_response() -> None:
    req = RequestBuilder(local_config(), FakeSigner(), now=fixed_now()).make_request("ListTables", {})
    decision = classify(TransportError("599 ConnectError: refused", None, req), RetryState(), None)
    assert decision.outcome is Outcome.FATAL
    assert isinstance(decision.error, TransportFailure)
    assert decision.error.status == "599 ConnectError: refused"


def test_debug_flag_logs_failures() -> None:
    client, transport = make_client(debug=True)
    transport.expect("DeleteTable", status=400, error_type="ResourceNotFoundException")

    with capture_logs() as logs, pytest.raises(ServiceRejected):
        asyncio.run(client.delete_table(TableName="missing"))

    failures = [entry for entry in logs if entry["event"] == "dynamodb_failure"]
    assert len(failures) == 1
    assert failures[0]["log_level"] == "warning"
    assert failures[0]["status"] == "400 Bad Request"
    assert "ResourceNotFoundException" in failures[0]["response"]
    assert "X-Amz-Target: DynamoDB_20120810.DeleteTable" in failures[0]["request"]


def test_failures_are_not_logged_without_debug() -> None:
    client, transport = make_client()
    transport.expect("DeleteTable", status=400, error_type="ResourceNotFoundException")

    with capture_logs() as logs, pytest.raises(ServiceRejected):
        asyncio.run(client.delete_table(TableName="missing"))

    assert not [entry for entry in logs if entry["event"] == "dynamodb_failure"]


def test_short_error_type_and_mapping() -> None:
    assert short_error_type("com.amazonaws.dynamodb.v20120810#ResourceInUseException") == "ResourceInUseException"
    assert short_error_type("ValidationException") == "ValidationException"

    err = map_service_error(400, {"__type": "com.amazonaws.dynamodb.v20120810#ValidationException", "Message": "m"})
    assert type(err) is ServiceRejected
    assert err.error_type == "ValidationException"
    assert err.message == "m"

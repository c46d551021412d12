from __future__ import annotations

import json

from ddbclient_py.mocks import FakeSigner
from ddbclient_py.request import RequestBuilder, target_header
from ddbclient_py.signing import SigV4Signer
from ddbclient_py.testkit import fixed_now, local_config


def test_target_header() -> None:
    assert target_header("20120810", "PutItem") == "DynamoDB_20120810.PutItem"


def test_make_request_sets_protocol_headers() -> None:
    signer = FakeSigner()
    builder = RequestBuilder(local_config(), signer, now=fixed_now())

    req = builder.make_request("PutItem", {"TableName": "t", "Item": {"id": {"N": "1"}}})

    assert req.method == "POST"
    assert req.url == "http://localhost:8000/"
    assert req.target == "PutItem"
    assert req.body == '{"TableName":"t","Item":{"id":{"N":"1"}}}'
    assert req.headers["Host"] == "localhost:8000"
    assert req.headers["Content-Type"] == "application/x-amz-json-1.0"
    assert req.headers["X-Amz-Target"] == "DynamoDB_20120810.PutItem"
    assert req.headers["X-Amz-Date"] == "20130810T120000Z"
    assert req.headers["Content-Length"] == str(len(req.body))
    assert req.headers["Authorization"].startswith("AWS4-HMAC-SHA256 ")

    assert len(signer.calls) == 1
    assert signer.calls[0]["X-Amz-Target"] == "DynamoDB_20120810.PutItem"


def test_content_length_counts_utf8_bytes() -> None:
    builder = RequestBuilder(local_config(), FakeSigner(), now=fixed_now())
    req = builder.make_request("PutItem", {"TableName": "t", "Item": {"name": {"S": "café"}}})
    assert json.loads(req.body)["Item"]["name"]["S"] == "café"
    assert req.headers["Content-Length"] == str(len(req.body.encode("utf-8")))


def test_sigv4_signer_produces_scoped_authorization() -> None:
    config = local_config(scope="eu-west-1/dynamodb/aws4_request", session_token="token-1")
    builder = RequestBuilder(config, SigV4Signer(config), now=fixed_now())

    req = builder.make_request("ListTables", {})

    auth = req.headers["Authorization"]
    assert auth.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
    assert "/eu-west-1/dynamodb/aws4_request" in auth
    assert "SignedHeaders=" in auth
    assert "x-amz-target" in auth
    assert req.headers["X-Amz-Security-Token"] == "token-1"


def test_dump_renders_raw_request() -> None:
    builder = RequestBuilder(local_config(), FakeSigner(), now=fixed_now())
    dumped = builder.make_request("ListTables", {}).dump()
    assert dumped.startswith("POST http://localhost:8000/ HTTP/1.1\n")
    assert "X-Amz-Target: DynamoDB_20120810.ListTables" in dumped
    assert dumped.endswith("\n{}")


def test_sigv4_signer_stamps_its_own_signing_date() -> None:
    config = local_config()
    builder = RequestBuilder(config, SigV4Signer(config), now=fixed_now())

    req = builder.make_request("ListTables", {})

    amz_date = req.headers["X-Amz-Date"]
    assert amz_date != "20130810T120000Z"
    assert f"Credential=AKIDEXAMPLE/{amz_date[:8]}/us-east-1/dynamodb/aws4_request" in req.headers["Authorization"]

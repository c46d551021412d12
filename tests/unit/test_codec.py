from __future__ import annotations

from decimal import Decimal

import pytest
from boto3.dynamodb.types import Binary

from ddbclient_py.codec import (
    decode,
    decode_attribute,
    decode_item,
    encode,
    encode_attribute,
    encode_item,
    encode_key,
)
from ddbclient_py.errors import DecodeError, ValidationError


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("hello", ("S", "hello")),
        (1, ("N", "1")),
        (-42, ("N", "-42")),
        (1.5, ("N", "1.5")),
        (Decimal("3.14"), ("N", "3.14")),
        (b"\x00\x01", ("B", "AAE=")),
        (Binary(b"hi"), ("B", "aGk=")),
        (["a", "b"], ("SS", ["a", "b"])),
        ([1, 2.5], ("NS", ["1", "2.5"])),
        ([b"a", "b"], ("BS", ["YQ==", "Yg=="])),
        (["a", 1], ("SS", ["a", "1"])),
    ],
)
def test_encode_infers_type_tags(value: object, expected: tuple[str, object]) -> None:
    assert encode(value) == expected


@pytest.mark.parametrize(
    "value",
    ["text", 7, -3, 2.25, b"\xffbytes", ["x", "y"], [1, 2, 3], [b"a", b"b"]],
)
def test_encode_decode_round_trip(value: object) -> None:
    assert decode_attribute(encode_attribute(value)) == value


def test_sequence_with_any_blob_is_binary_set() -> None:
    assert encode(("x", b"y", "z"))[0] == "BS"


@pytest.mark.parametrize(
    "value",
    [None, True, [], set(), {"nested": 1}, [None], [True], float("nan"), float("inf")],
)
def test_encode_rejects_values_without_a_wire_type(value: object) -> None:
    with pytest.raises(ValidationError):
        encode(value)


def test_binary_set_rejects_numbers() -> None:
    with pytest.raises(ValidationError, match="binary set element"):
        encode([b"a", 1])


def test_decode_numbers() -> None:
    assert decode("N", "10") == 10
    assert isinstance(decode("N", "10"), int)
    assert decode("N", "1.25") == 1.25
    assert decode("NS", ["1", "-2", "0.5"]) == [1, -2, 0.5]


def test_decode_errors() -> None:
    with pytest.raises(DecodeError, match="don't know how to decode type: M"):
        decode("M", {})
    with pytest.raises(DecodeError):
        decode("N", "abc")
    with pytest.raises(DecodeError):
        decode("B", "not base64!")
    with pytest.raises(DecodeError):
        decode_attribute({})


def test_encode_item_drops_undefined_and_empty_strings() -> None:
    assert encode_item({"user_id": 1, "name": "x", "tag": None, "empty": ""}) == {
        "user_id": {"N": "1"},
        "name": {"S": "x"},
    }


def test_encode_key_is_strict() -> None:
    assert encode_key({"pk": "A"}) == {"pk": {"S": "A"}}
    with pytest.raises(ValidationError):
        encode_key({})
    with pytest.raises(ValidationError):
        encode_key({"pk": None})


def test_decode_item_handles_missing_item() -> None:
    assert decode_item(None) is None
    assert decode_item({"a": {"S": "x"}, "b": {"N": "2"}}) == {"a": "x", "b": 2}

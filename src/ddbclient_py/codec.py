from __future__ import annotations

import base64
import binascii
import math
import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from boto3.dynamodb.types import Binary

from .errors import DecodeError, ValidationError

type AttributeValue = dict[str, Any]
type Item = dict[str, AttributeValue]

SCALAR_TYPES = frozenset({"S", "N", "B"})
SET_TYPES = frozenset({"SS", "NS", "BS"})

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def _is_blob(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview, Binary))


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _blob_bytes(value: Any) -> bytes:
    if isinstance(value, Binary):
        return bytes(value.value)
    return bytes(value)


def _number_text(value: int | float | Decimal) -> str:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"cannot encode non-finite number: {value!r}")
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError(f"cannot encode non-finite number: {value!r}")
        return str(value)
    return str(value)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _set_type(values: list[Any]) -> str:
    if any(_is_blob(v) for v in values):
        return "BS"
    if all(_is_number(v) for v in values):
        return "NS"
    return "SS"


def encode(value: Any) -> tuple[str, Any]:
    """Classify a native value and return its ``(type_tag, wire_value)`` pair."""
    if value is None:
        raise ValidationError("attempt to encode undefined value")
    if isinstance(value, bool):
        raise ValidationError("boolean values have no attribute type in this wire format")

    if _is_blob(value):
        return "B", _b64(_blob_bytes(value))

    if _is_sequence(value):
        values = list(value)
        if not values:
            raise ValidationError("cannot encode an empty set")
        if any(v is None or isinstance(v, bool) for v in values):
            raise ValidationError("set elements must be text, numbers or binary")

        tag = _set_type(values)
        if tag == "BS":
            out: list[str] = []
            for v in values:
                if _is_blob(v):
                    out.append(_b64(_blob_bytes(v)))
                elif isinstance(v, str):
                    out.append(_b64(v.encode("utf-8")))
                else:
                    raise ValidationError(f"binary set element must be bytes or text: {v!r}")
            return tag, out
        if tag == "NS":
            return tag, [_number_text(v) for v in values]
        return tag, [_number_text(v) if _is_number(v) else str(v) for v in values]

    if isinstance(value, Mapping):
        raise ValidationError("map values have no attribute type in this wire format")

    if _is_number(value):
        return "N", _number_text(value)
    return "S", str(value)


def encode_attribute(value: Any) -> AttributeValue:
    tag, wire = encode(value)
    return {tag: wire}


def _decode_number(text: Any) -> int | float:
    if not isinstance(text, str):
        raise DecodeError(f"number must be transmitted as text, got {type(text).__name__}")
    if _INTEGER_RE.match(text):
        return int(text)
    try:
        return float(Decimal(text))
    except InvalidOperation as err:
        raise DecodeError(f"invalid number: {text!r}") from err


def _decode_blob(text: Any) -> bytes:
    if not isinstance(text, str):
        raise DecodeError("binary value must be base64 text")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as err:
        raise DecodeError("binary value is not valid base64") from err


def decode(type_tag: str, wire_value: Any) -> Any:
    if type_tag in {"S", "SS"}:
        return wire_value
    if type_tag == "N":
        return _decode_number(wire_value)
    if type_tag == "B":
        return _decode_blob(wire_value)
    if type_tag in {"NS", "BS"}:
        if not isinstance(wire_value, list):
            raise DecodeError(f"{type_tag} value must be a list")
        if type_tag == "NS":
            return [_decode_number(v) for v in wire_value]
        return [_decode_blob(v) for v in wire_value]
    raise DecodeError(f"don't know how to decode type: {type_tag}")


def decode_attribute(av: Any) -> Any:
    if not isinstance(av, Mapping) or not av:
        raise DecodeError("attribute value must be a map with a type key")
    (tag, wire), *_ = av.items()
    return decode(str(tag), wire)


def decode_item(item: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if item is None:
        return None
    return {name: decode_attribute(av) for name, av in item.items()}


def encode_item(source: Mapping[str, Any]) -> Item:
    """Encode every field of ``source``, omitting undefined and empty-string values."""
    out: Item = {}
    for name, value in source.items():
        if value is None or (isinstance(value, str) and value == ""):
            continue
        out[name] = encode_attribute(value)
    return out


def encode_key(source: Mapping[str, Any]) -> Item:
    if not source:
        raise ValidationError("key must name at least one attribute")
    return {name: encode_attribute(value) for name, value in source.items()}

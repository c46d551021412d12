from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .errors import ValidationError

KEY_ATTRIBUTE_TYPES = frozenset({"S", "N", "B"})
PROJECTION_TYPES = frozenset({"KEYS_ONLY", "INCLUDE", "ALL"})
MAX_SECONDARY_INDEXES = 5

DEFAULT_TABLE_CAPACITY = 2
DEFAULT_INDEX_CAPACITY = 1


def build_key_schema(key_schema: Any, attribute_definitions: Mapping[str, Any]) -> list[dict[str, str]]:
    if key_schema is None:
        raise ValidationError("no KeySchema specified")
    if not isinstance(key_schema, (list, tuple)):
        raise ValidationError("KeySchema is not a list")
    if not key_schema:
        raise ValidationError("KeySchema requires at least one value")
    if len(key_schema) > 2:
        raise ValidationError("KeySchema can have at most two values")

    out: list[dict[str, str]] = []
    for field_name in key_schema:
        if field_name not in attribute_definitions:
            raise ValidationError(
                f"unknown field {field_name!r} in key schema, must be defined in AttributeDefinitions"
            )
        out.append({"AttributeName": field_name, "KeyType": "RANGE" if out else "HASH"})
    return out


def build_attribute_definitions(definitions: Any) -> list[dict[str, str]]:
    if not isinstance(definitions, Mapping):
        raise ValidationError("AttributeDefinitions should be a mapping, each field is unique")

    out: list[dict[str, str]] = []
    for field_name, attr_type in definitions.items():
        if attr_type is not None and attr_type not in KEY_ATTRIBUTE_TYPES:
            raise ValidationError(
                f"invalid type specified for attribute {field_name!r}, must be S, N or B, was {attr_type!r}"
            )
        out.append({"AttributeName": field_name, "AttributeType": attr_type or "S"})
    return out


def _throughput(source: Mapping[str, Any] | None, default: int) -> dict[str, int]:
    source = source or {}
    return {
        "ReadCapacityUnits": int(source.get("ReadCapacityUnits") or default),
        "WriteCapacityUnits": int(source.get("WriteCapacityUnits") or default),
    }


def _projection(index_name: str, projection: Any) -> dict[str, Any]:
    if not isinstance(projection, Mapping):
        raise ValidationError(f"no projection defined for index named {index_name}")
    projection_type = projection.get("ProjectionType")
    if projection_type is None:
        raise ValidationError(f"missing type for projection for index named {index_name}")
    if projection_type not in PROJECTION_TYPES:
        raise ValidationError(f"unknown projection type {projection_type!r} for index named {index_name}")

    out: dict[str, Any] = {"ProjectionType": projection_type}
    non_key = projection.get("NonKeyAttributes")
    if non_key is not None:
        if not isinstance(non_key, (list, tuple)):
            raise ValidationError(f"NonKeyAttributes is not a list for index named {index_name}")
        out["NonKeyAttributes"] = list(non_key)
    return out


def _build_indexes(
    index_type: str,
    indexes: Any,
    attribute_definitions: Mapping[str, Any],
) -> list[dict[str, Any]]:
    if not isinstance(indexes, Sequence) or isinstance(indexes, (str, bytes)):
        raise ValidationError(f"{index_type} is not a list")
    if len(indexes) > MAX_SECONDARY_INDEXES:
        raise ValidationError(
            f"too many {index_type} specified, must be less than or equal to {MAX_SECONDARY_INDEXES}"
        )

    out: list[dict[str, Any]] = []
    for index in indexes:
        if not isinstance(index, Mapping) or not index.get("IndexName"):
            raise ValidationError(f"no name specified in {index_type}: {index!r}")
        name = str(index["IndexName"])
        entry: dict[str, Any] = {
            "IndexName": name,
            "KeySchema": build_key_schema(index.get("KeySchema"), attribute_definitions),
            "Projection": _projection(name, index.get("Projection")),
        }
        if index_type == "GlobalSecondaryIndexes":
            entry["ProvisionedThroughput"] = _throughput(
                index.get("ProvisionedThroughput"), DEFAULT_INDEX_CAPACITY
            )
        out.append(entry)
    return out


def build_create_table_request(
    *,
    TableName: str | None = None,  # noqa: N803
    KeySchema: Sequence[str] | None = None,  # noqa: N803
    AttributeDefinitions: Mapping[str, str | None] | None = None,  # noqa: N803
    ReadCapacityUnits: int | None = None,  # noqa: N803
    WriteCapacityUnits: int | None = None,  # noqa: N803
    GlobalSecondaryIndexes: Sequence[Mapping[str, Any]] | None = None,  # noqa: N803
    LocalSecondaryIndexes: Sequence[Mapping[str, Any]] | None = None,  # noqa: N803
) -> dict[str, Any]:
    if not TableName:
        raise ValidationError("parameter TableName is required")

    req: dict[str, Any] = {
        "TableName": TableName,
        "ProvisionedThroughput": _throughput(
            {"ReadCapacityUnits": ReadCapacityUnits, "WriteCapacityUnits": WriteCapacityUnits},
            DEFAULT_TABLE_CAPACITY,
        ),
    }

    known: Mapping[str, Any] = {}
    if AttributeDefinitions is not None:
        req["AttributeDefinitions"] = build_attribute_definitions(AttributeDefinitions)
        known = AttributeDefinitions

    req["KeySchema"] = build_key_schema(KeySchema, known)

    if GlobalSecondaryIndexes is not None:
        req["GlobalSecondaryIndexes"] = _build_indexes("GlobalSecondaryIndexes", GlobalSecondaryIndexes, known)
    if LocalSecondaryIndexes is not None:
        req["LocalSecondaryIndexes"] = _build_indexes("LocalSecondaryIndexes", LocalSecondaryIndexes, known)

    return req

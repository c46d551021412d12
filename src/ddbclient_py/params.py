from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from .codec import encode_item
from .conditions import encode_attribute_updates, encode_expected, encode_filter, encode_key_conditions
from .errors import ValidationError

type SourceShape = Literal["mapping", "sequence"]


@dataclass(frozen=True)
class ParamDef:
    required: bool = False
    allowed_values: frozenset[str] | None = None
    source_shape: SourceShape | None = None
    integer: bool = False
    boolean: bool = False
    default: Any = None
    encode: Callable[[Any], Any] | None = None


PARAMETERS: Mapping[str, ParamDef] = MappingProxyType(
    {
        "AttributesToGet": ParamDef(source_shape="sequence", encode=list),
        "AttributeUpdates": ParamDef(source_shape="mapping", encode=encode_attribute_updates),
        "ConsistentRead": ParamDef(boolean=True),
        "ConditionalOperator": ParamDef(allowed_values=frozenset({"AND", "OR"})),
        "ExclusiveStartKey": ParamDef(source_shape="mapping", encode=encode_item),
        "ExclusiveStartTableName": ParamDef(),
        "Expected": ParamDef(source_shape="mapping", encode=encode_expected),
        "IndexName": ParamDef(),
        "Item": ParamDef(required=True, source_shape="mapping", encode=encode_item),
        "Key": ParamDef(required=True, source_shape="mapping", encode=encode_item),
        "KeyConditions": ParamDef(required=True, source_shape="mapping", encode=encode_key_conditions),
        "Limit": ParamDef(integer=True),
        "QueryFilter": ParamDef(source_shape="mapping", encode=encode_filter),
        "ReturnConsumedCapacity": ParamDef(allowed_values=frozenset({"INDEXES", "TOTAL", "NONE"})),
        "ReturnItemCollectionMetrics": ParamDef(allowed_values=frozenset({"NONE", "SIZE"})),
        "ReturnValues": ParamDef(
            allowed_values=frozenset({"NONE", "ALL_OLD", "UPDATED_OLD", "ALL_NEW", "UPDATED_NEW"})
        ),
        "ScanIndexForward": ParamDef(boolean=True),
        "ScanFilter": ParamDef(source_shape="mapping", encode=encode_filter),
        "Segment": ParamDef(integer=True),
        "Select": ParamDef(
            allowed_values=frozenset(
                {"ALL_ATTRIBUTES", "ALL_PROJECTED_ATTRIBUTES", "SPECIFIC_ATTRIBUTES", "COUNT"}
            )
        ),
        "TableName": ParamDef(required=True),
        "TotalSegments": ParamDef(integer=True),
    }
)


def _check_shape(field_name: str, value: Any, shape: SourceShape) -> None:
    if shape == "mapping" and not isinstance(value, Mapping):
        raise ValidationError(f"{field_name} must be a mapping, got {type(value).__name__}")
    if shape == "sequence" and not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list, got {type(value).__name__}")


def _coerce_integer(field_name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer, got a boolean")
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValidationError(f"{field_name} must be a non-negative integer, got {value!r}")


def resolve_param(field_name: str, value: Any) -> Any:
    definition = PARAMETERS.get(field_name)
    if definition is None:
        raise ValidationError(f"unknown parameter type: {field_name}")

    if value is None:
        if definition.required:
            raise ValidationError(f"parameter {field_name} is required")
        value = definition.default
        if value is None:
            return None

    if definition.allowed_values is not None and (
        not isinstance(value, str) or value not in definition.allowed_values
    ):
        allowed = ",".join(sorted(definition.allowed_values))
        raise ValidationError(
            f"{field_name} is {value!r} but it is not an allowed value; valid values are: {allowed}"
        )
    if definition.source_shape is not None:
        _check_shape(field_name, value, definition.source_shape)
    if definition.integer:
        value = _coerce_integer(field_name, value)
    if definition.boolean and not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a boolean, got {value!r}")

    if definition.encode is not None:
        value = definition.encode(value)
    return value


def build_payload(args: Mapping[str, Any], *field_names: str) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for field_name in field_names:
        value = resolve_param(field_name, args.get(field_name))
        if value is not None:
            payload[field_name] = value
    return payload


def reject_unknown(operation: str, args: Mapping[str, Any], accepted: tuple[str, ...]) -> None:
    unknown = sorted(set(args).difference(accepted))
    if unknown:
        raise ValidationError(f"{operation} does not accept: {', '.join(unknown)}")

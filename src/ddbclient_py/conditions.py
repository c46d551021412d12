from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .codec import AttributeValue, encode_attribute
from .errors import ValidationError

SINGLE_VALUE_OPERATORS = frozenset(
    {"EQ", "NE", "LE", "LT", "GE", "GT", "CONTAINS", "NOT_CONTAINS", "BEGINS_WITH"}
)
NO_VALUE_OPERATORS = frozenset({"NULL", "NOT_NULL"})
FILTER_OPERATORS = SINGLE_VALUE_OPERATORS | NO_VALUE_OPERATORS | {"IN", "BETWEEN"}
KEY_CONDITION_OPERATORS = frozenset({"EQ", "LE", "LT", "GE", "GT", "BEGINS_WITH", "BETWEEN"})
UPDATE_ACTIONS = frozenset({"PUT", "ADD", "DELETE"})


@dataclass(frozen=True)
class Condition:
    op: str
    values: tuple[Any, ...] = ()

    @staticmethod
    def eq(value: Any) -> Condition:
        return Condition(op="EQ", values=(value,))

    @staticmethod
    def ne(value: Any) -> Condition:
        return Condition(op="NE", values=(value,))

    @staticmethod
    def lt(value: Any) -> Condition:
        return Condition(op="LT", values=(value,))

    @staticmethod
    def lte(value: Any) -> Condition:
        return Condition(op="LE", values=(value,))

    @staticmethod
    def gt(value: Any) -> Condition:
        return Condition(op="GT", values=(value,))

    @staticmethod
    def gte(value: Any) -> Condition:
        return Condition(op="GE", values=(value,))

    @staticmethod
    def between(low: Any, high: Any) -> Condition:
        return Condition(op="BETWEEN", values=(low, high))

    @staticmethod
    def begins_with(prefix: Any) -> Condition:
        return Condition(op="BEGINS_WITH", values=(prefix,))

    @staticmethod
    def contains(value: Any) -> Condition:
        return Condition(op="CONTAINS", values=(value,))

    @staticmethod
    def not_contains(value: Any) -> Condition:
        return Condition(op="NOT_CONTAINS", values=(value,))

    @staticmethod
    def in_(values: list[Any]) -> Condition:
        return Condition(op="IN", values=tuple(values))

    @staticmethod
    def exists() -> Condition:
        return Condition(op="NOT_NULL")

    @staticmethod
    def not_exists() -> Condition:
        return Condition(op="NULL")

    def as_mapping(self) -> dict[str, Any]:
        op = self.op.upper()
        out: dict[str, Any] = {"ComparisonOperator": op}
        if op in NO_VALUE_OPERATORS:
            return out
        if op in {"IN", "BETWEEN"}:
            out["AttributeValueList"] = list(self.values)
        elif len(self.values) == 1:
            out["AttributeValueList"] = self.values[0]
        else:
            raise ValidationError(f"{op} requires one value")
        return out


type ConditionLike = Condition | Mapping[str, Any]


def _as_mapping(field_name: str, cond: Any) -> Mapping[str, Any]:
    if isinstance(cond, Condition):
        return cond.as_mapping()
    if not isinstance(cond, Mapping):
        raise ValidationError(f"condition for {field_name} must be a mapping or Condition")
    return cond


def encode_value_list(values: Any, op: str) -> list[AttributeValue] | None:
    if op in SINGLE_VALUE_OPERATORS:
        if values is None:
            raise ValidationError(f"no defined value for comparison operator: {op}")
        return [encode_attribute(values)]
    if op == "IN":
        if values is None:
            raise ValidationError("IN requires at least one value")
        if not isinstance(values, (list, tuple)):
            values = [values]
        return [encode_attribute(v) for v in values]
    if op == "BETWEEN":
        if not isinstance(values, (list, tuple)):
            raise ValidationError("use of BETWEEN comparison operator requires a list")
        if len(values) != 2:
            raise ValidationError("BETWEEN comparison operator requires two values")
        return [encode_attribute(v) for v in values]
    return None


def _encode_conditions(
    source: Mapping[str, Any], allowed: frozenset[str], *, require_values: bool
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field_name, raw in source.items():
        cond = _as_mapping(field_name, raw)
        op = str(cond.get("ComparisonOperator") or "EQ").upper()
        if op not in allowed:
            raise ValidationError(f"unknown comparison operator specified: {op}")

        entry: dict[str, Any] = {"ComparisonOperator": op}
        value_list = cond.get("AttributeValueList")
        if op in NO_VALUE_OPERATORS:
            if value_list is not None:
                raise ValidationError(f"{op} does not take a value")
        elif value_list is not None or require_values:
            entry["AttributeValueList"] = encode_value_list(value_list, op)
        out[field_name] = entry
    return out


def encode_filter(source: Mapping[str, Any]) -> dict[str, Any]:
    return _encode_conditions(source, FILTER_OPERATORS, require_values=False)


def encode_key_conditions(source: Mapping[str, Any]) -> dict[str, Any]:
    if not source:
        raise ValidationError("KeyConditions requires at least one key condition")
    return _encode_conditions(source, KEY_CONDITION_OPERATORS, require_values=True)


def encode_expected(source: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field_name, raw in source.items():
        info = _as_mapping(field_name, raw)
        entry: dict[str, Any] = {}
        op = info.get("ComparisonOperator")
        if op is not None:
            op = str(op).upper()
            if op not in FILTER_OPERATORS:
                raise ValidationError(f"unknown comparison operator specified: {op}")
            entry["ComparisonOperator"] = op
        if info.get("AttributeValueList") is not None:
            if op is None:
                raise ValidationError(f"AttributeValueList for {field_name} requires a ComparisonOperator")
            entry["AttributeValueList"] = encode_value_list(info["AttributeValueList"], op)
        if info.get("Exists") is not None:
            entry["Exists"] = bool(info["Exists"])
        if info.get("Value") is not None:
            entry["Value"] = encode_attribute(info["Value"])
        out[field_name] = entry
    return out


def encode_attribute_updates(source: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field_name, op in source.items():
        if not isinstance(op, Mapping):
            raise ValidationError(f"attribute update for {field_name} must be a mapping")
        entry: dict[str, Any] = {}
        action = op.get("Action")
        if action is not None:
            if action not in UPDATE_ACTIONS:
                raise ValidationError(f"unknown update action for {field_name}: {action}")
            entry["Action"] = action
        if op.get("Value") is not None:
            entry["Value"] = encode_attribute(op["Value"])
        out[field_name] = entry
    return out

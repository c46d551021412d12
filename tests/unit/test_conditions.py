from __future__ import annotations

import pytest

from ddbclient_py.conditions import (
    Condition,
    encode_attribute_updates,
    encode_expected,
    encode_filter,
    encode_key_conditions,
)
from ddbclient_py.errors import ValidationError


def test_key_conditions_from_condition_objects() -> None:
    out = encode_key_conditions({"user_id": Condition.eq(1), "date": Condition.between(10, 20)})
    assert out == {
        "user_id": {"ComparisonOperator": "EQ", "AttributeValueList": [{"N": "1"}]},
        "date": {"ComparisonOperator": "BETWEEN", "AttributeValueList": [{"N": "10"}, {"N": "20"}]},
    }


def test_key_conditions_accept_plain_mappings_and_default_eq() -> None:
    out = encode_key_conditions({"pk": {"AttributeValueList": "A"}})
    assert out == {"pk": {"ComparisonOperator": "EQ", "AttributeValueList": [{"S": "A"}]}}


def test_key_conditions_reject_filter_only_operators() -> None:
    with pytest.raises(ValidationError, match="unknown comparison operator specified: CONTAINS"):
        encode_key_conditions({"pk": Condition.contains("x")})
    with pytest.raises(ValidationError):
        encode_key_conditions({})
    with pytest.raises(ValidationError, match="no defined value"):
        encode_key_conditions({"pk": {"ComparisonOperator": "EQ"}})


def test_filter_operators() -> None:
    out = encode_filter(
        {
            "tags": Condition.contains("red"),
            "deleted": Condition.not_exists(),
            "status": Condition.in_(["a", "b"]),
            "owner": Condition.exists(),
        }
    )
    assert out["tags"] == {"ComparisonOperator": "CONTAINS", "AttributeValueList": [{"S": "red"}]}
    assert out["deleted"] == {"ComparisonOperator": "NULL"}
    assert out["status"]["AttributeValueList"] == [{"S": "a"}, {"S": "b"}]
    assert out["owner"] == {"ComparisonOperator": "NOT_NULL"}


def test_between_requires_two_values() -> None:
    with pytest.raises(ValidationError, match="requires two values"):
        encode_filter({"n": {"ComparisonOperator": "BETWEEN", "AttributeValueList": [1, 2, 3]}})
    with pytest.raises(ValidationError, match="requires a list"):
        encode_filter({"n": {"ComparisonOperator": "BETWEEN", "AttributeValueList": 1}})


def test_null_operators_take_no_value() -> None:
    with pytest.raises(ValidationError, match="does not take a value"):
        encode_filter({"n": {"ComparisonOperator": "NULL", "AttributeValueList": 1}})


def test_expected_encoding() -> None:
    out = encode_expected(
        {
            "version": {"Value": 3, "Exists": True},
            "lock": {"Exists": False},
            "score": Condition.gt(10),
        }
    )
    assert out == {
        "version": {"Value": {"N": "3"}, "Exists": True},
        "lock": {"Exists": False},
        "score": {"ComparisonOperator": "GT", "AttributeValueList": [{"N": "10"}]},
    }


def test_attribute_updates() -> None:
    out = encode_attribute_updates(
        {"count": {"Action": "ADD", "Value": 1}, "old": {"Action": "DELETE"}, "name": {"Value": "n"}}
    )
    assert out == {
        "count": {"Action": "ADD", "Value": {"N": "1"}},
        "old": {"Action": "DELETE"},
        "name": {"Value": {"S": "n"}},
    }
    with pytest.raises(ValidationError, match="unknown update action"):
        encode_attribute_updates({"x": {"Action": "REMOVE"}})

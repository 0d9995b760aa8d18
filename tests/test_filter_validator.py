"""Tests for smart rule validation against the rule-type table."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from storefront.errors import ValidationError
from storefront.models.rule import RuleConfig, RuleType
from storefront.services.rules.matrix import DEFAULT_RULE_MATRIX, RuleTypeSpec
from storefront.services.rules.validator import FilterValidator

FILTERABLE_TYPES = [t for t in RuleType if t is not RuleType.MANUAL_SELECTION]


def _valid_filter(field: str) -> dict:
    if field in {"createdAt", "lastSold"}:
        return {"field": field, "operator": "gte", "value": "30d"}
    if field in {"category", "brand", "tags"}:
        return {"field": field, "operator": "in", "value": ["x"]}
    return {"field": field, "operator": "between", "value": 10, "value2": 20}


@pytest.fixture()
def validator():
    return FilterValidator()


@pytest.mark.parametrize("rule_type", FILTERABLE_TYPES)
def test_field_outside_allow_list_is_rejected(validator, rule_type):
    allowed = DEFAULT_RULE_MATRIX[rule_type].allowed_fields
    candidates = ["category", "brand", "price", "stock", "tags", "createdAt", "lastSold", "discount", "color"]
    field = next(name for name in candidates if name not in allowed)

    with pytest.raises(ValidationError) as excinfo:
        validator.validate(
            {"rule_type": rule_type, "filters": [_valid_filter(field)]}
        )

    assert field in excinfo.value.message
    assert excinfo.value.status_code == 400


@pytest.mark.parametrize("rule_type", FILTERABLE_TYPES)
def test_required_fields_with_valid_operators_pass(validator, rule_type):
    entry = DEFAULT_RULE_MATRIX[rule_type]
    payload = {
        "rule_type": rule_type,
        "filters": [_valid_filter(field) for field in entry.required_fields],
    }

    rule = validator.validate(payload)

    assert isinstance(rule, RuleConfig)
    assert rule.rule_type is rule_type


@pytest.mark.parametrize(
    "rule_type, field",
    [(RuleType.CATEGORY_BASED, "category"), (RuleType.PRICE_RANGE, "price")],
)
def test_missing_required_filter_is_rejected(validator, rule_type, field):
    with pytest.raises(ValidationError, match=f"requires a '{field}' filter"):
        validator.validate({"rule_type": rule_type, "filters": []})


@pytest.mark.parametrize("payload", [None, {}, {"rule_type": ""}])
def test_missing_rule_or_type_is_rejected(validator, payload):
    with pytest.raises(ValidationError):
        validator.validate(payload)


def test_unknown_rule_type_is_rejected(validator):
    with pytest.raises(ValidationError, match="Unsupported rule type: everything"):
        validator.validate({"rule_type": "everything"})


@pytest.mark.parametrize("value2", [None, "", "   "])
def test_between_without_second_bound_fails(validator, value2):
    payload = {
        "rule_type": "price_range",
        "filters": [{"field": "price", "operator": "between", "value": 100, "value2": value2}],
    }

    with pytest.raises(ValidationError, match="requires a second value"):
        validator.validate(payload)


def test_between_with_both_bounds_passes(validator):
    payload = {
        "rule_type": "price_range",
        "filters": [{"field": "price", "operator": "between", "value": 100, "value2": 500}],
    }

    rule = validator.validate(payload)

    assert rule.filters[0].value2 == 500


def test_between_with_incomparable_bounds_fails(validator):
    payload = {
        "rule_type": "category_based",
        "filters": [{"field": "category", "operator": "between", "value": 100, "value2": "x"}],
    }

    with pytest.raises(ValidationError, match="not comparable"):
        validator.validate(payload)


@pytest.mark.parametrize(
    "rule_type, rule_filter",
    [
        ("price_range", {"field": "price", "operator": "gte", "value": "cheap"}),
        ("price_range", {"field": "price", "operator": "between", "value": 10, "value2": "lots"}),
        ("low_stock", {"field": "stock", "operator": "lte", "value": True}),
        ("heavy_discount", {"field": "discount", "operator": "gte", "value": {"pct": 40}}),
    ],
)
def test_non_numeric_value_on_numeric_field_fails(validator, rule_type, rule_filter):
    with pytest.raises(ValidationError, match="expects a number"):
        validator.validate({"rule_type": rule_type, "filters": [rule_filter]})


@pytest.mark.parametrize(
    "rule_filter",
    [
        {"field": "createdAt", "operator": "gte", "value": "last spring"},
        {"field": "lastSold", "operator": "between", "value": "30d", "value2": "never"},
    ],
)
def test_unrecognised_date_value_fails(validator, rule_filter):
    with pytest.raises(ValidationError, match="Unrecognised date value"):
        validator.validate({"rule_type": "custom_query", "filters": [rule_filter]})


@pytest.mark.parametrize(
    "rule_filter",
    [
        {"field": "price", "operator": "gte", "value": "19.99"},
        {"field": "createdAt", "operator": "gte", "value": "2025-01-01"},
        {"field": "lastSold", "operator": "between", "value": 30, "value2": "7d"},
    ],
)
def test_coercible_values_pass(validator, rule_filter):
    rule = validator.validate({"rule_type": "custom_query", "filters": [rule_filter]})

    assert rule.filters[0].value == rule_filter["value"]


def test_manual_selection_skips_filter_checks(validator):
    payload = {
        "rule_type": "manual_selection",
        "product_ids": ["a", "b"],
        "filters": [{"field": "color", "operator": "equals", "value": "red"}],
    }

    rule = validator.validate(payload)

    assert rule.product_ids == ["a", "b"]


def test_unknown_operator_is_reported_as_validation_error(validator):
    payload = {
        "rule_type": "custom_query",
        "filters": [{"field": "price", "operator": "regex", "value": 1}],
    }

    with pytest.raises(ValidationError, match="Malformed smart rule"):
        validator.validate(payload)


def test_unknown_sort_field_is_rejected(validator):
    with pytest.raises(ValidationError, match="Unsupported sort field"):
        validator.validate({"rule_type": "new_arrivals", "sort_by": "colour"})


def test_validator_uses_injected_matrix():
    narrow = MappingProxyType(
        {RuleType.NEW_ARRIVALS: RuleTypeSpec(allowed_fields=frozenset({"tags"}))}
    )
    validator = FilterValidator(narrow)

    validator.validate({"rule_type": "new_arrivals", "filters": [_valid_filter("tags")]})
    with pytest.raises(ValidationError, match="Unsupported rule type"):
        validator.validate({"rule_type": "best_sellers"})


def test_default_matrix_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_RULE_MATRIX[RuleType.NEW_ARRIVALS] = RuleTypeSpec(frozenset())  # type: ignore[index]

"""Validation of smart rule payloads against the rule-type table."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import pydantic

from storefront.errors import ValidationError
from storefront.models.rule import FilterOperator, RuleConfig, RuleFilter, RuleType
from storefront.services.rules.matrix import (
    DEFAULT_RULE_MATRIX,
    SORT_FIELD_KEYS,
    RuleMatrix,
)
from storefront.services.rules.values import coerce_filter_value

logger = logging.getLogger(__name__)

_RULE_TYPES = frozenset(rule_type.value for rule_type in RuleType)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _comparable(lower: Any, upper: Any) -> bool:
    try:
        lower < upper  # pylint: disable=pointless-statement
    except TypeError:
        return False
    return True


class FilterValidator:
    """Reject rules whose filters fall outside their rule type's allow-list."""

    def __init__(self, matrix: RuleMatrix = DEFAULT_RULE_MATRIX) -> None:
        self._matrix = matrix

    def validate(self, rule: RuleConfig | Mapping[str, Any] | None) -> RuleConfig:
        """Validate a rule and return it as a parsed :class:`RuleConfig`.

        Raises:
            ValidationError: with a human-readable message naming the offending
                rule type, field or operator.
        """

        if rule is None:
            raise ValidationError("Smart rule configuration is missing")
        if isinstance(rule, Mapping):
            rule = self._parse(rule)

        entry = self._matrix.get(rule.rule_type)
        if entry is None:
            raise ValidationError(f"Unsupported rule type: {rule.rule_type}")

        if rule.rule_type is RuleType.MANUAL_SELECTION:
            return rule

        for rule_filter in rule.filters:
            if rule_filter.field not in entry.allowed_fields:
                allowed = ", ".join(sorted(entry.allowed_fields)) or "none"
                raise ValidationError(
                    f"Field '{rule_filter.field}' is not allowed for rule type "
                    f"'{rule.rule_type}'. Allowed: {allowed}"
                )
            self._check_operands(rule_filter)

        for field in entry.required_fields:
            if rule.filter_for(field) is None:
                raise ValidationError(
                    f"Rule type '{rule.rule_type}' requires a '{field}' filter"
                )

        if rule.sort_by is not None and rule.sort_by not in SORT_FIELD_KEYS:
            raise ValidationError(f"Unsupported sort field: {rule.sort_by}")

        return rule

    @staticmethod
    def _check_operands(rule_filter: RuleFilter) -> None:
        if _is_blank(rule_filter.value):
            raise ValidationError(
                f"Filter on '{rule_filter.field}' with operator "
                f"'{rule_filter.operator}' requires a value"
            )
        now = datetime.now(UTC)
        value = coerce_filter_value(rule_filter.field, rule_filter.value, now)
        if rule_filter.operator is not FilterOperator.BETWEEN:
            return
        if _is_blank(rule_filter.value2):
            raise ValidationError(
                f"'between' filter on '{rule_filter.field}' requires a second value"
            )
        upper = coerce_filter_value(rule_filter.field, rule_filter.value2, now)
        if not _comparable(value, upper):
            raise ValidationError(
                f"'between' bounds on '{rule_filter.field}' are not comparable",
                detail=f"{rule_filter.value!r} / {rule_filter.value2!r}",
            )

    @staticmethod
    def _parse(payload: Mapping[str, Any]) -> RuleConfig:
        rule_type = payload.get("rule_type")
        if _is_blank(rule_type):
            raise ValidationError("Rule type is required")
        if rule_type not in _RULE_TYPES:
            raise ValidationError(f"Unsupported rule type: {rule_type}")

        try:
            return RuleConfig.model_validate(dict(payload))
        except pydantic.ValidationError as exc:
            logger.debug("Rejected rule payload: %s", exc.errors())
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(
                f"Malformed smart rule at '{location}': {first['msg']}",
                detail=f"{exc.error_count()} error(s)",
            ) from exc

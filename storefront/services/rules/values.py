"""Coercion of raw filter values for numeric and date fields.

Shared by the validator, which rejects values that cannot be coerced, and the
query builder, which folds the coerced values into predicates.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from typing import Any

from storefront.errors import ValidationError
from storefront.services.rules.matrix import DATE_FILTER_FIELDS, NUMERIC_FILTER_FIELDS

_DAY_COUNT = re.compile(r"^\s*(\d+)\s*d?\s*$", re.IGNORECASE)


def day_count(value: Any) -> int | None:
    """Return ``value`` as a number of days (``30``, ``"30"``, ``"30d"``) or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _DAY_COUNT.match(value)
        if match:
            return int(match.group(1))
    return None


def as_datetime(value: Any, now: datetime) -> datetime:
    """Resolve a day count relative to ``now``, or parse an ISO timestamp."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    days = day_count(value)
    if days is not None:
        return now - timedelta(days=days)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ValidationError(f"Unrecognised date value: {value}") from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise ValidationError(f"Unrecognised date value: {value!r}")


def coerce_filter_value(field: str, value: Any, now: datetime) -> Any:
    if isinstance(value, list):
        return tuple(coerce_filter_value(field, item, now) for item in value)
    if field in DATE_FILTER_FIELDS:
        return as_datetime(value, now)
    if field in NUMERIC_FILTER_FIELDS:
        if isinstance(value, bool):
            raise ValidationError(f"Filter on '{field}' expects a number")
        if isinstance(value, (int, float)):
            return value
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Filter on '{field}' expects a number") from exc
    return value

"""Translate validated smart rules into tenant-scoped repository queries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from storefront.config import settings
from storefront.errors import ValidationError
from storefront.models.rule import (
    FilterOperator,
    RuleConfig,
    RuleFilter,
    RuleType,
    SortOrder,
)
from storefront.services.rules.matrix import (
    DATE_FILTER_FIELDS,
    DEFAULT_RULE_MATRIX,
    FILTER_FIELD_KEYS,
    LIST_FILTER_FIELDS,
    SORT_FIELD_KEYS,
    RuleMatrix,
)
from storefront.services.rules.query import (
    AllOf,
    AnyOf,
    Comparison,
    FieldRatio,
    Predicate,
    RuleQuery,
    SortKey,
    TenantScope,
)
from storefront.services.rules.values import coerce_filter_value, day_count

logger = logging.getLogger(__name__)

_OPERATOR_MAP = {
    FilterOperator.EQUALS: "eq",
    FilterOperator.IN: "in",
    FilterOperator.GTE: "gte",
    FilterOperator.LTE: "lte",
    FilterOperator.BETWEEN: "between",
    FilterOperator.CONTAINS: "contains",
}

_STALE_OPERATORS = frozenset({FilterOperator.EQUALS, FilterOperator.LTE})

BaseClauses = tuple[list[Predicate], frozenset[str]]


def _utcnow() -> datetime:
    return datetime.now(UTC)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _DAY_COUNT.match(value)
        if match:
            return int(match.group(1))
    return None


class RuleQueryBuilder:
    """Build :class:`RuleQuery` objects from rule configurations.

    Every query starts with the tenant scope and the active-product clause,
    followed by the rule type's base clauses and the user filters. The limit is
    defaulted and clamped; the ordering defaults to the rule type's natural one.
    """

    def __init__(
        self,
        matrix: RuleMatrix = DEFAULT_RULE_MATRIX,
        *,
        default_limit: int | None = None,
        max_limit: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._matrix = matrix
        self._default_limit = default_limit or settings.RULE_DEFAULT_LIMIT
        self._max_limit = max_limit or settings.RULE_MAX_LIMIT
        self._clock = clock
        self._base_builders: dict[RuleType, Callable[[RuleConfig, datetime], BaseClauses]] = {
            RuleType.NEW_ARRIVALS: self._no_base,
            RuleType.BEST_SELLERS: self._no_base,
            RuleType.TRENDING: self._trending,
            RuleType.CLEARANCE_SALE: self._clearance_sale,
            RuleType.HEAVY_DISCOUNT: self._heavy_discount,
            RuleType.CATEGORY_BASED: self._no_base,
            RuleType.PRICE_RANGE: self._no_base,
            RuleType.LOW_STOCK: self._low_stock,
            RuleType.DEAD_STOCK: self._dead_stock,
            RuleType.CUSTOM_QUERY: self._no_base,
            RuleType.MANUAL_SELECTION: self._manual_selection,
        }

    def build(self, rule: RuleConfig, organization_id: str) -> RuleQuery:
        if not organization_id:
            raise ValidationError("Organization scope is required to build a rule query")

        entry = self._matrix.get(rule.rule_type)
        if entry is None:
            raise ValidationError(f"Unsupported rule type: {rule.rule_type}")

        now = self._clock()
        clauses: list[Predicate] = [
            TenantScope(organization_id),
            Comparison("is_active", "eq", True),
        ]
        base, consumed = self._base_builders[rule.rule_type](rule, now)
        clauses.extend(base)

        if rule.rule_type is not RuleType.MANUAL_SELECTION:
            for rule_filter in rule.filters:
                if rule_filter.field not in consumed:
                    clauses.append(self._fold(rule_filter, now))

        query = RuleQuery(
            organization_id=organization_id,
            predicate=AllOf(tuple(clauses)),
            sort=self._sort(rule, entry.sort_by, entry.sort_order),
            limit=self._limit(rule.limit),
        )
        logger.debug(
            "Built %s query for organization %s",
            rule.rule_type,
            organization_id,
            extra={"query": query.predicate.to_query(), "limit": query.limit},
        )
        return query

    def _limit(self, requested: int | None) -> int:
        return min(requested or self._default_limit, self._max_limit)

    @staticmethod
    def _sort(
        rule: RuleConfig, natural_field: str, natural_order: SortOrder
    ) -> tuple[SortKey, ...]:
        if rule.sort_by is None:
            field, order = natural_field, rule.sort_order or natural_order
        else:
            field, order = rule.sort_by, rule.sort_order or SortOrder.DESC

        key = SORT_FIELD_KEYS.get(field)
        if key is None:
            raise ValidationError(f"Unsupported sort field: {field}")
        # Stable tie-break so equal keys never reorder between runs.
        return (SortKey(key, order is SortOrder.DESC), SortKey("id", descending=False))

    def _fold(self, rule_filter: RuleFilter, now: datetime) -> Predicate:
        key = FILTER_FIELD_KEYS.get(rule_filter.field)
        if key is None:
            raise ValidationError(f"Unknown filter field: {rule_filter.field}")

        value = coerce_filter_value(rule_filter.field, rule_filter.value, now)
        op = _OPERATOR_MAP[rule_filter.operator]
        if op == "between":
            upper = coerce_filter_value(rule_filter.field, rule_filter.value2, now)
            if rule_filter.field in DATE_FILTER_FIELDS and value > upper:
                # Day counts may name either bound first.
                value, upper = upper, value
            return Comparison(key, "between", value, upper)
        if op == "contains" and rule_filter.field in LIST_FILTER_FIELDS:
            op = "has"
        if op == "in" and not isinstance(value, (list, tuple)):
            value = (value,)
        return Comparison(key, op, value)

    # Base clauses per rule type. Each returns the clauses and the filter
    # fields it already consumed.

    @staticmethod
    def _no_base(rule: RuleConfig, now: datetime) -> BaseClauses:
        return [], frozenset()

    @staticmethod
    def _trending(rule: RuleConfig, now: datetime) -> BaseClauses:
        if rule.filter_for("lastSold") is not None:
            return [], frozenset()
        window = now - timedelta(days=settings.TRENDING_WINDOW_DAYS)
        return [Comparison("last_sold", "gte", window)], frozenset()

    @staticmethod
    def _clearance_sale(rule: RuleConfig, now: datetime) -> BaseClauses:
        factor = 1 - settings.CLEARANCE_MIN_DISCOUNT_PERCENT / 100
        ratio = (
            FieldRatio("discounted_price", "selling_price", factor)
            if factor < 1
            else FieldRatio("discounted_price", "selling_price", 1.0, op="lt")
        )
        return [Comparison("discounted_price", "gt", 0), ratio], frozenset()

    @staticmethod
    def _heavy_discount(rule: RuleConfig, now: datetime) -> BaseClauses:
        clauses: list[Predicate] = [Comparison("discounted_price", "gt", 0)]
        discount = rule.filter_for("discount")
        percent = discount.value if discount is not None else None
        try:
            percent = float(percent) if percent is not None else 0.0
        except (TypeError, ValueError) as exc:
            raise ValidationError("Discount filter expects a percentage") from exc

        if percent > 0:
            clauses.append(FieldRatio("discounted_price", "selling_price", 1 - percent / 100))
        else:
            clauses.append(FieldRatio("discounted_price", "selling_price", 1.0, op="lt"))
        return clauses, frozenset({"discount"})

    @staticmethod
    def _low_stock(rule: RuleConfig, now: datetime) -> BaseClauses:
        return [Comparison("total_stock", "lt", settings.LOW_STOCK_THRESHOLD)], frozenset()

    def _dead_stock(self, rule: RuleConfig, now: datetime) -> BaseClauses:
        last_sold = rule.filter_for("lastSold")
        days = day_count(last_sold.value) if last_sold is not None else None
        if last_sold is None:
            recency: Predicate = Comparison(
                "last_sold", "lt", now - timedelta(days=settings.DEAD_STOCK_DAYS)
            )
        elif days is not None and last_sold.operator in _STALE_OPERATORS:
            # "lastSold 60d" reads as "not sold for at least 60 days".
            recency = Comparison("last_sold", "lte", now - timedelta(days=days))
        else:
            recency = self._fold(last_sold, now)
        return [
            Comparison("total_stock", "gt", settings.DEAD_STOCK_MIN_QUANTITY),
            AnyOf((Comparison("last_sold", "missing"), recency)),
        ], frozenset({"lastSold"})

    @staticmethod
    def _manual_selection(rule: RuleConfig, now: datetime) -> BaseClauses:
        return [Comparison("id", "in", tuple(rule.product_ids))], frozenset()

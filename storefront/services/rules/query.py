"""Store-agnostic predicate tree produced by the rule query builder.

Every node can be evaluated against a flat product document (``matches``) and
rendered as a document-store filter (``to_query``). Same-document field
comparisons are their own node type so no store has to fake them with literals.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

ComparisonOp = Literal[
    "eq", "in", "gt", "gte", "lt", "lte", "between", "contains", "has", "exists", "missing"
]


class Predicate(ABC):
    @abstractmethod
    def matches(self, document: Mapping[str, Any]) -> bool:
        """Return True when the document satisfies the predicate."""

    @abstractmethod
    def to_query(self) -> dict[str, Any]:
        """Render the predicate as a document-store filter."""


def _compare(actual: Any, op: str, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    try:
        if op == "gt":
            return actual > expected
        if op == "gte":
            return actual >= expected
        if op == "lt":
            return actual < expected
        return actual <= expected
    except TypeError:
        return False


@dataclass(frozen=True)
class TenantScope(Predicate):
    """Mandatory organization clause; always the first clause of a rule query."""

    organization_id: str

    def matches(self, document: Mapping[str, Any]) -> bool:
        return document.get("organization_id") == self.organization_id

    def to_query(self) -> dict[str, Any]:
        return {"organization_id": self.organization_id}


@dataclass(frozen=True)
class Comparison(Predicate):
    field: str
    op: ComparisonOp
    value: Any = None
    upper: Any = None

    def matches(self, document: Mapping[str, Any]) -> bool:
        actual = document.get(self.field)
        if self.op == "exists":
            return actual is not None
        if self.op == "missing":
            return actual is None
        if self.op == "eq":
            if isinstance(actual, list):
                return self.value in actual
            return actual == self.value
        if self.op == "in":
            candidates = self.value if isinstance(self.value, (list, tuple)) else (self.value,)
            if isinstance(actual, list):
                return any(item in candidates for item in actual)
            return actual in candidates
        if self.op == "contains":
            return self._contains(actual)
        if self.op == "has":
            return self._has(actual)
        if self.op == "between":
            return _compare(actual, "gte", self.value) and _compare(
                actual, "lte", self.upper
            )
        return _compare(actual, self.op, self.value)

    def _contains(self, actual: Any) -> bool:
        if actual is None or self.value is None:
            return False
        needle = str(self.value).lower()
        if isinstance(actual, list):
            return any(needle in str(item).lower() for item in actual)
        return needle in str(actual).lower()

    def _has(self, actual: Any) -> bool:
        if not isinstance(actual, list) or self.value is None:
            return False
        needle = str(self.value).lower()
        return any(needle == str(item).lower() for item in actual)

    def to_query(self) -> dict[str, Any]:
        if self.op == "eq":
            return {self.field: self.value}
        if self.op == "in":
            values = self.value if isinstance(self.value, (list, tuple)) else (self.value,)
            return {self.field: {"$in": list(values)}}
        if self.op == "between":
            return {self.field: {"$gte": self.value, "$lte": self.upper}}
        if self.op == "contains":
            return {self.field: {"$regex": re.escape(str(self.value)), "$options": "i"}}
        if self.op == "has":
            pattern = f"^{re.escape(str(self.value))}$"
            return {self.field: {"$regex": pattern, "$options": "i"}}
        if self.op == "exists":
            return {self.field: {"$exists": True, "$ne": None}}
        if self.op == "missing":
            return {self.field: None}
        return {self.field: {f"${self.op}": self.value}}


@dataclass(frozen=True)
class FieldRatio(Predicate):
    """``left <op> right * factor`` evaluated within one document."""

    left: str
    right: str
    factor: float = 1.0
    op: Literal["lt", "lte"] = "lte"

    def matches(self, document: Mapping[str, Any]) -> bool:
        left = document.get(self.left)
        right = document.get(self.right)
        if left is None or right is None:
            return False
        return _compare(left, self.op, right * self.factor)

    def to_query(self) -> dict[str, Any]:
        return {
            "$expr": {
                f"${self.op}": [
                    f"${self.left}",
                    {"$multiply": [f"${self.right}", self.factor]},
                ]
            }
        }


@dataclass(frozen=True)
class AllOf(Predicate):
    clauses: tuple[Predicate, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(clause.matches(document) for clause in self.clauses)

    def to_query(self) -> dict[str, Any]:
        return {"$and": [clause.to_query() for clause in self.clauses]}


@dataclass(frozen=True)
class AnyOf(Predicate):
    clauses: tuple[Predicate, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        return any(clause.matches(document) for clause in self.clauses)

    def to_query(self) -> dict[str, Any]:
        return {"$or": [clause.to_query() for clause in self.clauses]}


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = True

    def to_query(self) -> dict[str, int]:
        return {self.field: -1 if self.descending else 1}


@dataclass(frozen=True)
class RuleQuery:
    """Repository-ready query: tenant-scoped predicate, ordering and cap."""

    organization_id: str
    predicate: AllOf
    sort: tuple[SortKey, ...]
    limit: int

    @property
    def tenant_scoped(self) -> bool:
        clauses = self.predicate.clauses
        return bool(clauses) and clauses[0] == TenantScope(self.organization_id)

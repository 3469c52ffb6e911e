"""Composable query predicates.

Endpoints describe what they want to match with a small set of predicate
types instead of building storage-specific filter objects by hand.  The same
predicate can be compiled to a SQLAlchemy clause for queries, or evaluated
against in-memory objects.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from sqlalchemy import and_, false, or_, true


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class InSet:
    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Range:
    field: str
    low: Optional[Any] = None
    high: Optional[Any] = None


@dataclass(frozen=True)
class TextMatch:
    field: str
    text: str


@dataclass(frozen=True)
class AnyOf:
    predicates: Tuple["Predicate", ...]

    def __init__(self, *predicates):
        object.__setattr__(self, "predicates", tuple(predicates))


@dataclass(frozen=True)
class AllOf:
    predicates: Tuple["Predicate", ...]

    def __init__(self, *predicates):
        object.__setattr__(self, "predicates", tuple(predicates))


Predicate = Union[Equals, InSet, Range, TextMatch, AnyOf, AllOf]

LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """LIKE pattern matching `text` anywhere, with its own wildcards taken literally."""
    escaped = text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")
    return f"%{escaped}%"


def ilike_contains(column, text: str):
    return column.ilike(contains_pattern(text), escape=LIKE_ESCAPE)


def to_clause(predicate: Predicate, model):
    """Compile a predicate to a SQLAlchemy boolean clause over `model`'s columns."""
    if isinstance(predicate, Equals):
        column = getattr(model, predicate.field)
        if predicate.value is None:
            return column.is_(None)
        return column == predicate.value
    if isinstance(predicate, InSet):
        if not predicate.values:
            return false()
        return getattr(model, predicate.field).in_(predicate.values)
    if isinstance(predicate, Range):
        column = getattr(model, predicate.field)
        bounds = []
        if predicate.low is not None:
            bounds.append(column >= predicate.low)
        if predicate.high is not None:
            bounds.append(column <= predicate.high)
        return and_(*bounds) if bounds else true()
    if isinstance(predicate, TextMatch):
        return ilike_contains(getattr(model, predicate.field), predicate.text)
    if isinstance(predicate, AnyOf):
        if not predicate.predicates:
            return false()
        return or_(*(to_clause(p, model) for p in predicate.predicates))
    if isinstance(predicate, AllOf):
        if not predicate.predicates:
            return true()
        return and_(*(to_clause(p, model) for p in predicate.predicates))
    raise TypeError(f"Unknown predicate: {predicate!r}")


def _value(obj, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def matches(predicate: Predicate, obj) -> bool:
    """Evaluate a predicate against an object or mapping."""
    if isinstance(predicate, Equals):
        return _value(obj, predicate.field) == predicate.value
    if isinstance(predicate, InSet):
        return _value(obj, predicate.field) in predicate.values
    if isinstance(predicate, Range):
        value = _value(obj, predicate.field)
        if value is None:
            return False
        if predicate.low is not None and value < predicate.low:
            return False
        if predicate.high is not None and value > predicate.high:
            return False
        return True
    if isinstance(predicate, TextMatch):
        value = _value(obj, predicate.field)
        return value is not None and predicate.text.lower() in str(value).lower()
    if isinstance(predicate, AnyOf):
        return any(matches(p, obj) for p in predicate.predicates)
    if isinstance(predicate, AllOf):
        return all(matches(p, obj) for p in predicate.predicates)
    raise TypeError(f"Unknown predicate: {predicate!r}")


@dataclass
class FilterBuilder:
    predicates: List[Predicate] = field(default_factory=list)

    def add(self, predicate: Optional[Predicate]) -> "FilterBuilder":
        if predicate is not None:
            self.predicates.append(predicate)
        return self

    def equals(self, name: str, value) -> "FilterBuilder":
        if value is not None:
            self.predicates.append(Equals(name, value))
        return self

    def text(self, value: Optional[str], *names: str) -> "FilterBuilder":
        if value:
            self.predicates.append(AnyOf(*(TextMatch(n, value) for n in names)))
        return self

    def range(self, name: str, low=None, high=None) -> "FilterBuilder":
        if low is not None or high is not None:
            self.predicates.append(Range(name, low, high))
        return self

    def build(self) -> AllOf:
        return AllOf(*self.predicates)

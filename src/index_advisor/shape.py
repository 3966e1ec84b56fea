"""
Query shape normalization.

Turns a declarative query description (equality map, range map, sort list,
text terms, limit) into an immutable QueryShape. Literal values are never
inspected; only the fields and operators that decide index eligibility are
kept.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import MalformedQueryError

logger = logging.getLogger(__name__)

RANGE_OPERATORS = {
    ">=": ">=",
    "<=": "<=",
    ">": ">",
    "<": "<",
    "$gte": ">=",
    "$lte": "<=",
    "$gt": ">",
    "$lt": "<",
}
LOWER_BOUND_OPERATORS = frozenset({">", ">="})

TEXT_SCORE_META = {"$meta": "textScore"}
RELEVANCE_SORT_FIELD = "score"

FLAG_TEXT_WITH_RANGE_OR_SORT = "text-with-range-or-sort"

QUERY_KEYS = frozenset({"name", "equality", "range", "sort", "text", "limit"})


@dataclass(frozen=True)
class RangePredicate:
    """Range condition on one field; operators are normalized symbols."""

    field: str
    operators: tuple[str, ...]

    @property
    def bounds(self) -> str:
        lower = any(op in LOWER_BOUND_OPERATORS for op in self.operators)
        upper = any(op not in LOWER_BOUND_OPERATORS for op in self.operators)
        if lower and upper:
            return "both"
        return "lower" if lower else "upper"


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: int


@dataclass(frozen=True)
class QueryShape:
    """
    Canonical form of a query.

    Two shapes that differ only in ``name`` compare equal.
    """

    equality: frozenset[str] = frozenset()
    ranges: tuple[RangePredicate, ...] = ()
    sort: tuple[SortKey, ...] = ()
    sort_by_relevance: bool = False
    text_terms: tuple[str, ...] = ()
    limit: int | None = None
    flags: tuple[str, ...] = ()
    name: str | None = field(default=None, compare=False)

    @property
    def range_fields(self) -> frozenset[str]:
        return frozenset(r.field for r in self.ranges)

    @property
    def sort_fields(self) -> tuple[str, ...]:
        return tuple(k.field for k in self.sort)

    @property
    def is_text(self) -> bool:
        return bool(self.text_terms)

    @property
    def requests_sort(self) -> bool:
        return bool(self.sort) or self.sort_by_relevance

    @property
    def unsatisfiable(self) -> bool:
        return FLAG_TEXT_WITH_RANGE_OR_SORT in self.flags

    @property
    def referenced_fields(self) -> frozenset[str]:
        return self.equality | self.range_fields | frozenset(self.sort_fields)

    def range_for(self, field_name: str) -> RangePredicate | None:
        for predicate in self.ranges:
            if predicate.field == field_name:
                return predicate
        return None

    def to_document(self) -> dict[str, Any]:
        """Plain-dict rendering used by explain output and reports."""
        sort: dict[str, Any] = {k.field: k.direction for k in self.sort}
        if self.sort_by_relevance:
            sort[RELEVANCE_SORT_FIELD] = dict(TEXT_SCORE_META)
        return {
            "name": self.name,
            "equality": sorted(self.equality),
            "range": {r.field: list(r.operators) for r in self.ranges},
            "sort": sort,
            "text": list(self.text_terms),
            "limit": self.limit,
            "flags": list(self.flags),
        }


class QueryShapeParser:
    """
    Parser for query documents.

    Args:
        strict: Raise MalformedQueryError for shapes no single index can
            serve (text search combined with a range or a field sort)
            instead of flagging them
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def parse(self, document: Mapping[str, Any]) -> QueryShape:
        """
        Normalize a query document into a QueryShape.

        Raises:
            MalformedQueryError: If the document cannot be normalized
        """
        if not isinstance(document, Mapping):
            raise MalformedQueryError(f"Query must be a mapping, got {type(document).__name__}")

        unknown = set(document) - QUERY_KEYS
        if unknown:
            raise MalformedQueryError(f"Unknown query keys: {sorted(unknown)}")

        name = document.get("name")
        if name is not None and not isinstance(name, str):
            raise MalformedQueryError("Query name must be a string")

        equality = self._parse_equality(document.get("equality"))
        ranges = self._parse_ranges(document.get("range"))

        overlap = equality & {r.field for r in ranges}
        if overlap:
            raise MalformedQueryError(
                f"Fields used for both equality and range: {sorted(overlap)}"
            )

        sort, sort_by_relevance = self._parse_sort(document.get("sort"))
        text_terms = self._parse_text(document.get("text"))
        limit = self._parse_limit(document.get("limit"))

        if sort_by_relevance and not text_terms:
            raise MalformedQueryError("Relevance sort requires text search terms")

        flags = []
        if text_terms and (ranges or sort):
            message = (
                f"Query {name or '<anonymous>'} combines text search with a range or "
                f"field sort; no single index can serve it"
            )
            if self.strict:
                raise MalformedQueryError(message)
            logger.warning(message)
            flags.append(FLAG_TEXT_WITH_RANGE_OR_SORT)

        return QueryShape(
            equality=equality,
            ranges=ranges,
            sort=sort,
            sort_by_relevance=sort_by_relevance,
            text_terms=text_terms,
            limit=limit,
            flags=tuple(flags),
            name=name,
        )

    @staticmethod
    def _check_field(name: Any) -> str:
        if not isinstance(name, str) or not name:
            raise MalformedQueryError(f"Field names must be non-empty strings, got {name!r}")
        if name.startswith("$"):
            raise MalformedQueryError(f"Unsupported operator in field position: {name}")
        return name

    def _parse_equality(self, equality: Any) -> frozenset[str]:
        if equality is None:
            return frozenset()
        if not isinstance(equality, Mapping):
            raise MalformedQueryError("'equality' must be a mapping of field to value")
        return frozenset(self._check_field(f) for f in equality)

    def _parse_ranges(self, ranges: Any) -> tuple[RangePredicate, ...]:
        if ranges is None:
            return ()
        if not isinstance(ranges, Mapping):
            raise MalformedQueryError("'range' must be a mapping of field to operators")

        predicates = []
        for field_name, conditions in ranges.items():
            self._check_field(field_name)
            if not isinstance(conditions, Mapping) or not conditions:
                raise MalformedQueryError(
                    f"Range on '{field_name}' must map at least one operator to a value"
                )
            operators = set()
            for op in conditions:
                if op not in RANGE_OPERATORS:
                    raise MalformedQueryError(f"Unsupported range operator '{op}' on '{field_name}'")
                operators.add(RANGE_OPERATORS[op])
            predicates.append(RangePredicate(field_name, tuple(sorted(operators))))
        return tuple(predicates)

    def _parse_sort(self, sort: Any) -> tuple[tuple[SortKey, ...], bool]:
        if sort is None:
            return (), False

        if isinstance(sort, Mapping):
            items = list(sort.items())
        elif isinstance(sort, Sequence) and not isinstance(sort, str):
            items = []
            for entry in sort:
                if (
                    isinstance(entry, Mapping)
                    and isinstance(entry.get("field"), str)
                    and set(entry) <= {"field", "direction"}
                ):
                    # {"field": name, "direction": d}; a one-key map on a field named
                    # "field" carries a numeric direction instead
                    items.append((entry["field"], entry.get("direction", 1)))
                elif isinstance(entry, Mapping) and len(entry) == 1:
                    items.extend(entry.items())
                elif isinstance(entry, Sequence) and not isinstance(entry, str) and len(entry) == 2:
                    items.append((entry[0], entry[1]))
                else:
                    raise MalformedQueryError(f"Invalid sort entry: {entry!r}")
        else:
            raise MalformedQueryError("'sort' must be a mapping or a list of (field, direction)")

        keys = []
        seen = set()
        relevance = False
        for field_name, direction in items:
            if direction == TEXT_SCORE_META:
                relevance = True
                continue
            self._check_field(field_name)
            if isinstance(direction, bool) or direction not in (1, -1):
                raise MalformedQueryError(
                    f"Sort direction for '{field_name}' must be 1 or -1, got {direction!r}"
                )
            if field_name in seen:
                raise MalformedQueryError(f"Field '{field_name}' appears twice in sort")
            seen.add(field_name)
            keys.append(SortKey(field_name, direction))
        return tuple(keys), relevance

    @staticmethod
    def _parse_text(text: Any) -> tuple[str, ...]:
        if text is None:
            return ()
        if isinstance(text, str):
            chunks = [text]
        elif isinstance(text, Sequence):
            chunks = list(text)
        else:
            raise MalformedQueryError("'text' must be a string or a list of terms")

        terms: list[str] = []
        for chunk in chunks:
            if not isinstance(chunk, str):
                raise MalformedQueryError(f"Text terms must be strings, got {chunk!r}")
            words = chunk.split()
            if not words:
                raise MalformedQueryError("Text terms must not be blank")
            for word in words:
                term = word.lower()
                if term not in terms:
                    terms.append(term)
        return tuple(terms)

    @staticmethod
    def _parse_limit(limit: Any) -> int | None:
        if limit is None:
            return None
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise MalformedQueryError(f"Limit must be an integer, got {limit!r}")
        if limit < 0:
            raise MalformedQueryError(f"Limit must not be negative, got {limit}")
        # a zero limit means "no limit"
        return limit or None


def parse_query(document: Mapping[str, Any], strict: bool = False) -> QueryShape:
    """Parse a query document with a default parser."""
    return QueryShapeParser(strict=strict).parse(document)


def parse_find(
    filter: Mapping[str, Any],
    sort: Any = None,
    limit: int | None = None,
    name: str | None = None,
    strict: bool = False,
) -> QueryShape:
    """
    Parse the filter/sort/limit triple of a document-store ``find`` call.

    Supported filter forms: ``{field: literal}``, ``{field: {"$eq": v}}``,
    ``{field: {"$in": [...]}}`` (point lookups, treated as equality),
    ``{field: {"$gte": a, "$lt": b}}`` and ``{"$text": {"$search": "..."}}``.

    Example:
        >>> parse_find(
        ...     {"tenantId": "tenant_1", "status": "open", "createdAt": {"$gte": "2024-01-01"}},
        ...     sort={"createdAt": -1},
        ...     limit=20,
        ... )
    """
    if not isinstance(filter, Mapping):
        raise MalformedQueryError("Filter must be a mapping")

    equality: dict[str, Any] = {}
    ranges: dict[str, Any] = {}
    text = None

    for key, value in filter.items():
        if key == "$text":
            if not isinstance(value, Mapping) or "$search" not in value:
                raise MalformedQueryError("$text requires a $search string")
            text = value["$search"]
            continue
        if isinstance(key, str) and key.startswith("$"):
            raise MalformedQueryError(f"Unsupported top-level operator: {key}")

        operators = (
            value
            if isinstance(value, Mapping) and value and all(str(k).startswith("$") for k in value)
            else None
        )
        if operators is None:
            equality[key] = value
        elif set(operators) <= {"$eq", "$in"} and len(operators) == 1:
            equality[key] = next(iter(operators.values()))
        elif all(op in RANGE_OPERATORS for op in operators):
            ranges[key] = dict(operators)
        else:
            raise MalformedQueryError(f"Unsupported operators on '{key}': {sorted(operators)}")

    document: dict[str, Any] = {"equality": equality, "range": ranges}
    if name is not None:
        document["name"] = name
    if sort is not None:
        document["sort"] = sort
    if text is not None:
        document["text"] = text
    if limit is not None:
        document["limit"] = limit
    return QueryShapeParser(strict=strict).parse(document)

"""Declarative filter/sort/pagination query language.

Filters map a field name to a literal (equality) or to an operator
object; several operators on one field are ANDed::

    {"price": {"$gte": 10, "$lte": 100}, "slug": "whitening"}

The helpers here turn one operator and an already-typed value into a
SQLAlchemy condition over any column expression. The module also parses
the HTTP query-string spelling and shapes the paginated envelope.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, false, not_, or_

from mosaic.db.models.content_type import NUMERIC_TYPES, ContentTypeField, FieldType
from mosaic.lib.exceptions import ValidationError

EQ = "$eq"
NE = "$ne"
IN = "$in"
NOT_IN = "$notIn"
GT = "$gt"
GTE = "$gte"
LT = "$lt"
LTE = "$lte"
CONTAINS = "$contains"
NOT_CONTAINS = "$notContains"
STARTS_WITH = "$startsWith"
ENDS_WITH = "$endsWith"
NULL = "$null"

OPERATORS = frozenset(
    {EQ, NE, IN, NOT_IN, GT, GTE, LT, LTE, CONTAINS, NOT_CONTAINS, STARTS_WITH, ENDS_WITH, NULL}
)

# Negative operators and the positive operator they negate
NEGATIONS = {NE: EQ, NOT_IN: IN, NOT_CONTAINS: CONTAINS}

LIST_OPERATORS = frozenset({IN, NOT_IN})
TEXT_OPERATORS = frozenset({CONTAINS, NOT_CONTAINS, STARTS_WITH, ENDS_WITH})

SORT_PATTERN = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<direction>asc|desc))?$")

# filters[price][$gte]=10, filters[tags][$in][]=a, filters[slug]=x
_FILTER_KEY = re.compile(r"^filters\[(?P<field>[^\]]+)\](?:\[(?P<op>\$[A-Za-z]+)\])?(?:\[\d*\])?$")


@dataclass
class Pagination:
    page: int = 1
    page_size: int = 25

    def __post_init__(self) -> None:
        if not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("pagination.page must be an integer >= 1", field="page")
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise ValidationError("pagination.pageSize must be an integer >= 1", field="pageSize")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def capped(self, max_page_size: int) -> "Pagination":
        return Pagination(page=self.page, page_size=min(self.page_size, max_page_size))

    def meta(self, total: int) -> dict[str, int]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "pageCount": math.ceil(total / self.page_size) if total else 0,
            "total": total,
        }


@dataclass
class QueryParams:
    filters: dict[str, Any] = field(default_factory=dict)
    sort: list[str] = field(default_factory=list)
    pagination: Pagination | None = None
    locale: str | None = None
    publication_state: str | None = None


@dataclass
class QueryResult:
    data: list[dict[str, Any]]
    pagination: Pagination
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "meta": {"pagination": self.pagination.meta(self.total)}}


def normalize_filter(value: Any) -> dict[str, Any]:
    """Turn a filter value into an ``{operator: operand}`` mapping."""
    if isinstance(value, Mapping):
        if not value:
            raise ValidationError("Empty operator object in filters")
        unknown = [op for op in value if op not in OPERATORS]
        if unknown:
            raise ValidationError(f"Unknown filter operator {unknown[0]!r}")
        return dict(value)
    return {EQ: value}


def parse_sort(sort: list[str] | str | None) -> list[tuple[str, bool]]:
    """Parse ``["title:asc", "price:desc"]`` into ``(field, descending)`` pairs."""
    if not sort:
        return []
    if isinstance(sort, str):
        sort = [part for part in sort.split(",") if part.strip()]

    parsed = []
    for item in sort:
        match = SORT_PATTERN.match(item.strip())
        if not match:
            raise ValidationError(f"Invalid sort expression {item!r}", field="sort")
        parsed.append((match["field"], match["direction"] == "desc"))
    return parsed


def document_path(column: Any, field_def: ContentTypeField) -> ColumnElement:
    """Typed JSON path access to ``field_def`` inside a document column."""
    element = column[field_def.name]
    field_type = field_def.field_type
    if field_type in NUMERIC_TYPES:
        return element.as_float()
    if field_type is FieldType.BOOLEAN:
        return element.as_boolean()
    return element.as_string()


def positive_condition(expr: ColumnElement, op: str, value: Any) -> ColumnElement:
    """Condition for a non-negated operator; ``value`` is already typed."""
    if op == EQ:
        return expr.is_(None) if value is None else expr == value
    if op == IN:
        return expr.in_(value) if value else false()
    if op == GT:
        return expr > value
    if op == GTE:
        return expr >= value
    if op == LT:
        return expr < value
    if op == LTE:
        return expr <= value
    if op == CONTAINS:
        return expr.icontains(value, autoescape=True)
    if op == STARTS_WITH:
        return expr.istartswith(value, autoescape=True)
    if op == ENDS_WITH:
        return expr.iendswith(value, autoescape=True)
    if op == NULL:
        return expr.is_(None) if value else expr.is_not(None)
    raise ValidationError(f"Unknown filter operator {op!r}")


def build_condition(expr: ColumnElement, op: str, value: Any) -> ColumnElement:
    """Condition over a single column expression.

    Negated operators also match rows where the value is missing, so
    ``{"$ne": "x"}`` keeps entries that never set the field.
    """
    if op in NEGATIONS:
        positive = positive_condition(expr, NEGATIONS[op], value)
        if op == NE and value is None:
            return expr.is_not(None)
        return or_(expr.is_(None), not_(positive))
    return positive_condition(expr, op, value)


def coerce_bool(value: Any, name: str = NULL) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "false", "0"):
        return value.lower() in ("true", "1")
    raise ValidationError(f"{name} expects true or false")


def parse_query_string(params: Mapping[str, Any], default_page_size: int = 25) -> QueryParams:
    """Parse the bracketed query-string spelling used by the HTTP API.

    ``params`` maps each key to a value or a list of values, as returned by
    ``request.query_params.dict()``.
    """
    filters: dict[str, Any] = {}
    sort: list[str] = []
    page = page_size = None
    locale = publication_state = None

    for key, raw in params.items():
        values = raw if isinstance(raw, list) else [raw]
        if key == "sort":
            for value in values:
                sort.extend(part for part in str(value).split(",") if part.strip())
        elif key == "pagination[page]":
            page = _parse_int(values[-1], "page")
        elif key == "pagination[pageSize]":
            page_size = _parse_int(values[-1], "pageSize")
        elif key == "locale":
            locale = values[-1] or None
        elif key == "publicationState":
            publication_state = values[-1] or None
        elif key.startswith("filters["):
            match = _FILTER_KEY.match(key)
            if not match:
                raise ValidationError(f"Malformed filter parameter {key!r}")
            operators = filters.setdefault(match["field"], {})
            op = match["op"] or EQ
            if op in LIST_OPERATORS:
                items = []
                for value in values:
                    items.extend(part for part in str(value).split(",") if part != "")
                operators.setdefault(op, []).extend(items)
            else:
                operators[op] = values[-1]

    pagination = None
    if page is not None or page_size is not None:
        pagination = Pagination(page=page or 1, page_size=page_size or default_page_size)

    return QueryParams(
        filters=filters,
        sort=sort,
        pagination=pagination,
        locale=locale,
        publication_state=publication_state,
    )


def _parse_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", field=name) from None

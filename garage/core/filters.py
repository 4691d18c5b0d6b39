"""
Query-string → filter translation for list endpoints.

``?os=android&created_at[gte]=2024-01-01&id[in]=1,2,3`` becomes a list of
typed ``FilterCondition`` objects, which ``build_where_clauses`` turns into
SQLAlchemy expressions against a model's queryable columns.

Operators are only recognised as a bracketed key segment (``field[op]``);
values are never inspected for operator names.
"""

from __future__ import annotations

import logging
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import false
from sqlalchemy.sql.elements import ColumnElement

from garage.core.exceptions import BadRequest

logger = logging.getLogger(__name__)

# Control parameters consumed by the list orchestrator, never field filters
RESERVED_PARAMS = frozenset(
    {"select", "page", "limit", "sort", "populate", "mine", "checkedout"}
)

_COMPARATORS: dict[str, Callable[[Any, Any], ColumnElement]] = {
    "eq": operator.eq,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "in": lambda column, values: column.in_(values),
}
OPERATORS = frozenset(_COMPARATORS)

_KEY_RE = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[^\[\]]*)\])?$")

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class FilterCondition:
    field: str
    op: str
    value: Any


def parse_query_filters(
    params: Iterable[tuple[str, str]],
    model_type: str,
    caller_id: int | None = None,
) -> list[FilterCondition]:
    """Translate query-string pairs into filter conditions.

    ``mine`` (any value) and ``checkedout`` are honoured for ``devices`` only.
    """
    conditions: list[FilterCondition] = []
    mine = False
    checkedout: str | None = None

    for key, value in params:
        if key == "mine":
            mine = True
            continue
        if key == "checkedout":
            checkedout = value
            continue
        if key in RESERVED_PARAMS:
            continue

        match = _KEY_RE.match(key)
        if match is None:
            raise BadRequest(f"Invalid filter parameter '{key}'")
        op = match.group("op")
        if op is None:
            op = "eq"
        elif op not in OPERATORS:
            raise BadRequest(f"Unsupported filter operator '{op}'")
        field = match.group("field")
        if op == "in":
            conditions.append(FilterCondition(field, op, [v for v in value.split(",") if v != ""]))
        else:
            conditions.append(FilterCondition(field, op, value))

    if model_type == "devices":
        if mine:
            conditions.append(FilterCondition("user", "eq", caller_id))
        if checkedout is not None:
            conditions.append(FilterCondition("is_checkedout", "eq", checkedout == "true"))

    logger.debug("Constructed %s filter: %s", model_type, conditions)
    return conditions


def _python_type(column: Any) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_value(field: str, column: Any, value: Any) -> Any:
    """Coerce a raw query-string value to the Python type of *column*."""
    if not isinstance(value, str):
        return value
    py_type = _python_type(column)
    try:
        if py_type is bool:
            lowered = value.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(value)
        if py_type is int:
            number = int(value)
            if not -_INT64_MAX <= number <= _INT64_MAX:
                raise ValueError(value)
            return number
        if py_type is float:
            return float(value)
        if py_type is datetime:
            return datetime.fromisoformat(value)
    except ValueError:
        raise BadRequest(f"Invalid value '{value}' for filter '{field}'") from None
    return value


def build_where_clauses(
    conditions: Iterable[FilterCondition],
    fields: Mapping[str, Any],
) -> list[ColumnElement]:
    """Compile conditions against the queryable *fields* of a model.

    A field the model does not expose matches nothing.
    """
    clauses: list[ColumnElement] = []
    for cond in conditions:
        column = fields.get(cond.field)
        if column is None:
            clauses.append(false())
            continue
        if cond.op == "in":
            value = [coerce_value(cond.field, column, v) for v in cond.value]
        else:
            value = coerce_value(cond.field, column, cond.value)
        clauses.append(_COMPARATORS[cond.op](column, value))
    return clauses

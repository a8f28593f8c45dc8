"""
Parameterized SQL filter builder for the product services view.

Filter values never reach the SQL text: every predicate uses a named bind
parameter, and column names are checked against an allow-list. List values
are bound as expanding parameters (``col IN :param`` -> ``col IN ($1, $2)``).

All string comparisons are case-insensitive (values are lower-cased here and
columns wrapped in LOWER()) so database filtering agrees with the in-process
matcher in record_filter.py.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from product_services.models.filters import FilterCriteria

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
WHERE_RE = re.compile(r"\swhere\s", re.IGNORECASE)

# FilterCriteria field -> view column
LIST_COLUMNS = {
    "client": "mdm_gems_ult_parent_id",
    "segment": "mdm_client_segment",
    "region": "region_cd",
    "country": "country_cd",
}
NAME_COLUMNS = {
    "client_name": "client_name",
    "customer_name": "customer_name",
    "parent_name": "parent_name",
}
ID_COLUMNS = {
    "parent_id": "mdm_gems_ult_parent_id",
    "client_id": "mdm_client_gems_id",
    "customer_id": "mdm_cust_gems_id",
}


class FilterType(str, Enum):
    EQUALS = "equals"
    IN = "in"
    LIKE = "like"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"


@dataclass
class FilterCondition:
    """One ad-hoc predicate: column <type> value"""
    column: str
    type: FilterType
    value: Any


@dataclass
class FilterClause:
    """SQL fragment (without WHERE) plus its bind parameters"""
    sql: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    expanding: set[str] = field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.sql)


def validate_identifier(name: str) -> str:
    if not name or not IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _lower(values: Iterable[Any]) -> list[Any]:
    return [v.lower() if isinstance(v, str) else v for v in values]


def build_filter_clause(criteria: FilterCriteria | None) -> FilterClause:
    """
    Convert FilterCriteria into a parameterized WHERE fragment.

    Absent fields add nothing; an empty criteria yields an empty clause.

    Example:
        FilterCriteria(client=[1, 3], segment=["NA"])
        -> "mdm_gems_ult_parent_id IN :client AND LOWER(mdm_client_segment) IN :segment"
           {"client": [1, 3], "segment": ["na"]}
    """
    clause = FilterClause()
    if criteria is None:
        return clause

    conditions = []

    for name, column in LIST_COLUMNS.items():
        values = getattr(criteria, name)
        if not values:
            continue
        if name == "client":
            conditions.append(f"{column} IN :{name}")
            clause.params[name] = list(values)
        else:
            conditions.append(f"LOWER({column}) IN :{name}")
            clause.params[name] = _lower(values)
        clause.expanding.add(name)

    for name, column in NAME_COLUMNS.items():
        value = getattr(criteria, name)
        if value:
            conditions.append(f"LOWER({column}) LIKE :{name} ESCAPE '\\'")
            clause.params[name] = f"%{escape_like(value.lower())}%"

    for name, column in ID_COLUMNS.items():
        value = getattr(criteria, name)
        if value:
            conditions.append(f"LOWER(CAST({column} AS VARCHAR)) = :{name}")
            clause.params[name] = value.lower()

    clause.sql = " AND ".join(conditions)
    return clause


def build_where_clause(
    conditions: Iterable[FilterCondition],
    allowed_columns: Iterable[str],
) -> FilterClause:
    """
    Build a parameterized fragment from ad-hoc conditions.

    Raises:
        ValueError: unknown column, or a value that does not fit the type
            (IN needs a list, BETWEEN needs two values)
    """
    allowed = set(allowed_columns)
    clause = FilterClause()
    parts = []

    for index, condition in enumerate(conditions):
        column = validate_identifier(condition.column)
        if column not in allowed:
            raise ValueError(f"Column not filterable: {column}")

        value = condition.value
        if value is None:
            continue

        param = f"p{index}_{column}"
        kind = FilterType(condition.type)

        if kind is FilterType.EQUALS:
            parts.append(f"{column} = :{param}")
            clause.params[param] = value
        elif kind is FilterType.IN:
            if not isinstance(value, (list, tuple, set)):
                raise ValueError(f"IN filter on {column} needs a list")
            if not value:
                continue
            values = list(value)
            if all(isinstance(v, str) for v in values):
                parts.append(f"LOWER({column}) IN :{param}")
                clause.params[param] = _lower(values)
            else:
                parts.append(f"{column} IN :{param}")
                clause.params[param] = values
            clause.expanding.add(param)
        elif kind is FilterType.LIKE:
            parts.append(f"LOWER({column}) LIKE :{param} ESCAPE '\\'")
            clause.params[param] = f"%{escape_like(str(value).lower())}%"
        elif kind is FilterType.GREATER_THAN:
            parts.append(f"{column} > :{param}")
            clause.params[param] = value
        elif kind is FilterType.LESS_THAN:
            parts.append(f"{column} < :{param}")
            clause.params[param] = value
        elif kind is FilterType.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) < 2:
                raise ValueError(f"BETWEEN filter on {column} needs two values")
            parts.append(f"{column} BETWEEN :{param}_lo AND :{param}_hi")
            clause.params[f"{param}_lo"] = value[0]
            clause.params[f"{param}_hi"] = value[1]

    clause.sql = " AND ".join(parts)
    return clause


def apply_filters(base_query: str, clause: FilterClause) -> str:
    """Append the clause with WHERE, or AND when the base already filters"""
    if not clause:
        return base_query
    joiner = " AND " if WHERE_RE.search(base_query) else " WHERE "
    return f"{base_query}{joiner}{clause.sql}"


def to_statement(sql: str, clause: FilterClause) -> TextClause:
    """text() statement with list parameters bound as expanding"""
    statement = text(sql)
    if clause.expanding:
        statement = statement.bindparams(
            *(bindparam(name, expanding=True) for name in sorted(clause.expanding))
        )
    return statement

"""Small SQL builder for field-map driven statements.

Values are always bound as ``%s`` parameters. Column names are checked against
the table's whitelist, so a field map coming from request data can never put
arbitrary text into the statement.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple


@dataclass(frozen=True)
class Query:
    sql: str
    params: Tuple[Any, ...]


@dataclass(frozen=True)
class Between:
    low: Any
    high: Any


@dataclass(frozen=True)
class Raw:
    """Trusted SQL expression for a SET clause (e.g. CURRENT_TIMESTAMP)."""

    expression: str


class TableQueryBuilder:
    def __init__(self, table: str, columns: Iterable[str]):
        self._table = table
        self._columns = frozenset(columns)

    def _check(self, names: Iterable[str]) -> None:
        unknown = sorted(set(names) - self._columns)
        if unknown:
            raise ValueError(f"Unknown column(s) for {self._table}: {', '.join(unknown)}")

    def where(self, filters: Mapping[str, Any]) -> Tuple[str, Tuple[Any, ...]]:
        self._check(filters)
        clauses: list[str] = []
        params: list[Any] = []
        for name, value in filters.items():
            if isinstance(value, Between):
                clauses.append(f"{name} BETWEEN %s AND %s")
                params.extend([value.low, value.high])
            elif value is None:
                clauses.append(f"{name} IS NULL")
            else:
                clauses.append(f"{name}=%s")
                params.append(value)
        return (" AND ".join(clauses) or "1=1"), tuple(params)

    def select(
        self,
        columns: Sequence[str],
        filters: Mapping[str, Any],
        *,
        order_by: Sequence[str] = (),
        for_update: bool = False,
    ) -> Query:
        self._check(columns)
        where, params = self.where(filters)
        sql = f"SELECT {', '.join(columns)} FROM {self._table} WHERE {where}"
        if order_by:
            self._check(o.split()[0] for o in order_by)
            sql += f" ORDER BY {', '.join(order_by)}"
        if for_update:
            sql += " FOR UPDATE"
        return Query(sql=sql, params=params)

    def update(self, values: Mapping[str, Any], filters: Mapping[str, Any]) -> Query:
        if not values:
            raise ValueError("update needs at least one column")
        self._check(values)
        assignments: list[str] = []
        params: list[Any] = []
        for name, value in values.items():
            if isinstance(value, Raw):
                assignments.append(f"{name}={value.expression}")
            else:
                assignments.append(f"{name}=%s")
                params.append(value)
        where, where_params = self.where(filters)
        return Query(
            sql=f"UPDATE {self._table} SET {', '.join(assignments)} WHERE {where}",
            params=tuple(params) + where_params,
        )

    def upsert(self, values: Mapping[str, Any], on_duplicate: Mapping[str, str]) -> Query:
        """INSERT ... ON DUPLICATE KEY UPDATE.

        ``on_duplicate`` maps a column to a SQL expression over ``VALUES(...)``;
        it is written by code, never by callers.
        """

        self._check(values)
        self._check(on_duplicate)
        names = list(values)
        placeholders = ", ".join(["%s"] * len(names))
        updates = ", ".join(f"{col}={expr}" for col, expr in on_duplicate.items())
        return Query(
            sql=(
                f"INSERT INTO {self._table} ({', '.join(names)}) VALUES ({placeholders}) "
                f"ON DUPLICATE KEY UPDATE {updates}"
            ),
            params=tuple(values[n] for n in names),
        )

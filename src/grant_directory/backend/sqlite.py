from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Sequence

from grant_directory.backend.base import (
    AnyOf,
    Eq,
    ILike,
    InList,
    IsNull,
    NotEq,
    NotILike,
    NotNull,
    Predicate,
    Query,
    QueryError,
    QueryResult,
)


_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class BuiltQuery:
    where_sql: str
    params: List[Any]


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name or ""):
        raise QueryError(f"Invalid identifier: {name!r}")
    return name


def _compile_predicate(pred: Predicate, params: List[Any]) -> str:
    if isinstance(pred, AnyOf):
        parts = [_compile_predicate(p, params) for p in pred.predicates]
        if not parts:
            return "0"
        return "(" + " OR ".join(parts) + ")"

    col = _ident(pred.column)
    if isinstance(pred, Eq):
        if pred.value is None:
            return f"{col} IS NULL"
        params.append(pred.value)
        return f"{col} = ?"
    if isinstance(pred, NotEq):
        params.append(pred.value)
        return f"{col} != ?"
    if isinstance(pred, ILike):
        params.append(pred.pattern)
        return f"LOWER({col}) LIKE LOWER(?) ESCAPE '\\'"
    if isinstance(pred, NotILike):
        params.append(pred.pattern)
        return f"LOWER({col}) NOT LIKE LOWER(?) ESCAPE '\\'"
    if isinstance(pred, IsNull):
        return f"{col} IS NULL"
    if isinstance(pred, NotNull):
        return f"{col} IS NOT NULL"
    if isinstance(pred, InList):
        if not pred.values:
            return "0"
        params.extend(pred.values)
        return f"{col} IN (" + ",".join(["?"] * len(pred.values)) + ")"
    raise QueryError(f"Unsupported predicate: {pred!r}")


def build_where(predicates: Sequence[Predicate]) -> BuiltQuery:
    parts: List[str] = []
    params: List[Any] = []
    for pred in predicates:
        parts.append(_compile_predicate(pred, params))
    return BuiltQuery(where_sql=" AND ".join(parts), params=params)


class SQLiteBackend:
    """Query capability over a local SQLite file (one connection per query)."""

    name = "sqlite"

    def __init__(self, path: str):
        self.path = str(path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not Path(self.path).exists():
            raise QueryError(f"SQLite database not found: {self.path}")
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def execute(self, query: Query) -> QueryResult:
        table = _ident(query.table)
        if query.columns == ("*",):
            select = "*"
        else:
            select = ", ".join(_ident(c) for c in query.columns)

        built = build_where(query.where)
        where_sql = f" WHERE {built.where_sql}" if built.where_sql else ""

        order_parts = [
            f"{_ident(o.column)} {'DESC' if o.descending else 'ASC'}" for o in query.order
        ]
        order_sql = (" ORDER BY " + ", ".join(order_parts)) if order_parts else ""

        page_sql = ""
        page_params: List[Any] = []
        if query.limit is not None:
            page_sql = " LIMIT ? OFFSET ?"
            page_params = [int(query.limit), max(0, int(query.offset))]
        elif query.offset:
            page_sql = " LIMIT -1 OFFSET ?"
            page_params = [int(query.offset)]

        try:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {select} FROM {table}{where_sql}{order_sql}{page_sql}",
                    (*built.params, *page_params),
                ).fetchall()
                count = None
                if query.count:
                    row = conn.execute(
                        f"SELECT COUNT(*) FROM {table}{where_sql}", built.params
                    ).fetchone()
                    count = int(row[0]) if row else 0
        except sqlite3.Error as exc:
            raise QueryError(str(exc), code=type(exc).__name__) from exc

        return QueryResult(rows=[dict(r) for r in rows], count=count)

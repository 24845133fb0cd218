from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from grant_directory.strings import escape_like


@dataclass(frozen=True)
class Eq:
    column: str
    value: Any


@dataclass(frozen=True)
class NotEq:
    column: str
    value: Any


@dataclass(frozen=True)
class ILike:
    """Case-insensitive LIKE. `pattern` uses `%`/`_` wildcards, `\\` escapes."""

    column: str
    pattern: str


@dataclass(frozen=True)
class NotILike:
    column: str
    pattern: str


@dataclass(frozen=True)
class IsNull:
    column: str


@dataclass(frozen=True)
class NotNull:
    column: str


@dataclass(frozen=True)
class InList:
    column: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class AnyOf:
    """OR-group of simple predicates."""

    predicates: Tuple["Predicate", ...]


Predicate = Union[Eq, NotEq, ILike, NotILike, IsNull, NotNull, InList, AnyOf]


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    table: str
    columns: Tuple[str, ...] = ("*",)
    where: Tuple[Predicate, ...] = ()
    order: Tuple[Order, ...] = ()
    offset: int = 0
    limit: Optional[int] = None
    count: bool = False


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    count: Optional[int] = None


class QueryError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class QueryBackend(Protocol):
    name: str

    def execute(self, query: Query) -> QueryResult:
        ...


def contains_pattern(text: str) -> str:
    return f"%{escape_like(text)}%"


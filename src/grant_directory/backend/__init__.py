from __future__ import annotations

import logging
from typing import Optional

from grant_directory.backend.base import (
    AnyOf,
    Eq,
    ILike,
    InList,
    IsNull,
    NotEq,
    NotILike,
    NotNull,
    Order,
    Predicate,
    Query,
    QueryBackend,
    QueryError,
    QueryResult,
    contains_pattern,
)
from grant_directory.logs import log_event
from grant_directory.settings import Settings


logger = logging.getLogger("gd.config")

_warned: set[str] = set()


def _warn_once(message: str) -> None:
    if message in _warned:
        return
    _warned.add(message)
    log_event(
        logger,
        "backend.unconfigured",
        logging.WARNING,
        problem=message,
        effect="all reads return empty results",
    )


def build_backend(settings: Settings) -> Optional[QueryBackend]:
    """Backend for `settings`, or None (logged once) when misconfigured."""

    problem = settings.missing_config()
    if problem:
        _warn_once(problem)
        return None

    if settings.backend == "sqlite":
        from grant_directory.backend.sqlite import SQLiteBackend

        return SQLiteBackend(settings.sqlite_path)

    from grant_directory.backend.postgrest import PostgrestBackend

    return PostgrestBackend(
        settings.supabase_url,
        settings.supabase_key,
        timeout=settings.http_timeout_s,
    )


__all__ = [
    "AnyOf",
    "Eq",
    "ILike",
    "InList",
    "IsNull",
    "NotEq",
    "NotILike",
    "NotNull",
    "Order",
    "Predicate",
    "Query",
    "QueryBackend",
    "QueryError",
    "QueryResult",
    "build_backend",
    "contains_pattern",
]

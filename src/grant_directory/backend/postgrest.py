from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import httpx

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


logger = logging.getLogger("gd.backend")

# Characters with meaning inside PostgREST logic trees and in-lists.
_RESERVED = set(',.:()"\\ ')


def _quote(value: Any) -> str:
    text = "" if value is None else str(value)
    if text and not (set(text) & _RESERVED):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _operator(pred: Predicate, *, nested: bool) -> str:
    """Render `op.value` (top level) or `column.op.value` (inside or=())."""

    fmt = _quote if nested else (lambda v: "" if v is None else str(v))
    if isinstance(pred, Eq):
        body = "is.null" if pred.value is None else f"eq.{fmt(pred.value)}"
    elif isinstance(pred, NotEq):
        body = f"neq.{fmt(pred.value)}"
    elif isinstance(pred, ILike):
        body = f"ilike.{fmt(pred.pattern)}"
    elif isinstance(pred, NotILike):
        body = f"not.ilike.{fmt(pred.pattern)}"
    elif isinstance(pred, IsNull):
        body = "is.null"
    elif isinstance(pred, NotNull):
        body = "not.is.null"
    elif isinstance(pred, InList):
        body = "in.(" + ",".join(_quote(v) for v in pred.values) + ")"
    else:
        raise QueryError(f"Unsupported predicate: {pred!r}")
    if nested:
        return f"{pred.column}.{body}"
    return body


def build_params(query: Query) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = [("select", ",".join(query.columns))]
    for pred in query.where:
        if isinstance(pred, AnyOf):
            inner = ",".join(_operator(p, nested=True) for p in pred.predicates)
            params.append(("or", f"({inner})"))
        else:
            params.append((pred.column, _operator(pred, nested=False)))
    if query.order:
        params.append(
            (
                "order",
                ",".join(
                    f"{o.column}.{'desc.nullslast' if o.descending else 'asc'}"
                    for o in query.order
                ),
            )
        )
    if query.offset:
        params.append(("offset", str(int(query.offset))))
    if query.limit is not None:
        params.append(("limit", str(int(query.limit))))
    return params


def parse_content_range(value: Optional[str]) -> Optional[int]:
    # "0-19/57" or "*/0"
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1].strip()
    if total == "*":
        return None
    try:
        return int(total)
    except ValueError:
        return None


class PostgrestBackend:
    """Query capability over a PostgREST (Supabase) REST endpoint."""

    name = "postgrest"

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def _headers(self, count: bool) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        if count:
            headers["Prefer"] = "count=exact"
        return headers

    def execute(self, query: Query) -> QueryResult:
        params = build_params(query)
        url = f"{self.base_url}/{query.table}"
        logger.debug("postgrest GET %s params=%s", url, params)
        try:
            resp = self._client.get(url, params=params, headers=self._headers(query.count))
        except httpx.HTTPError as exc:
            raise QueryError(f"request failed: {exc}", code="network") from exc

        if resp.status_code >= 400:
            message = resp.text
            code = str(resp.status_code)
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = str(body.get("message") or message)
                code = str(body.get("code") or code)
            raise QueryError(message, code=code)

        try:
            rows = resp.json()
        except ValueError as exc:
            raise QueryError("invalid JSON from backend", code="decode") from exc
        if not isinstance(rows, list):
            raise QueryError("unexpected payload from backend", code="decode")

        count = parse_content_range(resp.headers.get("content-range")) if query.count else None
        if query.count and count is None:
            count = len(rows)
        return QueryResult(rows=rows, count=count)

    def close(self) -> None:
        self._client.close()

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qs, urlencode

from grant_directory.geo import GeographyResolver, default_resolver
from grant_directory.search.filters import FilterState, clamp_page, clamp_page_size

DEFAULT_CLIENT_PAGE_SIZE = 12

# Filter fields the search form edits and mirrors into the address bar.
SYNC_FIELDS: Tuple[str, ...] = ("query", "category", "state", "agency", "has_apply_link")

ExtraParams = Mapping[str, Union[str, Sequence[str], None]]


def normalize_client_filters(
    raw: Optional[Mapping] = None,
    *,
    resolver: Optional[GeographyResolver] = None,
    default_page_size: int = DEFAULT_CLIENT_PAGE_SIZE,
) -> FilterState:
    """FilterState holding only the form fields, with the state resolved."""

    data = dict(raw or {})
    resolver = resolver or default_resolver()

    def text(name: str) -> str:
        value = data.get(name)
        return value.strip() if isinstance(value, str) else ""

    state = text("state")
    resolved = resolver.resolve_state_query_value(state)
    return FilterState(
        query=text("query"),
        category=text("category"),
        state=resolved.value or state,
        agency=text("agency"),
        has_apply_link=bool(data.get("has_apply_link")),
        page=clamp_page(data.get("page")),
        page_size=clamp_page_size(data.get("page_size"), default=default_page_size),
    )


def apply_locked(
    filters: FilterState,
    locked: Optional[Mapping] = None,
    *,
    resolver: Optional[GeographyResolver] = None,
) -> FilterState:
    """Overwrite `filters` with every non-empty locked form field."""

    if not locked:
        return filters
    pinned = normalize_client_filters(locked, resolver=resolver)
    changes = {}
    for name in SYNC_FIELDS:
        value = getattr(pinned, name)
        if value not in ("", False, None):
            changes[name] = value
    return replace(filters, **changes) if changes else filters


def serialize_filters(
    filters: FilterState,
    *,
    include_defaults: bool = False,
    extra: Optional[ExtraParams] = None,
    default_page_size: int = DEFAULT_CLIENT_PAGE_SIZE,
) -> str:
    pairs: List[Tuple[str, str]] = []
    if filters.category:
        pairs.append(("category", filters.category))
    if filters.query:
        pairs.append(("keyword", filters.query))
    if filters.state:
        pairs.append(("state", filters.state))
    if filters.agency:
        pairs.append(("agency", filters.agency))
    if filters.has_apply_link:
        pairs.append(("has_apply_link", "1"))
    if include_defaults or filters.page > 1:
        pairs.append(("page", str(filters.page)))
    if include_defaults or filters.page_size != default_page_size:
        pairs.append(("pageSize", str(filters.page_size)))

    for key, value in (extra or {}).items():
        if isinstance(value, str):
            if value:
                pairs.append((key, value))
        elif value:
            joined = ",".join(v for v in value if v)
            if joined:
                pairs.append((key, joined))
    return urlencode(pairs)


def parse_query_string(
    qs: str,
    *,
    locked: Optional[Mapping] = None,
    resolver: Optional[GeographyResolver] = None,
    default_page_size: int = DEFAULT_CLIENT_PAGE_SIZE,
) -> FilterState:
    """Inverse of `serialize_filters`; also accepts the legacy `query` key."""

    params: Dict[str, List[str]] = parse_qs((qs or "").lstrip("?"))

    def first(*names: str) -> str:
        for name in names:
            values = params.get(name)
            if values:
                return values[0]
        return ""

    filters = normalize_client_filters(
        {
            "query": first("keyword", "query"),
            "category": first("category"),
            "state": first("state"),
            "agency": first("agency"),
            "has_apply_link": first("has_apply_link") in ("1", "true"),
            "page": first("page"),
            "page_size": first("pageSize"),
        },
        resolver=resolver,
        default_page_size=default_page_size,
    )
    return apply_locked(filters, locked, resolver=resolver)

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from grant_directory.backend import InList, Query, QueryBackend, QueryError
from grant_directory.geo import (
    FEDERAL_STATE_LABEL,
    FEDERAL_STATE_VALUE,
    GeographyResolver,
    default_resolver,
    is_federal_jurisdiction_value,
)
from grant_directory.logs import log_event
from grant_directory.models import Facet, FacetSets
from grant_directory.search.filters import CATEGORIES_TABLE, FACET_COLUMNS, LISTINGS_TABLE
from grant_directory.search.query import federal_state_predicate
from grant_directory.strings import normalize_category, slugify


logger = logging.getLogger("gd.facets")

# Rows read per facet column.
FACET_ROW_LIMIT = 5000

MAX_CATEGORY_FACETS = 50
MAX_STATE_FACETS = 60
MAX_AGENCY_FACETS = 50

# Maps trimmed column text to its (label, value) pair.
KeyFn = Callable[[str], Tuple[str, str]]


def federal_facet(count: int = 0) -> Facet:
    return Facet(label=FEDERAL_STATE_LABEL, value=FEDERAL_STATE_VALUE, count=count)


def group_facets(values: Iterable, key: Optional[KeyFn] = None) -> List[Facet]:
    """Count non-blank values, merging case/whitespace variants.

    `key` maps a trimmed value to (label, value); facets are merged on the
    casefolded value and sorted by casefolded label.
    """

    key = key or (lambda text: (text, text))
    merged: Dict[str, Facet] = {}
    for raw in values:
        if not isinstance(raw, str):
            continue
        text = raw.strip()
        if not text:
            continue
        label, value = key(text)
        norm = value.casefold()
        if norm in merged:
            merged[norm].count += 1
        else:
            merged[norm] = Facet(label=label, value=value, count=1)
    return sorted(merged.values(), key=lambda f: (f.label.casefold(), f.value))


def _read_column(backend: QueryBackend, *columns: str) -> List[dict]:
    result = backend.execute(
        Query(table=LISTINGS_TABLE, columns=columns, limit=FACET_ROW_LIMIT)
    )
    return result.rows


def _count_federal(backend: QueryBackend) -> int:
    result = backend.execute(
        Query(
            table=LISTINGS_TABLE,
            columns=("id",),
            where=(federal_state_predicate(),),
            limit=1,
            count=True,
        )
    )
    return result.count or 0


def _category_lookup(backend: QueryBackend, codes: Iterable[str]) -> Dict[str, Tuple[str, str]]:
    wanted = tuple(dict.fromkeys(c for c in codes if c))
    if not wanted:
        return {}
    result = backend.execute(
        Query(
            table=CATEGORIES_TABLE,
            columns=("category_code", "category_label", "slug"),
            where=(InList("category_code", wanted),),
        )
    )
    out: Dict[str, Tuple[str, str]] = {}
    for row in result.rows:
        code = str(row.get("category_code") or "")
        if not code:
            continue
        label = str(row.get("category_label") or code)
        out[code] = (label, str(row.get("slug") or slugify(label)))
    return out


def category_facets(backend: QueryBackend, rows: List[dict]) -> List[Facet]:
    codes = [str(r["category_code"]) for r in rows if r.get("category_code")]
    try:
        lookup = _category_lookup(backend, codes)
    except QueryError as exc:
        log_event(logger, "facets.category_lookup_failed", logging.WARNING, error=str(exc))
        lookup = {}

    texts: List[str] = []
    resolved: Dict[str, Tuple[str, str]] = {}
    for row in rows:
        code = str(row.get("category_code") or "")
        if code in lookup:
            label, slug = lookup[code]
            resolved[label] = (label, slug)
            texts.append(label)
        else:
            texts.append(row.get("category") or "")

    def key(text: str) -> Tuple[str, str]:
        return resolved.get(text) or (normalize_category(text), slugify(text) or text)

    return group_facets(texts, key)[:MAX_CATEGORY_FACETS]


def state_facets(rows: List[dict], resolver: GeographyResolver) -> List[Facet]:
    def key(text: str) -> Tuple[str, str]:
        info = resolver.find_state_info(text)
        if info:
            return (info.name, info.code)
        return (text, text)

    return group_facets((r.get("state") for r in rows), key)[:MAX_STATE_FACETS]


def with_federal_state(
    states: List[Facet],
    federal_count: int,
    resolver: Optional[GeographyResolver] = None,
) -> List[Facet]:
    """Pin a synthesized federal facet first unless the data already has one.

    Only unresolved state text can stand for the federal pseudo-state; a
    facet that resolves to a real state (e.g. "U.S. Virgin Islands") never
    counts, whatever its canonical name contains.
    """

    resolver = resolver or default_resolver()
    if not states:
        return [federal_facet(0)]
    if any(
        resolver.find_state_info(f.value) is None and is_federal_jurisdiction_value(f.label)
        for f in states
    ):
        return states
    return [federal_facet(federal_count), *states]


def get_facet_sets(
    backend: Optional[QueryBackend],
    resolver: Optional[GeographyResolver] = None,
) -> FacetSets:
    """Category, state and agency options with counts for the filter UI."""

    resolver = resolver or default_resolver()
    if backend is None:
        return FacetSets(states=[federal_facet(0)])

    category_col = FACET_COLUMNS["category"].db_column
    state_col = FACET_COLUMNS["state"].db_column
    agency_col = FACET_COLUMNS["agency"].db_column

    try:
        with ThreadPoolExecutor(max_workers=4) as pool:
            cat_f = pool.submit(_read_column, backend, category_col, "category_code")
            st_f = pool.submit(_read_column, backend, state_col)
            ag_f = pool.submit(_read_column, backend, agency_col)
            fed_f = pool.submit(_count_federal, backend)
            cat_rows, st_rows, ag_rows = cat_f.result(), st_f.result(), ag_f.result()
            federal_count = fed_f.result()
    except QueryError as exc:
        log_event(
            logger,
            "facets.failed",
            logging.ERROR,
            backend=getattr(backend, "name", None),
            error=str(exc),
            code=exc.code,
        )
        return FacetSets(states=[federal_facet(0)])

    facets = FacetSets(
        categories=category_facets(backend, cat_rows),
        states=with_federal_state(
            state_facets(st_rows, resolver), federal_count, resolver
        ),
        agencies=group_facets(r.get(agency_col) for r in ag_rows)[:MAX_AGENCY_FACETS],
    )
    log_event(
        logger,
        "facets.built",
        logging.DEBUG,
        categories=len(facets.categories),
        states=len(facets.states),
        agencies=len(facets.agencies),
    )
    return facets

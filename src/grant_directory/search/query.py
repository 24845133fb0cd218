from __future__ import annotations

import logging
import math
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from grant_directory.agencies import agency_filter_predicate, agency_slug_candidates
from grant_directory.backend import (
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
    contains_pattern,
)
from grant_directory.geo import (
    FEDERAL_STATE_LABELS,
    STATEWIDE_CITY_LABELS,
    GeographyResolver,
    LabelPattern,
    default_resolver,
)
from grant_directory.logs import log_event
from grant_directory.models import Category, Listing, SearchResult
from grant_directory.paths import (
    build_listing_path,
    derive_agency_slug,
    short_id,
    short_id_from_slug,
)
from grant_directory.search.filters import (
    CATEGORIES_TABLE,
    KEYWORD_COLUMNS,
    LISTINGS_TABLE,
    SORT_COLUMN,
    FilterState,
)
from grant_directory.settings import get_settings
from grant_directory.strings import escape_like, slugify


logger = logging.getLogger("gd.search")

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_COPY_SUFFIX_RE = re.compile(r"-\d+$")

LISTING_ORDER: Tuple[Order, ...] = (Order(SORT_COLUMN, descending=True), Order("id"))


def label_predicate(column: str, pattern: LabelPattern) -> ILike:
    if pattern.exact:
        return ILike(column, escape_like(pattern.text))
    return ILike(column, contains_pattern(pattern.text))


def not_label_predicate(column: str, pattern: LabelPattern) -> NotILike:
    positive = label_predicate(column, pattern)
    return NotILike(column, positive.pattern)


def federal_state_predicate() -> AnyOf:
    """Rows whose state column is blank or reads as nationwide."""

    return AnyOf(
        (
            IsNull("state"),
            Eq("state", ""),
            *(label_predicate("state", p) for p in FEDERAL_STATE_LABELS),
        )
    )


def non_federal_state_predicates() -> List[Predicate]:
    return [
        NotNull("state"),
        NotEq("state", ""),
        *(not_label_predicate("state", p) for p in FEDERAL_STATE_LABELS),
    ]


def specific_city_predicates() -> List[Predicate]:
    return [
        NotNull("city"),
        NotEq("city", ""),
        *(not_label_predicate("city", p) for p in STATEWIDE_CITY_LABELS),
    ]


def state_predicate(resolver: GeographyResolver, value: str) -> Optional[Predicate]:
    """Match a state by every spelling we know, or by raw text when unknown."""

    if not value:
        return None
    patterns = resolver.state_match_patterns(value)
    if not patterns:
        return ILike("state", contains_pattern(value))
    clauses = tuple(dict.fromkeys(label_predicate("state", p) for p in patterns))
    return AnyOf(clauses)


def resolve_categories(backend: QueryBackend, category: str) -> List[Category]:
    """Look a category up by slug, then by label fragment or code.

    Raises QueryError; callers decide whether a failed lookup is fatal.
    """

    slug = slugify(category)
    attempts: List[Predicate] = []
    if slug:
        attempts.append(Eq("slug", slug))
    attempts.append(
        AnyOf(
            (
                ILike("category_label", contains_pattern(category)),
                ILike("category_code", escape_like(category)),
            )
        )
    )

    for predicate in attempts:
        result = backend.execute(Query(table=CATEGORIES_TABLE, where=(predicate,)))
        found = [Category.model_validate(_stringify_row(r)) for r in result.rows if r.get("category_code")]
        if found:
            return found
    return []


def category_predicate(categories: Sequence[Category]) -> AnyOf:
    codes = tuple(dict.fromkeys(c.category_code for c in categories))
    clauses: List[Predicate] = [InList("category_code", codes)]
    for c in categories:
        if c.category_label:
            clauses.append(ILike("category", escape_like(c.category_label)))
    return AnyOf(tuple(dict.fromkeys(clauses)))


def build_listing_predicates(
    filters: FilterState,
    resolver: GeographyResolver,
    categories: Optional[Sequence[Category]] = None,
) -> List[Predicate]:
    """Translate everything except the category lookup into predicates.

    `categories` carries the already-resolved category rows when the filter
    names one.
    """

    where: List[Predicate] = []

    if filters.query:
        pattern = contains_pattern(filters.query)
        where.append(AnyOf(tuple(ILike(c, pattern) for c in KEYWORD_COLUMNS)))

    if categories:
        where.append(category_predicate(categories))

    jurisdiction = filters.jurisdiction
    state_value = filters.state_code or filters.state
    if state_value:
        query_value = resolver.resolve_state_query_value(state_value)
        if query_value.is_federal:
            jurisdiction = "federal"
            state_value = ""

    if jurisdiction == "federal":
        where.append(federal_state_predicate())
    else:
        pred = state_predicate(resolver, state_value)
        if pred is not None:
            where.append(pred)
        elif jurisdiction in ("state", "local"):
            where.extend(non_federal_state_predicates())
        if jurisdiction == "local":
            where.extend(specific_city_predicates())

    if filters.city:
        where.append(ILike("city", contains_pattern(filters.city)))

    agency = agency_filter_predicate(
        agency=filters.agency,
        agency_code=filters.agency_code,
        agency_slug=filters.agency_slug,
    )
    if agency is not None:
        where.append(agency)

    if filters.has_apply_link:
        where.append(NotNull("apply_link"))
        where.append(NotEq("apply_link", ""))

    return where


def _stringify(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _stringify_row(row: Dict) -> Dict:
    return {k: (v if k == "contacts" else _stringify(v)) for k, v in row.items()}


def load_category_labels(backend: QueryBackend, codes: Iterable[str]) -> Dict[str, str]:
    wanted = tuple(dict.fromkeys(c for c in codes if c))
    if not wanted:
        return {}
    result = backend.execute(
        Query(
            table=CATEGORIES_TABLE,
            columns=("category_code", "category_label"),
            where=(InList("category_code", wanted),),
        )
    )
    return {
        str(r["category_code"]): str(r["category_label"])
        for r in result.rows
        if r.get("category_code") and r.get("category_label")
    }


def normalize_listing_row(
    row: Dict,
    category_labels: Optional[Dict[str, str]] = None,
    resolver: Optional[GeographyResolver] = None,
) -> Listing:
    """Backfill display fields so every row reads the same way."""

    data = _stringify_row(row)
    data["title"] = data.get("title") or ""

    agency_name = data.get("agency_name") or data.get("agency")
    data["agency_name"] = agency_name
    data["agency"] = data.get("agency") or agency_name
    data["agency_slug"] = (
        derive_agency_slug(
            slug=data.get("agency_slug"),
            agency_code=data.get("agency_code"),
            agency_name=agency_name,
        )
        or None
    )

    code = data.get("category_code")
    labels = category_labels or {}
    data["category"] = (labels.get(code) if code else None) or data.get("category") or code

    listing = Listing.model_validate(data)
    listing.path = build_listing_path(listing, resolver)
    return listing


def _normalize_rows(
    backend: QueryBackend, rows: Sequence[Dict], resolver: GeographyResolver
) -> List[Listing]:
    codes = [str(r["category_code"]) for r in rows if r.get("category_code")]
    try:
        labels = load_category_labels(backend, codes)
    except QueryError as exc:
        # Rows still render with their own category text.
        log_event(logger, "search.category_labels_failed", logging.WARNING, error=str(exc))
        labels = {}
    return [normalize_listing_row(r, labels, resolver) for r in rows]


def search_listings(
    backend: Optional[QueryBackend],
    filters: FilterState,
    *,
    resolver: Optional[GeographyResolver] = None,
    extra: Sequence[Predicate] = (),
) -> SearchResult:
    """Run a paginated, counted listing search.

    Backend failures are logged and produce an empty result; this never
    raises QueryError.
    """

    resolver = resolver or default_resolver()
    page, page_size = filters.page, filters.page_size
    if backend is None:
        return SearchResult.empty(page, page_size)

    try:
        categories: Optional[List[Category]] = None
        if filters.category:
            categories = resolve_categories(backend, filters.category)
            if not categories:
                log_event(logger, "search.category_unresolved", category=filters.category)
                return SearchResult.empty(page, page_size)

        where = build_listing_predicates(filters, resolver, categories)
        where.extend(extra)
        if get_settings().search_debug:
            log_event(
                logger,
                "search.query",
                logging.DEBUG,
                filters=filters.as_dict(),
                predicates=[repr(p) for p in where],
            )

        result = backend.execute(
            Query(
                table=LISTINGS_TABLE,
                where=tuple(where),
                order=LISTING_ORDER,
                offset=filters.offset,
                limit=page_size,
                count=True,
            )
        )
    except QueryError as exc:
        log_event(
            logger,
            "search.failed",
            logging.ERROR,
            backend=getattr(backend, "name", None),
            filters=filters.as_dict(),
            error=str(exc),
            code=exc.code,
        )
        return SearchResult.empty(page, page_size)

    items = _normalize_rows(backend, result.rows, resolver)
    total = result.count if result.count is not None else len(items)
    return SearchResult(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


def normalize_listing_id(value) -> Optional[str]:
    """UUID-shaped id with any "-<n>" copy suffix removed, else None."""

    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if _UUID_RE.match(trimmed):
        return trimmed.lower()
    stripped = _COPY_SUFFIX_RE.sub("", trimmed)
    if _UUID_RE.match(stripped):
        return stripped.lower()
    return None


def _first_listing(
    backend: QueryBackend, query: Query, resolver: Optional[GeographyResolver]
) -> Optional[Listing]:
    result = backend.execute(query)
    if not result.rows:
        return None
    return _normalize_rows(backend, result.rows[:1], resolver or default_resolver())[0]


def get_listing_by_short_id(
    backend: Optional[QueryBackend],
    short: str,
    resolver: Optional[GeographyResolver] = None,
) -> Optional[Listing]:
    target = (short or "").strip().lower()
    if backend is None or not target:
        return None
    query = Query(
        table=LISTINGS_TABLE,
        where=(ILike("id", f"{escape_like(target)}%"),),
        order=LISTING_ORDER,
        limit=1,
    )
    try:
        return _first_listing(backend, query, resolver)
    except QueryError as exc:
        log_event(logger, "listing.short_id_failed", logging.ERROR, short_id=target, error=str(exc))
        return None


def get_listing_by_id(
    backend: Optional[QueryBackend],
    listing_id: str,
    resolver: Optional[GeographyResolver] = None,
) -> Optional[Listing]:
    """Fetch one listing by full id, falling back to its short-id prefix."""

    if backend is None or not isinstance(listing_id, str) or not listing_id.strip():
        return None

    normalized = normalize_listing_id(listing_id)
    if normalized is None:
        log_event(logger, "listing.malformed_id", logging.WARNING, id=listing_id)
        return get_listing_by_short_id(backend, short_id(listing_id.strip()), resolver)

    query = Query(table=LISTINGS_TABLE, where=(Eq("id", normalized),), limit=1)
    try:
        found = _first_listing(backend, query, resolver)
    except QueryError as exc:
        log_event(logger, "listing.lookup_failed", logging.ERROR, id=normalized, error=str(exc))
        found = None
    if found is not None:
        return found
    return get_listing_by_short_id(backend, short_id(normalized), resolver)


def load_listing(
    backend: Optional[QueryBackend],
    slug: Optional[str],
    id_param: Optional[str] = None,
    resolver: Optional[GeographyResolver] = None,
) -> Optional[Listing]:
    """Listing for a detail request: `?id=` wins, else the slug's short id."""

    if id_param and id_param.strip():
        return get_listing_by_id(backend, id_param, resolver)
    short = short_id_from_slug(slug)
    if short:
        return get_listing_by_short_id(backend, short, resolver)
    return None


def _contains(haystack, needle: str) -> bool:
    return isinstance(haystack, str) and needle.casefold() in haystack.casefold()


def _matches_label(value, pattern: LabelPattern) -> bool:
    if not isinstance(value, str):
        return False
    if pattern.exact:
        return value.strip().casefold() == pattern.text.casefold()
    return pattern.text.casefold() in value.casefold()


def _field(listing, name: str):
    if isinstance(listing, dict):
        return listing.get(name)
    return getattr(listing, name, None)


def listing_matches_filters(
    listing,
    filters: FilterState,
    resolver: Optional[GeographyResolver] = None,
) -> bool:
    """In-memory counterpart of `build_listing_predicates` for loaded rows.

    Category matching compares text only (label, code or slug), since no
    category table is consulted here.
    """

    resolver = resolver or default_resolver()

    if filters.query and not any(
        _contains(_field(listing, c), filters.query) for c in KEYWORD_COLUMNS
    ):
        return False

    if filters.category:
        wanted = slugify(filters.category)
        values = [_field(listing, "category"), _field(listing, "category_code")]
        if not any(isinstance(v, str) and (slugify(v) == wanted or _contains(v, filters.category)) for v in values):
            return False

    state = _field(listing, "state")
    city = _field(listing, "city")
    jurisdiction = filters.jurisdiction
    state_value = filters.state_code or filters.state
    if state_value and resolver.resolve_state_query_value(state_value).is_federal:
        jurisdiction, state_value = "federal", ""

    if jurisdiction == "federal":
        if not (
            state is None
            or (isinstance(state, str) and not state.strip())
            or any(_matches_label(state, p) for p in FEDERAL_STATE_LABELS)
        ):
            return False
    else:
        if state_value:
            patterns = resolver.state_match_patterns(state_value)
            if patterns:
                if not any(_matches_label(state, p) for p in patterns):
                    return False
            elif not _contains(state, state_value):
                return False
        elif jurisdiction in ("state", "local"):
            if not isinstance(state, str) or not state.strip():
                return False
            if any(_matches_label(state, p) for p in FEDERAL_STATE_LABELS):
                return False
        if jurisdiction == "local":
            if not isinstance(city, str) or not city.strip():
                return False
            if any(_matches_label(city, p) for p in STATEWIDE_CITY_LABELS):
                return False

    if filters.city and not _contains(city, filters.city):
        return False

    if filters.agency or filters.agency_code or filters.agency_slug:
        if not _matches_agency(listing, filters):
            return False

    if filters.has_apply_link:
        link = _field(listing, "apply_link")
        if not isinstance(link, str) or not link:
            return False

    return True


def _matches_agency(listing, filters: FilterState) -> bool:
    names = [_field(listing, "agency"), _field(listing, "agency_name")]
    code = _field(listing, "agency_code")
    if filters.agency and any(_contains(n, filters.agency) for n in names):
        return True
    if filters.agency_code:
        codes = agency_slug_candidates(filters.agency_code).code_candidates
        if any(_contains(code, c) for c in codes):
            return True
    if filters.agency_slug:
        candidates = agency_slug_candidates(filters.agency_slug)
        if any(_contains(code, c) for c in candidates.code_candidates):
            return True
        if candidates.name_fragment and any(_contains(n, candidates.name_fragment) for n in names):
            return True
    return False


def filter_listings_locally(
    listings: Iterable,
    filters: FilterState,
    resolver: Optional[GeographyResolver] = None,
) -> list:
    resolver = resolver or default_resolver()
    return [item for item in listings if listing_matches_filters(item, filters, resolver)]

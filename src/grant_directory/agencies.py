from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from grant_directory.backend import (
    AnyOf,
    Eq,
    ILike,
    Order,
    Predicate,
    Query,
    QueryBackend,
    QueryError,
    contains_pattern,
)
from grant_directory.logs import log_event
from grant_directory.models import Agency, AgencyPage
from grant_directory.paths import agency_path, derive_agency_slug
from grant_directory.search.filters import (
    AGENCIES_TABLE,
    DEFAULT_PAGE_SIZE,
    clamp_page,
    clamp_page_size,
)
from grant_directory.strings import escape_like


logger = logging.getLogger("gd.agencies")

_SPACES_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class AgencySlugCandidates:
    slug: str
    name_fragment: str
    code_candidates: Tuple[str, ...]


def agency_slug_candidates(value) -> AgencySlugCandidates:
    """Split an agency slug or code into code spellings and a name fragment.

    "hhs-acf" yields codes ("hhs-acf", "HHS-ACF", "hhsacf", "HHSACF") and the
    name fragment "hhs acf".
    """

    normalized = value.strip().lower() if isinstance(value, str) else ""
    if not normalized:
        return AgencySlugCandidates(slug="", name_fragment="", code_candidates=())

    fragment = _SPACES_RE.sub(" ", normalized.replace("-", " ")).strip()
    codes: List[str] = []
    no_hyphen = normalized.replace("-", "")
    for candidate in (normalized, normalized.upper(), no_hyphen, no_hyphen.upper()):
        if candidate and candidate not in codes:
            codes.append(candidate)
    return AgencySlugCandidates(
        slug=normalized, name_fragment=fragment, code_candidates=tuple(codes)
    )


def _name_predicates(fragment: str) -> List[Predicate]:
    pattern = contains_pattern(fragment)
    return [ILike("agency", pattern), ILike("agency_name", pattern)]


def agency_filter_predicate(
    agency: str = "", agency_code: str = "", agency_slug: str = ""
) -> Optional[AnyOf]:
    """OR-group matching listings by agency text, code or slug."""

    clauses: List[Predicate] = []
    if agency:
        clauses.extend(_name_predicates(agency))
    if agency_code:
        for code in agency_slug_candidates(agency_code).code_candidates:
            clauses.append(ILike("agency_code", contains_pattern(code)))
    if agency_slug:
        candidates = agency_slug_candidates(agency_slug)
        for code in candidates.code_candidates:
            clauses.append(ILike("agency_code", contains_pattern(code)))
        if candidates.name_fragment:
            clauses.extend(_name_predicates(candidates.name_fragment))
    if not clauses:
        return None
    return AnyOf(tuple(dict.fromkeys(clauses)))


def agency_listing_predicate(agency: Agency) -> AnyOf:
    """Listings that belong to a resolved agency row."""

    clauses: List[Predicate] = [Eq("agency_id", agency.id)]
    if agency.agency_code:
        for code in agency_slug_candidates(agency.agency_code).code_candidates:
            clauses.append(ILike("agency_code", escape_like(code)))

    fragments: List[str] = []
    if agency.agency_name:
        fragments.append(agency.agency_name.strip().lower())
    fragments.append(agency_slug_candidates(agency.slug).name_fragment)
    if agency.agency_code:
        fragments.append(agency_slug_candidates(agency.agency_code).name_fragment)
    for fragment in dict.fromkeys(f for f in fragments if f):
        clauses.extend(_name_predicates(fragment))
    return AnyOf(tuple(dict.fromkeys(clauses)))


def to_agency(row: Optional[dict], fallback_slug: Optional[str] = None) -> Optional[Agency]:
    if not row:
        return None
    row_id = str(row.get("id") or "")
    name = row.get("agency_name") or row.get("name")
    slug = (
        derive_agency_slug(slug=row.get("slug"), agency_code=row.get("agency_code"), agency_name=name)
        or derive_agency_slug(slug=fallback_slug)
        or derive_agency_slug(slug=row_id)
        or row_id
    )
    display = name.strip() if isinstance(name, str) else ""
    return Agency(
        id=row_id,
        slug=slug,
        agency_name=display or slug,
        agency_code=row.get("agency_code"),
        description=row.get("description"),
        website=row.get("website"),
        contacts=row.get("contacts"),
        created_at=_opt_str(row.get("created_at")),
        updated_at=_opt_str(row.get("updated_at")),
        path=agency_path(slug),
    )


def _opt_str(value) -> Optional[str]:
    return None if value is None else str(value)


def find_agency_by_slug(backend: Optional[QueryBackend], slug: str) -> Optional[Agency]:
    """Resolve an agency from a URL slug: stored slug, then code, then name."""

    normalized = (slug or "").strip().lower()
    if backend is None or not normalized:
        return None

    candidates = agency_slug_candidates(normalized)
    attempts: List[Tuple[str, Predicate]] = [("slug", Eq("slug", normalized))]
    for code in candidates.code_candidates:
        attempts.append(("agency_code", ILike("agency_code", escape_like(code))))
    if candidates.name_fragment:
        attempts.append(("agency_name", ILike("agency_name", escape_like(candidates.name_fragment))))
        attempts.append(
            ("agency_name_fragment", ILike("agency_name", contains_pattern(candidates.name_fragment)))
        )

    for strategy, predicate in attempts:
        try:
            result = backend.execute(
                Query(table=AGENCIES_TABLE, where=(predicate,), order=(Order("agency_name"),), limit=1)
            )
        except QueryError as exc:
            log_event(
                logger,
                "agency.lookup_failed",
                logging.ERROR,
                slug=normalized,
                strategy=strategy,
                error=str(exc),
                code=exc.code,
            )
            return None
        if result.rows:
            log_event(logger, "agency.resolved", slug=normalized, strategy=strategy)
            return to_agency(result.rows[0], fallback_slug=normalized)

    log_event(logger, "agency.not_found", logging.WARNING, slug=normalized)
    return None


def list_agencies(
    backend: Optional[QueryBackend],
    q: str = "",
    page=1,
    page_size=DEFAULT_PAGE_SIZE,
) -> AgencyPage:
    page = clamp_page(page)
    page_size = clamp_page_size(page_size)
    if backend is None:
        return AgencyPage(page=page, page_size=page_size)

    where: Tuple[Predicate, ...] = ()
    term = (q or "").strip()
    if term:
        pattern = contains_pattern(term)
        where = (
            AnyOf(
                (
                    ILike("slug", pattern),
                    ILike("agency_name", pattern),
                    ILike("agency_code", pattern),
                )
            ),
        )

    try:
        result = backend.execute(
            Query(
                table=AGENCIES_TABLE,
                where=where,
                order=(Order("agency_name"),),
                offset=(page - 1) * page_size,
                limit=page_size,
                count=True,
            )
        )
    except QueryError as exc:
        log_event(logger, "agency.list_failed", logging.ERROR, q=term, error=str(exc))
        return AgencyPage(page=page, page_size=page_size)

    agencies = [a for a in (to_agency(r) for r in result.rows) if a is not None]
    total = result.count if result.count is not None else len(agencies)
    return AgencyPage(agencies=agencies, total=total, page=page, page_size=page_size)

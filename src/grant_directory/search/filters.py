from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional, Tuple

from grant_directory.geo.jurisdiction import JurisdictionKind, parse_jurisdiction_kind


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    ui_label: str
    db_column: str


# Columns the keyword filter searches, in the order they are OR-ed.
KEYWORD_COLUMNS: Tuple[str, ...] = ("title", "summary", "description")

# Facet axes over the listings table.
FACET_COLUMNS: Dict[str, ColumnDefinition] = {
    "category": ColumnDefinition(name="category", ui_label="Category", db_column="category"),
    "state": ColumnDefinition(name="state", ui_label="State", db_column="state"),
    "agency": ColumnDefinition(name="agency", ui_label="Agency", db_column="agency"),
}

LISTINGS_TABLE = "grants"
CATEGORIES_TABLE = "grant_categories"
AGENCIES_TABLE = "agencies"
SORT_COLUMN = "scraped_at"


def clamp_page(value, default: int = DEFAULT_PAGE) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n >= 1 else default


def clamp_page_size(value, default: int = DEFAULT_PAGE_SIZE) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    if n < 1:
        return default
    return min(n, MAX_PAGE_SIZE)


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    return str(value).strip()


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FilterState:
    """Normalized search filters.

    Every field always holds a concrete value once built through
    `normalize_filters`, so two states compare equal exactly when they would
    run the same search.
    """

    query: str = ""
    category: str = ""
    state: str = ""
    agency: str = ""
    has_apply_link: bool = False
    agency_slug: str = ""
    agency_code: str = ""
    state_code: str = ""
    city: str = ""
    jurisdiction: Optional[JurisdictionKind] = None
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def with_page(self, page: int, page_size: Optional[int] = None) -> "FilterState":
        return replace(
            self,
            page=clamp_page(page),
            page_size=clamp_page_size(page_size if page_size is not None else self.page_size),
        )

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


TEXT_FILTER_FIELDS: Tuple[str, ...] = (
    "query",
    "category",
    "state",
    "agency",
    "agency_slug",
    "agency_code",
    "state_code",
    "city",
)


def normalize_filters(
    raw: Optional[Mapping] = None,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    **overrides,
) -> FilterState:
    data = dict(raw or {})
    data.update(overrides)

    values = {name: _text(data.get(name)) for name in TEXT_FILTER_FIELDS}
    values["agency_slug"] = values["agency_slug"].lower()
    return FilterState(
        has_apply_link=_flag(data.get("has_apply_link")),
        jurisdiction=parse_jurisdiction_kind(data.get("jurisdiction")),
        page=clamp_page(data.get("page")),
        page_size=clamp_page_size(data.get("page_size"), default=default_page_size),
        **values,
    )

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, List, Mapping, Optional

from grant_directory.api.schemas import GrantSearchResponse
from grant_directory.client.debounce import Debouncer
from grant_directory.client.urlstate import (
    DEFAULT_CLIENT_PAGE_SIZE,
    SYNC_FIELDS,
    ExtraParams,
    apply_locked,
    normalize_client_filters,
    parse_query_string,
    serialize_filters,
)
from grant_directory.geo import GeographyResolver, default_resolver
from grant_directory.logs import log_event
from grant_directory.models import Listing
from grant_directory.search.filters import FilterState, clamp_page, clamp_page_size


logger = logging.getLogger("gd.client")

FETCH_ERROR_MESSAGE = "Unable to load grants. Try again."
KEYWORD_DEBOUNCE_S = 0.7

Fetch = Callable[[str], Awaitable[GrantSearchResponse]]
Navigate = Callable[[str], None]


class FilterSynchronizer:
    """Keeps form filters, the address bar and fetched results consistent.

    `fetch` receives the search query string and returns the decoded API
    response; `navigate` receives the new location (path plus query string)
    and replaces the current history entry. Only the newest search may
    update visible state.
    """

    def __init__(
        self,
        fetch: Fetch,
        navigate: Navigate,
        *,
        base_path: str = "/grants",
        locked: Optional[Mapping] = None,
        extra_params: Optional[ExtraParams] = None,
        initial: Optional[FilterState] = None,
        debounce_delay: float = KEYWORD_DEBOUNCE_S,
        resolver: Optional[GeographyResolver] = None,
        default_page_size: int = DEFAULT_CLIENT_PAGE_SIZE,
    ):
        self.fetch = fetch
        self.navigate = navigate
        self.base_path = base_path
        self.locked = dict(locked or {})
        self.extra_params = dict(extra_params or {})
        self.resolver = resolver or default_resolver()
        self.default_page_size = default_page_size

        start = initial or normalize_client_filters(default_page_size=default_page_size)
        self.filters: FilterState = self._lock(start)
        # Form contents, including keyword text not yet searched.
        self.draft: FilterState = self.filters

        self.results: List[Listing] = []
        self.total = 0
        self.total_pages = 0
        self.loading = False
        self.error: Optional[str] = None

        self._generation = 0
        self._debouncer = Debouncer(debounce_delay, self._search_draft)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def keyword_pending(self) -> bool:
        return self._debouncer.pending

    def is_locked(self, name: str) -> bool:
        pinned = apply_locked(
            normalize_client_filters(default_page_size=self.default_page_size),
            self.locked,
            resolver=self.resolver,
        )
        return getattr(pinned, name) not in ("", False, None)

    def _lock(self, filters: FilterState) -> FilterState:
        return apply_locked(filters, self.locked, resolver=self.resolver)

    def query_string(self, filters: Optional[FilterState] = None) -> str:
        return serialize_filters(
            filters or self.filters,
            extra=self.extra_params,
            default_page_size=self.default_page_size,
        )

    def location(self, filters: Optional[FilterState] = None) -> str:
        qs = self.query_string(filters)
        return f"{self.base_path}?{qs}" if qs else self.base_path

    async def set_query(self, text: str) -> None:
        """Record keyword input; the search runs once typing pauses."""

        if self.is_locked("query"):
            return
        self.draft = replace(self.draft, query=(text or "").strip())
        self._debouncer.call()

    async def set_field(self, name: str, value) -> None:
        """Change a select/checkbox field and search immediately."""

        if name not in SYNC_FIELDS or name == "query":
            raise ValueError(f"not a form field: {name}")
        if self.is_locked(name):
            return
        if name == "has_apply_link":
            value = bool(value)
        elif name == "state":
            value = self.resolver.resolve_state_query_value(value).value
        else:
            value = (value or "").strip()
        self._debouncer.cancel()
        self.draft = replace(self.draft, **{name: value})
        await self._search(self.draft.with_page(1))

    async def submit(self) -> None:
        if not await self._debouncer.flush():
            await self._search(self.draft.with_page(1))

    async def reset(self) -> None:
        self._debouncer.cancel()
        cleared = normalize_client_filters(default_page_size=self.default_page_size)
        await self._search(replace(cleared, page_size=self.filters.page_size))

    async def go_to_page(self, page: int, page_size: Optional[int] = None) -> None:
        size = clamp_page_size(page_size if page_size is not None else self.filters.page_size)
        await self._search(replace(self.filters, page=clamp_page(page), page_size=size))

    async def on_url_change(self, qs: str) -> bool:
        """Follow back/forward or a pasted link; the URL is left alone.

        Returns True when the parsed state differed and a search ran.
        """

        parsed = parse_query_string(
            qs,
            locked=self.locked,
            resolver=self.resolver,
            default_page_size=self.default_page_size,
        )
        if parsed == self.filters:
            return False
        self._debouncer.cancel()
        await self._search(parsed, write_url=False)
        return True

    async def wait_idle(self) -> None:
        await self._debouncer.wait()

    async def _search_draft(self) -> None:
        await self._search(self.draft.with_page(1))

    async def _search(self, filters: FilterState, *, write_url: bool = True) -> None:
        effective = self._lock(filters)
        self._generation += 1
        generation = self._generation

        if write_url:
            self.navigate(self.location(effective))
        self.filters = effective
        self.draft = effective
        self.loading = True
        self.error = None

        try:
            response = await self.fetch(self.query_string(effective))
        except Exception as exc:
            log_event(
                logger, "client.fetch_failed", logging.ERROR, generation=generation, error=str(exc)
            )
            if generation == self._generation:
                self.results = []
                self.total = 0
                self.total_pages = 0
                self.error = FETCH_ERROR_MESSAGE
                self.loading = False
            return

        if generation != self._generation:
            log_event(
                logger,
                "client.stale_response",
                logging.DEBUG,
                generation=generation,
                current=self._generation,
            )
            return

        self.results = list(response.grants)
        self.total = response.total
        self.total_pages = response.total_pages
        self.filters = replace(effective, page=response.page, page_size=response.page_size)
        self.draft = replace(self.draft, page=response.page, page_size=response.page_size)
        self.loading = False

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from grant_directory.api.schemas import FacetResponse, GrantSearchResponse
from grant_directory.context import AppContext, get_context
from grant_directory.logs import log_event
from grant_directory.search.facets import get_facet_sets
from grant_directory.search.filters import FilterState, clamp_page, clamp_page_size, normalize_filters
from grant_directory.search.query import search_listings


router = APIRouter(tags=["grants"])
logger = logging.getLogger("gd.api")


def search_filters(
    keyword: Optional[str] = None,
    query: Optional[str] = None,
    category: Optional[str] = None,
    state: Optional[str] = None,
    state_code: Optional[str] = None,
    city: Optional[str] = None,
    agency: Optional[str] = None,
    agency_slug: Optional[str] = None,
    agency_code: Optional[str] = None,
    jurisdiction: Optional[str] = None,
    has_apply_link: Optional[str] = None,
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    ctx: AppContext = Depends(get_context),
) -> FilterState:
    return normalize_filters(
        {
            "query": keyword if keyword is not None else query,
            "category": category,
            "state": state,
            "state_code": state_code,
            "city": city,
            "agency": agency,
            "agency_slug": agency_slug,
            "agency_code": agency_code,
            "jurisdiction": jurisdiction,
            "has_apply_link": has_apply_link,
            "page": page,
            "page_size": page_size,
        },
        default_page_size=ctx.settings.default_page_size,
    )


@router.get("/grants/search", response_model=GrantSearchResponse)
def grants_search(
    filters: FilterState = Depends(search_filters),
    ctx: AppContext = Depends(get_context),
):
    try:
        result = search_listings(ctx.backend, filters, resolver=ctx.resolver)
    except Exception as exc:
        logger.exception("grants search failed")
        body = GrantSearchResponse(
            page=clamp_page(filters.page),
            page_size=clamp_page_size(filters.page_size),
            error=str(exc) or type(exc).__name__,
        )
        return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))

    log_event(
        logger,
        "api.grants_search",
        logging.DEBUG,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )
    return GrantSearchResponse.from_result(result)


@router.get("/grants/facets", response_model=FacetResponse)
def grants_facets(ctx: AppContext = Depends(get_context)):
    return FacetResponse.from_sets(get_facet_sets(ctx.backend, resolver=ctx.resolver))

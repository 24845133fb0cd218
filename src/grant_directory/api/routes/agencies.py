from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from grant_directory.agencies import agency_listing_predicate, find_agency_by_slug, list_agencies
from grant_directory.api.schemas import AgencyDetailResponse, AgencyListResponse
from grant_directory.context import AppContext, get_context
from grant_directory.search.filters import clamp_page_size, normalize_filters
from grant_directory.search.query import search_listings


router = APIRouter(tags=["agencies"])


@router.get("/agencies", response_model=AgencyListResponse)
def agencies_index(
    q: str = "",
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    ctx: AppContext = Depends(get_context),
):
    size = clamp_page_size(page_size, default=ctx.settings.default_page_size)
    return AgencyListResponse.from_page(list_agencies(ctx.backend, q, page, size))


@router.get("/agencies/{slug}", response_model=AgencyDetailResponse)
def agency_detail(
    slug: str,
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    ctx: AppContext = Depends(get_context),
):
    agency = find_agency_by_slug(ctx.backend, slug)
    if agency is None:
        raise HTTPException(status_code=404, detail="Agency not found")

    filters = normalize_filters(
        {"page": page, "page_size": page_size},
        default_page_size=ctx.settings.default_page_size,
    )
    result = search_listings(
        ctx.backend,
        filters,
        resolver=ctx.resolver,
        extra=(agency_listing_predicate(agency),),
    )
    return AgencyDetailResponse(
        agency=agency,
        grants=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )

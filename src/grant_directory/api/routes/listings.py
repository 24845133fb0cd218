from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from grant_directory.api.schemas import ListingResponse
from grant_directory.context import AppContext, get_context
from grant_directory.geo import city_name_from_slug
from grant_directory.paths import build_listing_path, canonical_redirect
from grant_directory.search.query import load_listing


router = APIRouter(tags=["listings"])


def _render(request: Request, ctx: AppContext, slug: str, listing_id: Optional[str]):
    listing = load_listing(ctx.backend, slug, listing_id, resolver=ctx.resolver)
    if listing is None:
        raise HTTPException(status_code=404, detail="Grant not found")

    target = canonical_redirect(listing, request.url.path, listing_id, resolver=ctx.resolver)
    if target is not None:
        return RedirectResponse(target, status_code=307)

    location = ctx.resolver.infer_listing_jurisdiction(listing)
    state_code = getattr(location, "state_code", None)
    return ListingResponse(
        grant=listing,
        jurisdiction=location.as_dict(),
        canonical_path=build_listing_path(listing, ctx.resolver),
        state_name=ctx.resolver.state_name_from_code(state_code) if state_code else None,
        city_name=city_name_from_slug(getattr(location, "city_slug", None)) or None,
    )


def _require_state(ctx: AppContext, state_code: str) -> None:
    code, _ = ctx.resolver.resolve_state_param(state_code)
    if not code:
        raise HTTPException(status_code=404, detail="Grant not found")


@router.get("/grants/federal/{slug}", response_model=ListingResponse)
def federal_listing(
    slug: str,
    request: Request,
    id: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    return _render(request, ctx, slug, id)


@router.get("/grants/state/{state_code}/{slug}", response_model=ListingResponse)
def state_listing(
    state_code: str,
    slug: str,
    request: Request,
    id: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    _require_state(ctx, state_code)
    return _render(request, ctx, slug, id)


@router.get("/grants/local/{state_code}/{city_slug}/{slug}", response_model=ListingResponse)
def local_listing(
    state_code: str,
    city_slug: str,
    slug: str,
    request: Request,
    id: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    _require_state(ctx, state_code)
    return _render(request, ctx, slug, id)

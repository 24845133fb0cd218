from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from grant_directory.geo.resolver import GeographyResolver, default_resolver
from grant_directory.strings import slugify


def short_id(value) -> str:
    if not isinstance(value, str) or not value:
        return ""
    first = value.split("-")[0]
    return (first or value).lower()


def title_slug(title, listing_id) -> str:
    base = slugify(title or "")
    sid = short_id(listing_id)
    if base and sid:
        return f"{base}-{sid}"
    return base or sid


def short_id_from_slug(slug) -> Optional[str]:
    if not isinstance(slug, str) or not slug:
        return None
    last = slug.split("-")[-1]
    return last.lower() or None


def _field(listing, name: str):
    if isinstance(listing, dict):
        return listing.get(name)
    return getattr(listing, name, None)


def with_id_query(path: str, listing_id) -> str:
    if not isinstance(listing_id, str):
        return path
    trimmed = listing_id.strip()
    if not trimmed:
        return path
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}id={quote(trimmed, safe='')}"


def build_listing_path(listing, resolver: Optional[GeographyResolver] = None) -> str:
    """Canonical detail path for a listing (dict or attribute object).

    The slug segment is for readers; the `?id=` suffix is what lookups trust.
    """

    resolver = resolver or default_resolver()
    raw_id = _field(listing, "id")
    listing_id = raw_id if isinstance(raw_id, str) else ""

    segment = title_slug(_field(listing, "title"), listing_id) or "item"
    location = resolver.infer_jurisdiction(_field(listing, "state"), _field(listing, "city"))

    if location.kind == "federal":
        path = f"/grants/federal/{segment}"
    elif location.kind == "state":
        path = f"/grants/state/{location.state_code.upper()}/{segment}"
    else:
        path = (
            f"/grants/local/{location.state_code.upper()}/{location.city_slug}/{segment}"
        )
    return with_id_query(path, listing_id)


def canonical_redirect(
    listing,
    current_path: str,
    current_id: Optional[str] = None,
    resolver: Optional[GeographyResolver] = None,
) -> Optional[str]:
    """Return the canonical path when the request path differs from it."""

    canonical = build_listing_path(listing, resolver)
    requested = with_id_query(current_path, current_id) if current_id else current_path
    if requested != canonical:
        return canonical
    return None


def derive_agency_slug(
    slug=None,
    agency_code=None,
    agency_name=None,
    agency=None,
) -> str:
    for candidate in (slug, agency_code, agency_name, agency):
        if isinstance(candidate, str) and candidate.strip():
            return slugify(candidate.strip())
    return ""


def agency_path(slug: str) -> str:
    return f"/agencies/{quote(slug, safe='')}"

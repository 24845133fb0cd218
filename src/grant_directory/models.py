from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Listing(BaseModel):
    """A grant or job posting row as read from the store.

    Only `id` and `title` are required; everything else is nullable because
    older rows were ingested before most columns existed.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    apply_link: Optional[str] = None
    category: Optional[str] = None
    category_code: Optional[str] = None
    agency: Optional[str] = None
    agency_name: Optional[str] = None
    agency_slug: Optional[str] = None
    agency_id: Optional[str] = None
    agency_code: Optional[str] = None
    funding_amount: Optional[str] = None
    eligibility: Optional[str] = None
    deadline: Optional[str] = None
    open_date: Optional[str] = None
    close_date: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    scraped_at: Optional[str] = None
    opportunity_number: Optional[str] = None
    path: Optional[str] = None


class Category(BaseModel):
    category_code: str
    category_label: Optional[str] = None
    slug: Optional[str] = None


class Agency(BaseModel):
    id: str
    slug: str
    agency_name: str
    agency_code: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    contacts: Optional[Any] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    path: Optional[str] = None


class Facet(BaseModel):
    label: str
    value: str
    count: int = 0


class FacetSets(BaseModel):
    categories: List[Facet] = Field(default_factory=list)
    states: List[Facet] = Field(default_factory=list)
    agencies: List[Facet] = Field(default_factory=list)


class SearchResult(BaseModel):
    items: List[Listing] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20
    total_pages: int = 0

    @classmethod
    def empty(cls, page: int = 1, page_size: int = 20) -> "SearchResult":
        return cls(items=[], total=0, page=page, page_size=page_size, total_pages=0)


class AgencyPage(BaseModel):
    agencies: List[Agency] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

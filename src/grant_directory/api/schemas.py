from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from grant_directory.models import Agency, AgencyPage, Facet, FacetSets, Listing, SearchResult


class _WireModel(BaseModel):
    # Accept both the python field names and the camelCase wire names.
    model_config = ConfigDict(populate_by_name=True)


class GrantSearchResponse(_WireModel):
    grants: List[Listing] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=12, alias="pageSize")
    total_pages: int = Field(default=0, alias="totalPages")
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: SearchResult) -> "GrantSearchResponse":
        return cls(
            grants=result.items,
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )


class FacetResponse(_WireModel):
    categories: List[Facet] = Field(default_factory=list)
    states: List[Facet] = Field(default_factory=list)
    agencies: List[Facet] = Field(default_factory=list)

    @classmethod
    def from_sets(cls, facets: FacetSets) -> "FacetResponse":
        return cls(categories=facets.categories, states=facets.states, agencies=facets.agencies)


class AgencyListResponse(_WireModel):
    agencies: List[Agency] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=12, alias="pageSize")

    @classmethod
    def from_page(cls, page: AgencyPage) -> "AgencyListResponse":
        return cls(
            agencies=page.agencies,
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )


class AgencyDetailResponse(_WireModel):
    agency: Agency
    grants: List[Listing] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=12, alias="pageSize")
    total_pages: int = Field(default=0, alias="totalPages")


class ListingResponse(_WireModel):
    grant: Listing
    jurisdiction: dict
    canonical_path: str = Field(alias="canonicalPath")
    state_name: Optional[str] = Field(default=None, alias="stateName")
    city_name: Optional[str] = Field(default=None, alias="cityName")

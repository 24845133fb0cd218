"""Package initializer for `grant_directory`."""

from .models import Agency, FacetSets, Listing, SearchResult
from .search.filters import FilterState, normalize_filters

__all__ = ["Agency", "FacetSets", "FilterState", "Listing", "SearchResult", "normalize_filters"]

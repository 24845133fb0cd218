"""Listing search: filter normalization, query translation and facets."""

"""Client-side filter state: URL mirroring, debounced keyword search."""

from grant_directory.client.debounce import Debouncer
from grant_directory.client.sync import FETCH_ERROR_MESSAGE, FilterSynchronizer
from grant_directory.client.urlstate import (
    DEFAULT_CLIENT_PAGE_SIZE,
    apply_locked,
    normalize_client_filters,
    parse_query_string,
    serialize_filters,
)

__all__ = [
    "DEFAULT_CLIENT_PAGE_SIZE",
    "Debouncer",
    "FETCH_ERROR_MESSAGE",
    "FilterSynchronizer",
    "apply_locked",
    "normalize_client_filters",
    "parse_query_string",
    "serialize_filters",
]

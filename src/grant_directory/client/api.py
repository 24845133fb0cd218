from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from grant_directory.api.schemas import GrantSearchResponse

SEARCH_PATH = "/api/grants/search"


class SearchFetchError(Exception):
    pass


class GrantsApiClient:
    """Async client for the grants search endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def search(self, query_string: str) -> GrantSearchResponse:
        url = f"{self.base_url}{SEARCH_PATH}"
        if query_string:
            url = f"{url}?{query_string}"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise SearchFetchError(f"search request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise SearchFetchError(f"search failed with status {resp.status_code}")
        try:
            return GrantSearchResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise SearchFetchError(f"unreadable search response: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

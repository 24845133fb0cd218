from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from grant_directory.backend import QueryBackend, build_backend
from grant_directory.geo import GeographyResolver, default_resolver
from grant_directory.settings import Settings, get_settings


@dataclass(frozen=True)
class AppContext:
    """Read-only state shared by every request."""

    settings: Settings
    resolver: GeographyResolver
    backend: Optional[QueryBackend]


def build_context(
    settings: Optional[Settings] = None,
    backend: Optional[QueryBackend] = None,
    resolver: Optional[GeographyResolver] = None,
) -> AppContext:
    settings = settings or get_settings()
    return AppContext(
        settings=settings,
        resolver=resolver or default_resolver(),
        backend=backend if backend is not None else build_backend(settings),
    )


@lru_cache(maxsize=1)
def get_context() -> AppContext:
    return build_context()


def reset_context() -> None:
    """Test helper to rebuild the context from the current environment."""

    get_context.cache_clear()

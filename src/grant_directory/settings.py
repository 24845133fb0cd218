from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_str(*names: str) -> str:
    for name in names:
        raw = os.getenv(name)
        if raw is not None and raw.strip():
            return raw.strip()
    return ""


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_number(name: str, default: float, *, minimum: float, maximum: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, min(value, maximum))


@dataclass(frozen=True)
class Settings:
    """Process configuration read from the environment.

    `backend` is "" when nothing usable is configured; every read then returns
    empty results instead of failing.
    """

    backend: str
    sqlite_path: str
    supabase_url: str
    supabase_key: str
    http_timeout_s: float
    default_page_size: int
    search_debug: bool

    @classmethod
    def from_env(cls) -> "Settings":
        sqlite_path = _env_str("GRANTS_SQLITE_PATH")
        supabase_url = _env_str("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
        supabase_key = _env_str("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")

        backend = _env_str("GD_BACKEND").lower()
        if not backend:
            if sqlite_path:
                backend = "sqlite"
            elif supabase_url:
                backend = "postgrest"

        return cls(
            backend=backend,
            sqlite_path=sqlite_path,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            http_timeout_s=_env_number("GD_HTTP_TIMEOUT_S", 10.0, minimum=0.5, maximum=120.0),
            default_page_size=int(
                _env_number("GD_DEFAULT_PAGE_SIZE", 12, minimum=1, maximum=50)
            ),
            search_debug=_env_bool("GD_SEARCH_DEBUG", False),
        )

    def missing_config(self) -> Optional[str]:
        """Describe what is missing for the selected backend, or None."""

        if self.backend == "sqlite":
            return None if self.sqlite_path else "GRANTS_SQLITE_PATH is not set"
        if self.backend == "postgrest":
            if not self.supabase_url or not self.supabase_key:
                return "SUPABASE_URL and SUPABASE_ANON_KEY must both be set"
            return None
        if not self.backend:
            return "no backend configured (set GRANTS_SQLITE_PATH or SUPABASE_URL)"
        return f"unknown backend: {self.backend}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Tuple

from grant_directory.geo.jurisdiction import (
    FederalJurisdiction,
    Jurisdiction,
    LocalJurisdiction,
    StateJurisdiction,
)
from grant_directory.geo.states import StateDirectory, StateInfo
from grant_directory.strings import slugify, words_from_slug


FEDERAL_KEYWORDS: Tuple[str, ...] = (
    "federal",
    "nationwide",
    "national",
    "united-states",
    "us",
    "usa",
    "u-s",
    "u-s-a",
    "all-states",
    "multi-state",
    "multiple-states",
    "across-the-nation",
)

STATEWIDE_KEYWORDS: Tuple[str, ...] = (
    "statewide",
    "whole-state",
    "state-wide",
    "across-the-state",
    "multiple-locations",
    "multiple-counties",
    "various-locations",
    "entire-state",
    "all-counties",
    "all-regions",
    "n-a",
    "na",
)

FEDERAL_STATE_LABEL = "Federal (nationwide)"
FEDERAL_STATE_VALUE = "federal"

# Unknown states keep their first two characters only when they are safe in a
# path segment.
_FALLBACK_CODE_RE = re.compile(r"^[A-Za-z0-9]{2}$")

# Query-string values that select the federal pseudo-state.
_FEDERAL_QUERY_SLUGS = frozenset({"federal", "federal-nationwide", "nationwide"})


@dataclass(frozen=True)
class LabelPattern:
    """Text stored in a free-form location column.

    `exact` patterns are compared case-insensitively against the whole value;
    the rest match as substrings. Short abbreviations are exact so "US" does
    not match "Houston".
    """

    text: str
    exact: bool = False


FEDERAL_STATE_LABELS: Tuple[LabelPattern, ...] = (
    LabelPattern("Federal"),
    LabelPattern("Nationwide"),
    LabelPattern("National"),
    LabelPattern("United States"),
    LabelPattern("All States"),
    LabelPattern("Multi-state"),
    LabelPattern("Multiple States"),
    LabelPattern("Across the Nation"),
    LabelPattern("US", exact=True),
    LabelPattern("USA", exact=True),
    LabelPattern("U.S.", exact=True),
    LabelPattern("U.S.A.", exact=True),
)

STATEWIDE_CITY_LABELS: Tuple[LabelPattern, ...] = (
    LabelPattern("statewide"),
    LabelPattern("whole state"),
    LabelPattern("state wide"),
    LabelPattern("state-wide"),
    LabelPattern("across the state"),
    LabelPattern("multiple locations"),
    LabelPattern("multiple counties"),
    LabelPattern("various locations"),
    LabelPattern("entire state"),
    LabelPattern("all counties"),
    LabelPattern("all regions"),
    LabelPattern("n/a", exact=True),
    LabelPattern("n a", exact=True),
    LabelPattern("n-a", exact=True),
    LabelPattern("na", exact=True),
)


def _contains_token_run(slug: str, keywords: Sequence[str]) -> bool:
    tokens = slug.split("-")
    for keyword in keywords:
        needle = keyword.split("-")
        width = len(needle)
        for start in range(len(tokens) - width + 1):
            if tokens[start : start + width] == needle:
                return True
    return False


def _matches_keywords(value, keywords: Sequence[str]) -> bool:
    # Blank and non-text values count as a match for both keyword sets.
    if not isinstance(value, str):
        return True
    trimmed = value.strip()
    if not trimmed:
        return True
    slug = slugify(trimmed)
    if not slug:
        return True
    return _contains_token_run(slug, keywords)


def is_federal_jurisdiction_value(value) -> bool:
    return _matches_keywords(value, FEDERAL_KEYWORDS)


def is_statewide_city_value(value) -> bool:
    return _matches_keywords(value, STATEWIDE_KEYWORDS)


def city_name_from_slug(slug) -> str:
    return words_from_slug(slug) if slug else ""


@dataclass(frozen=True)
class StateQueryValue:
    value: str
    label: str
    code: Optional[str] = None

    @property
    def is_federal(self) -> bool:
        return self.value == FEDERAL_STATE_VALUE


class GeographyResolver:
    """Maps free-text state/city values onto states and jurisdictions."""

    def __init__(self, directory: StateDirectory):
        self.directory = directory

    def find_state_info(self, value) -> Optional[StateInfo]:
        return self.directory.lookup(value)

    def normalize_state_code(self, value) -> Optional[str]:
        info = self.find_state_info(value)
        if info:
            return info.code
        if not isinstance(value, str):
            return None
        trimmed = value.strip()
        if len(trimmed) == 2:
            return trimmed.upper()
        return None

    def state_name_from_code(self, code) -> Optional[str]:
        info = self.find_state_info(code)
        return info.name if info else None

    def state_name_candidates(self, code) -> list[str]:
        info = self.find_state_info(code)
        if not info:
            return []
        return list(info.name_candidates())

    def state_match_patterns(self, code) -> list[LabelPattern]:
        """Patterns that find a state's rows in a free-text state column.

        The code, and any name that also appears inside another state's name
        ("Virginia" in "West Virginia"), must match the whole value; other
        names match as substrings ("Los Angeles, California").
        """

        info = self.find_state_info(code)
        if not info:
            return []
        others = [
            n.lower()
            for s in self.directory.states
            if s.code != info.code
            for n in (s.name, *s.aliases)
        ]
        out: list[LabelPattern] = []
        for candidate in info.name_candidates():
            lowered = candidate.lower()
            ambiguous = candidate == info.code or any(lowered in o for o in others)
            out.append(LabelPattern(candidate, exact=ambiguous))
        return out

    def infer_jurisdiction(self, state, city) -> Jurisdiction:
        if is_federal_jurisdiction_value(state):
            return FederalJurisdiction()

        info = self.find_state_info(state)
        raw_state = state.strip() if isinstance(state, str) else ""
        if info:
            state_code = info.code
        elif _FALLBACK_CODE_RE.match(raw_state[:2]):
            state_code = raw_state[:2].upper()
        else:
            state_code = "US"

        if is_statewide_city_value(city):
            return StateJurisdiction(state_code=state_code)

        raw_city = city.strip() if isinstance(city, str) else ""
        city_slug = slugify(raw_city)
        if not city_slug or _contains_token_run(city_slug, STATEWIDE_KEYWORDS):
            return StateJurisdiction(state_code=state_code)

        return LocalJurisdiction(state_code=state_code, city_slug=city_slug)

    def infer_listing_jurisdiction(self, listing) -> Jurisdiction:
        return self.infer_jurisdiction(_field(listing, "state"), _field(listing, "city"))

    def resolve_state_param(self, param) -> Tuple[str, str]:
        """Resolve a route segment such as "CA" or "new-york" to (code, name)."""

        if not isinstance(param, str):
            return ("", "Unknown")
        cleaned = param.strip()
        if not cleaned:
            return ("", "Unknown")

        upper = cleaned.upper()
        info = self.directory.by_code.get(upper)
        if info:
            return (info.code, info.name)
        if len(cleaned) == 2:
            return (upper, upper)

        found = self.directory.by_name.get(cleaned.replace("-", " ").lower())
        if found:
            return (found.code, found.name)
        found = self.directory.by_slug.get(slugify(cleaned))
        if found:
            return (found.code, found.name)
        return ("", "Unknown")

    def resolve_state_query_value(self, value) -> StateQueryValue:
        if not isinstance(value, str) or not value.strip():
            return StateQueryValue(value="", label="")
        trimmed = value.strip()
        if slugify(trimmed) in _FEDERAL_QUERY_SLUGS:
            return StateQueryValue(value=FEDERAL_STATE_VALUE, label=FEDERAL_STATE_LABEL)
        info = self.find_state_info(trimmed)
        if info:
            return StateQueryValue(value=info.code, label=info.name, code=info.code)
        return StateQueryValue(value=trimmed, label=trimmed)


def _field(obj, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


@lru_cache(maxsize=1)
def default_resolver() -> GeographyResolver:
    return GeographyResolver(StateDirectory.build())

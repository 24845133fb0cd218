from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from grant_directory.strings import slugify


@dataclass(frozen=True)
class StateInfo:
    code: str
    name: str
    aliases: Tuple[str, ...] = ()

    def name_candidates(self) -> Tuple[str, ...]:
        out = [self.code, self.name]
        for alias in self.aliases:
            if alias not in out:
                out.append(alias)
        return tuple(out)


STATE_DATA: Tuple[StateInfo, ...] = (
    StateInfo("AL", "Alabama"),
    StateInfo("AK", "Alaska"),
    StateInfo("AZ", "Arizona"),
    StateInfo("AR", "Arkansas"),
    StateInfo("CA", "California"),
    StateInfo("CO", "Colorado"),
    StateInfo("CT", "Connecticut"),
    StateInfo("DE", "Delaware"),
    StateInfo("FL", "Florida"),
    StateInfo("GA", "Georgia"),
    StateInfo("HI", "Hawaii"),
    StateInfo("ID", "Idaho"),
    StateInfo("IL", "Illinois"),
    StateInfo("IN", "Indiana"),
    StateInfo("IA", "Iowa"),
    StateInfo("KS", "Kansas"),
    StateInfo("KY", "Kentucky"),
    StateInfo("LA", "Louisiana"),
    StateInfo("ME", "Maine"),
    StateInfo("MD", "Maryland"),
    StateInfo("MA", "Massachusetts"),
    StateInfo("MI", "Michigan"),
    StateInfo("MN", "Minnesota"),
    StateInfo("MS", "Mississippi"),
    StateInfo("MO", "Missouri"),
    StateInfo("MT", "Montana"),
    StateInfo("NE", "Nebraska"),
    StateInfo("NV", "Nevada"),
    StateInfo("NH", "New Hampshire"),
    StateInfo("NJ", "New Jersey"),
    StateInfo("NM", "New Mexico"),
    StateInfo("NY", "New York"),
    StateInfo("NC", "North Carolina"),
    StateInfo("ND", "North Dakota"),
    StateInfo("OH", "Ohio"),
    StateInfo("OK", "Oklahoma"),
    StateInfo("OR", "Oregon"),
    StateInfo("PA", "Pennsylvania"),
    StateInfo("RI", "Rhode Island"),
    StateInfo("SC", "South Carolina"),
    StateInfo("SD", "South Dakota"),
    StateInfo("TN", "Tennessee"),
    StateInfo("TX", "Texas"),
    StateInfo("UT", "Utah"),
    StateInfo("VT", "Vermont"),
    StateInfo("VA", "Virginia"),
    StateInfo("WA", "Washington"),
    StateInfo("WV", "West Virginia"),
    StateInfo("WI", "Wisconsin"),
    StateInfo("WY", "Wyoming"),
    StateInfo(
        "DC",
        "District of Columbia",
        ("Washington DC", "Washington, DC", "Washington D.C.", "D.C.", "Washington"),
    ),
    StateInfo("PR", "Puerto Rico"),
    StateInfo("GU", "Guam"),
    StateInfo("VI", "U.S. Virgin Islands", ("Virgin Islands", "US Virgin Islands")),
    StateInfo("AS", "American Samoa"),
    StateInfo(
        "MP",
        "Northern Mariana Islands",
        ("Mariana Islands", "Commonwealth of the Northern Mariana Islands"),
    ),
)


@dataclass(frozen=True)
class StateDirectory:
    """Read-only lookup indices over a set of `StateInfo` entries.

    Canonical names are indexed before aliases, and an alias never replaces
    an entry that is already present. That keeps "Washington" pointing at
    WA even though DC lists it as an alias.
    """

    states: Tuple[StateInfo, ...]
    by_code: Mapping[str, StateInfo] = field(repr=False)
    by_name: Mapping[str, StateInfo] = field(repr=False)
    by_slug: Mapping[str, StateInfo] = field(repr=False)

    @classmethod
    def build(cls, states: Iterable[StateInfo] = STATE_DATA) -> "StateDirectory":
        entries = tuple(states)
        by_code: dict[str, StateInfo] = {}
        by_name: dict[str, StateInfo] = {}
        by_slug: dict[str, StateInfo] = {}

        for state in entries:
            code = state.code.upper()
            if code in by_code:
                raise ValueError(f"duplicate state code: {code}")
            by_code[code] = state
            by_name[state.name.lower()] = state
            name_slug = slugify(state.name)
            if name_slug:
                by_slug[name_slug] = state

        for state in entries:
            for alias in state.aliases:
                by_name.setdefault(alias.lower(), state)
                alias_slug = slugify(alias)
                if alias_slug:
                    by_slug.setdefault(alias_slug, state)

        return cls(
            states=entries,
            by_code=MappingProxyType(by_code),
            by_name=MappingProxyType(by_name),
            by_slug=MappingProxyType(by_slug),
        )

    def lookup(self, value) -> Optional[StateInfo]:
        if not isinstance(value, str):
            return None
        trimmed = value.strip()
        if not trimmed:
            return None
        found = self.by_code.get(trimmed.upper())
        if found:
            return found
        found = self.by_name.get(trimmed.lower())
        if found:
            return found
        slug = slugify(trimmed)
        if slug:
            return self.by_slug.get(slug)
        return None

    def __len__(self) -> int:
        return len(self.states)

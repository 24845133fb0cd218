from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union


JurisdictionKind = Literal["federal", "state", "local"]
JURISDICTION_KINDS: tuple[JurisdictionKind, ...] = ("federal", "state", "local")


@dataclass(frozen=True)
class FederalJurisdiction:
    kind: JurisdictionKind = "federal"

    def as_dict(self) -> dict:
        return {"jurisdiction": self.kind}


@dataclass(frozen=True)
class StateJurisdiction:
    state_code: str
    kind: JurisdictionKind = "state"

    def as_dict(self) -> dict:
        return {"jurisdiction": self.kind, "stateCode": self.state_code}


@dataclass(frozen=True)
class LocalJurisdiction:
    state_code: str
    city_slug: str
    kind: JurisdictionKind = "local"

    def as_dict(self) -> dict:
        return {
            "jurisdiction": self.kind,
            "stateCode": self.state_code,
            "citySlug": self.city_slug,
        }


Jurisdiction = Union[FederalJurisdiction, StateJurisdiction, LocalJurisdiction]


def parse_jurisdiction_kind(value) -> Optional[JurisdictionKind]:
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key in JURISDICTION_KINDS:
        return key  # type: ignore[return-value]
    return None

from grant_directory.geo.jurisdiction import (
    FederalJurisdiction,
    Jurisdiction,
    JurisdictionKind,
    LocalJurisdiction,
    StateJurisdiction,
    parse_jurisdiction_kind,
)
from grant_directory.geo.resolver import (
    FEDERAL_STATE_LABEL,
    FEDERAL_STATE_LABELS,
    FEDERAL_STATE_VALUE,
    STATEWIDE_CITY_LABELS,
    GeographyResolver,
    LabelPattern,
    StateQueryValue,
    city_name_from_slug,
    default_resolver,
    is_federal_jurisdiction_value,
    is_statewide_city_value,
)
from grant_directory.geo.states import STATE_DATA, StateDirectory, StateInfo

__all__ = [
    "FEDERAL_STATE_LABEL",
    "FEDERAL_STATE_LABELS",
    "FEDERAL_STATE_VALUE",
    "STATEWIDE_CITY_LABELS",
    "STATE_DATA",
    "FederalJurisdiction",
    "GeographyResolver",
    "Jurisdiction",
    "JurisdictionKind",
    "LabelPattern",
    "LocalJurisdiction",
    "StateDirectory",
    "StateInfo",
    "StateJurisdiction",
    "StateQueryValue",
    "city_name_from_slug",
    "default_resolver",
    "is_federal_jurisdiction_value",
    "is_statewide_city_value",
    "parse_jurisdiction_kind",
]

import pytest

from grant_directory.geo import (
    FederalJurisdiction,
    LocalJurisdiction,
    StateDirectory,
    StateInfo,
    StateJurisdiction,
    city_name_from_slug,
    is_federal_jurisdiction_value,
    is_statewide_city_value,
)


def test_directory_has_one_entry_per_code(resolver):
    directory = resolver.directory
    assert len(directory) == 56
    assert len(directory.by_code) == 56


def test_directory_rejects_duplicate_codes():
    with pytest.raises(ValueError):
        StateDirectory.build([StateInfo("CA", "California"), StateInfo("CA", "Cali")])


def test_find_state_info_by_code_name_alias_and_slug(resolver):
    ca = resolver.find_state_info("ca")
    assert ca is not None and ca.code == "CA"
    assert resolver.find_state_info("California") is ca
    assert resolver.find_state_info(" new-york ").code == "NY"
    assert resolver.find_state_info("Virgin Islands").code == "VI"


def test_dc_aliases_resolve_to_the_same_state(resolver):
    a = resolver.find_state_info("Washington, DC")
    b = resolver.find_state_info("Washington D.C.")
    c = resolver.find_state_info("DC")
    assert a is not None
    assert a == b == c
    assert a.code == "DC"


def test_washington_stays_the_state(resolver):
    assert resolver.find_state_info("Washington").code == "WA"


@pytest.mark.parametrize("garbage", [None, "", "   ", "zz-top", 12, ["CA"], "!!!"])
def test_find_state_info_never_raises(resolver, garbage):
    assert resolver.find_state_info(garbage) is None


def test_normalize_state_code(resolver):
    assert resolver.normalize_state_code("texas") == "TX"
    assert resolver.normalize_state_code("zz") == "ZZ"
    assert resolver.normalize_state_code("Atlantis") is None
    assert resolver.normalize_state_code(None) is None


def test_state_names_from_code(resolver):
    assert resolver.state_name_from_code("va") == "Virginia"
    assert resolver.state_name_from_code("XX") is None
    assert resolver.state_name_candidates("DC")[:2] == ["DC", "District of Columbia"]
    assert "Washington D.C." in resolver.state_name_candidates("DC")
    assert resolver.state_name_candidates("XX") == []


@pytest.mark.parametrize(
    "value",
    [None, "", "  ", "Federal", "Nationwide", "United States", "USA", "U.S.A.", "All States",
     "Department of Federal Affairs", "multi-state"],
)
def test_federal_values(value):
    assert is_federal_jurisdiction_value(value) is True


@pytest.mark.parametrize("value", ["California", "Massachusetts", "Texas", "Louisiana", "Houston"])
def test_non_federal_values(value):
    assert is_federal_jurisdiction_value(value) is False


@pytest.mark.parametrize(
    "value", [None, "", "Statewide", "state-wide", "Various Locations", "N/A", "na", "All Counties"]
)
def test_statewide_city_values(value):
    assert is_statewide_city_value(value) is True


@pytest.mark.parametrize("value", ["Los Angeles", "Savannah", "Nashville", "Santa Ana"])
def test_specific_city_values(value):
    assert is_statewide_city_value(value) is False


def test_infer_jurisdiction_scenarios(resolver):
    assert resolver.infer_jurisdiction("CA", "Statewide") == StateJurisdiction(state_code="CA")
    assert resolver.infer_jurisdiction("California", "Los Angeles") == LocalJurisdiction(
        state_code="CA", city_slug="los-angeles"
    )
    assert resolver.infer_jurisdiction("", "Anything") == FederalJurisdiction()
    assert resolver.infer_jurisdiction(None, None) == FederalJurisdiction()


def test_infer_jurisdiction_falls_back_to_first_two_letters(resolver):
    assert resolver.infer_jurisdiction("Ontario", None) == StateJurisdiction(state_code="ON")
    assert resolver.infer_jurisdiction("Texas", "!!!") == StateJurisdiction(state_code="TX")


@pytest.mark.parametrize("state", ["?x", "a/b region", "x", "#1"])
def test_unsafe_fallback_codes_become_us(resolver, state):
    assert resolver.infer_jurisdiction(state, None) == StateJurisdiction(state_code="US")


@pytest.mark.parametrize(
    "state, city",
    [
        (None, None),
        ("", ""),
        ("   ", "   "),
        ("\x00\x01", "☃"),
        ("CA", None),
        ("x", "y"),
        (123, 456),
        ("Washington, DC", "N/A"),
        ("New York", "New York City"),
    ],
)
def test_infer_jurisdiction_is_total_and_stable(resolver, state, city):
    first = resolver.infer_jurisdiction(state, city)
    assert first.kind in {"federal", "state", "local"}
    assert resolver.infer_jurisdiction(state, city) == first


def test_resolve_state_param(resolver):
    assert resolver.resolve_state_param("ca") == ("CA", "California")
    assert resolver.resolve_state_param("new-york") == ("NY", "New York")
    assert resolver.resolve_state_param("zz") == ("ZZ", "ZZ")
    assert resolver.resolve_state_param("atlantis") == ("", "Unknown")
    assert resolver.resolve_state_param(None) == ("", "Unknown")


def test_resolve_state_query_value(resolver):
    federal = resolver.resolve_state_query_value("Federal (nationwide)")
    assert federal.is_federal
    assert federal.label == "Federal (nationwide)"

    texas = resolver.resolve_state_query_value("texas")
    assert (texas.value, texas.label, texas.code) == ("TX", "Texas", "TX")

    unknown = resolver.resolve_state_query_value(" Ontario ")
    assert (unknown.value, unknown.code) == ("Ontario", None)

    assert resolver.resolve_state_query_value("").value == ""


def test_state_match_patterns_pin_ambiguous_names(resolver):
    va = {p.text: p.exact for p in resolver.state_match_patterns("VA")}
    assert va == {"VA": True, "Virginia": True}

    ca = {p.text: p.exact for p in resolver.state_match_patterns("California")}
    assert ca == {"CA": True, "California": False}

    assert resolver.state_match_patterns("Atlantis") == []


def test_city_name_from_slug():
    assert city_name_from_slug("los-angeles") == "Los Angeles"
    assert city_name_from_slug(None) == ""


def test_listing_jurisdiction_accepts_dicts_and_objects(resolver):
    class Row:
        state = "Texas"
        city = "Houston"

    assert resolver.infer_listing_jurisdiction(Row()).as_dict() == {
        "jurisdiction": "local",
        "stateCode": "TX",
        "citySlug": "houston",
    }

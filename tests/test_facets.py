import logging

from conftest import init_grants_db
from grant_directory.backend import QueryError
from grant_directory.backend.sqlite import SQLiteBackend
from grant_directory.search.facets import (
    federal_facet,
    get_facet_sets,
    group_facets,
    with_federal_state,
)


def _pairs(facets):
    return [(f.label, f.value, f.count) for f in facets]


def test_group_facets_merges_variants_and_sorts():
    facets = group_facets(["  Arts", "arts", "", None, 3, "Zoo", "Arts "])
    assert _pairs(facets) == [("Arts", "Arts", 3), ("Zoo", "Zoo", 1)]


def test_state_facets_put_federal_first(backend):
    facets = get_facet_sets(backend)
    assert _pairs(facets.states) == [
        ("Federal (nationwide)", "federal", 2),
        ("California", "CA", 3),
        ("Texas", "TX", 1),
        ("Virginia", "VA", 1),
        ("West Virginia", "WV", 1),
    ]


def test_category_facets_use_category_table(backend):
    facets = get_facet_sets(backend)
    assert _pairs(facets.categories) == [
        ("Arts", "arts", 1),
        ("Business", "business", 1),
        ("Education", "education", 1),
        ("Environment", "environment", 2),
        ("Health", "health", 1),
        ("Housing", "housing", 1),
        ("Infrastructure", "infrastructure", 1),
    ]


def test_agency_facets_skip_blank_agencies(backend):
    labels = [f.label for f in get_facet_sets(backend).agencies]
    assert labels == [
        "California Arts Council",
        "Department of Agriculture",
        "National Oceanic and Atmospheric Administration",
        "Small Business Administration",
        "Texas Workforce Commission",
        "Virginia Housing",
        "West Virginia Division of Natural Resources",
    ]


def test_existing_nationwide_label_is_not_duplicated(tmp_path):
    db = init_grants_db(
        tmp_path / "g.sqlite",
        grants=[
            {"id": "x1", "title": "A", "state": "Nationwide"},
            {"id": "x2", "title": "B", "state": "Ohio"},
        ],
    )
    facets = get_facet_sets(SQLiteBackend(str(db)))
    assert _pairs(facets.states) == [("Nationwide", "Nationwide", 1), ("Ohio", "OH", 1)]


def test_empty_store_still_offers_federal(tmp_path):
    db = init_grants_db(tmp_path / "g.sqlite", grants=[])
    facets = get_facet_sets(SQLiteBackend(str(db)))
    assert _pairs(facets.states) == [("Federal (nationwide)", "federal", 0)]
    assert facets.categories == []
    assert facets.agencies == []


class FailingBackend:
    name = "failing"

    def execute(self, query):
        raise QueryError("permission denied", code="42501")


def test_backend_failure_degrades_to_federal_only(caplog):
    caplog.set_level(logging.ERROR, logger="gd.facets")
    facets = get_facet_sets(FailingBackend())
    assert _pairs(facets.states) == [("Federal (nationwide)", "federal", 0)]
    assert facets.categories == [] and facets.agencies == []
    assert any('"facets.failed"' in r.getMessage() for r in caplog.records)


def test_no_backend_returns_federal_only():
    assert _pairs(get_facet_sets(None).states) == [("Federal (nationwide)", "federal", 0)]


def test_with_federal_state():
    assert with_federal_state([], 9) == [federal_facet(0)]
    ohio = group_facets(["Ohio"])
    assert _pairs(with_federal_state(ohio, 4))[0] == ("Federal (nationwide)", "federal", 4)


def test_territory_named_like_the_us_still_gets_federal_facet(tmp_path):
    db = init_grants_db(
        tmp_path / "g.sqlite",
        grants=[
            {"id": "v1", "title": "A", "state": "VI"},
            {"id": "o1", "title": "B", "state": "Ohio"},
            {"id": "n1", "title": "C", "state": None},
        ],
    )
    facets = get_facet_sets(SQLiteBackend(str(db)))
    assert _pairs(facets.states) == [
        ("Federal (nationwide)", "federal", 1),
        ("Ohio", "OH", 1),
        ("U.S. Virgin Islands", "VI", 1),
    ]


def test_uncoded_category_labels_are_normalized(tmp_path):
    db = init_grants_db(
        tmp_path / "g.sqlite",
        grants=[
            {"id": "c1", "title": "A", "category": "first_time homebuyer"},
            {"id": "c2", "title": "B", "category": "First Time Homebuyer"},
        ],
    )
    facets = get_facet_sets(SQLiteBackend(str(db)))
    assert [(f.label, f.count) for f in facets.categories] == [("First Time Homebuyer", 2)]

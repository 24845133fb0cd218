import os
import socket
import sqlite3
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


_ENV_VARS = (
    "GD_BACKEND",
    "GRANTS_SQLITE_PATH",
    "SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "GD_HTTP_TIMEOUT_S",
    "GD_DEFAULT_PAGE_SIZE",
    "GD_SEARCH_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    from grant_directory.context import reset_context
    from grant_directory.settings import reset_settings_cache

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    reset_context()
    yield
    reset_settings_cache()
    reset_context()


GRANT_COLUMNS = (
    "id",
    "title",
    "category",
    "category_code",
    "agency",
    "agency_name",
    "agency_code",
    "agency_slug",
    "agency_id",
    "state",
    "city",
    "funding_amount",
    "eligibility",
    "deadline",
    "open_date",
    "close_date",
    "scraped_at",
    "apply_link",
    "summary",
    "description",
    "opportunity_number",
)

IDS = {
    "coastal": "a1b2c3d4-0000-4000-8000-000000000001",
    "arts": "b2c3d4e5-0000-4000-8000-000000000002",
    "business": "c3d4e5f6-0000-4000-8000-000000000003",
    "health": "d4e5f6a7-0000-4000-8000-000000000004",
    "broadband": "e5f6a7b8-0000-4000-8000-000000000005",
    "workforce": "f6a7b8c9-0000-4000-8000-000000000006",
    "trails": "0a1b2c3d-0000-4000-8000-000000000007",
    "housing": "1b2c3d4e-0000-4000-8000-000000000008",
}

GRANTS = [
    {
        "id": IDS["coastal"],
        "title": "Coastal Resilience Fund",
        "category": "Environment",
        "category_code": "ENV",
        "agency": "National Oceanic and Atmospheric Administration",
        "agency_code": "DOC-NOAA",
        "state": "California",
        "city": "Los Angeles",
        "scraped_at": "2024-03-03T00:00:00",
        "apply_link": "https://example.org/apply/1",
        "summary": "Shoreline restoration projects",
        "description": "Funding for living shorelines and dune repair.",
    },
    {
        "id": IDS["arts"],
        "title": "California Arts Council Grant",
        "category": "Arts",
        "category_code": "ART",
        "agency": "California Arts Council",
        "agency_code": "CAC",
        "state": "CA",
        "city": "Statewide",
        "scraped_at": "2024-03-02T00:00:00",
        "apply_link": None,
        "summary": "Support for community arts organizations",
    },
    {
        "id": IDS["business"],
        "title": "Small Business Innovation",
        "category": "Business",
        "category_code": "BUS",
        "agency": "Small Business Administration",
        "agency_code": "SBA",
        "state": "California",
        "city": "San Diego",
        "scraped_at": "2024-03-01T00:00:00",
        "apply_link": "",
        "summary": "Seed funding for research startups",
    },
    {
        "id": IDS["health"],
        "title": "National Health Research Award",
        "category": "Health",
        "category_code": "HLT",
        "agency_name": "National Institutes of Health",
        "agency_code": "HHS-NIH",
        "state": "",
        "city": None,
        "scraped_at": "2024-02-15T00:00:00",
        "apply_link": "https://grants.gov/apply/4",
        "summary": "Clinical research awards",
    },
    {
        "id": IDS["broadband"],
        "title": "Rural Broadband Expansion",
        "category": "Infrastructure",
        "category_code": None,
        "agency": "Department of Agriculture",
        "agency_code": "USDA",
        "state": None,
        "city": None,
        "scraped_at": "2024-02-10T00:00:00",
        "apply_link": "https://usda.gov/apply/5",
        "summary": "Connectivity for rural communities",
    },
    {
        "id": IDS["workforce"],
        "title": "Texas Workforce Training",
        "category": "Education",
        "category_code": "EDU",
        "agency": "Texas Workforce Commission",
        "agency_code": "TWC",
        "state": "Texas",
        "city": "Houston",
        "scraped_at": "2024-02-01T00:00:00",
        "apply_link": "https://twc.texas.gov/apply/6",
        "summary": "Job training for adults",
    },
    {
        "id": IDS["trails"],
        "title": "West Virginia Trails Grant",
        "category": "Environment",
        "category_code": "ENV",
        "agency": "West Virginia Division of Natural Resources",
        "agency_code": "WVDNR",
        "state": "West Virginia",
        "city": "statewide",
        "scraped_at": "2024-01-20T00:00:00",
        "apply_link": None,
        "summary": "Trail maintenance",
    },
    {
        "id": IDS["housing"],
        "title": "Virginia Housing Assistance",
        "category": "Housing",
        "category_code": "HOU",
        "agency": "Virginia Housing",
        "agency_code": "VHDA",
        "state": "Virginia",
        "city": "Richmond",
        "scraped_at": "2024-01-15T00:00:00",
        "apply_link": "https://vh.example/apply/8",
        "summary": "Down payment help",
    },
]

CATEGORIES = [
    ("ENV", "Environment", "environment"),
    ("ART", "Arts", "arts"),
    ("BUS", "Business", "business"),
    ("HLT", "Health", "health"),
    ("EDU", "Education", "education"),
    ("HOU", "Housing", "housing"),
]

AGENCIES = [
    ("ag-1", "noaa", "National Oceanic and Atmospheric Administration", "DOC-NOAA", "https://noaa.gov"),
    ("ag-2", None, "Small Business Administration", "SBA", "https://sba.gov"),
    ("ag-3", None, "Texas Workforce Commission", None, None),
    ("ag-4", "hhs-nih", "National Institutes of Health", "HHS-NIH", "https://nih.gov"),
]


def init_grants_db(path: Path, grants=GRANTS) -> Path:
    conn = sqlite3.connect(str(path))
    try:
        cur = conn.cursor()
        cols = ", ".join(
            f"{c} TEXT PRIMARY KEY" if c == "id" else f"{c} TEXT" for c in GRANT_COLUMNS
        )
        cur.execute(f"CREATE TABLE grants ({cols})")
        cur.execute(
            "CREATE TABLE grant_categories (category_code TEXT PRIMARY KEY, category_label TEXT, slug TEXT)"
        )
        cur.execute(
            """
            CREATE TABLE agencies (
                id TEXT PRIMARY KEY,
                slug TEXT,
                agency_name TEXT NOT NULL,
                agency_code TEXT,
                description TEXT,
                website TEXT,
                contacts TEXT,
                created_at TEXT,
                updated_at TEXT
            )
            """
        )
        placeholders = ",".join(["?"] * len(GRANT_COLUMNS))
        for grant in grants:
            cur.execute(
                f"INSERT INTO grants ({', '.join(GRANT_COLUMNS)}) VALUES ({placeholders})",
                tuple(grant.get(c) for c in GRANT_COLUMNS),
            )
        cur.executemany("INSERT INTO grant_categories VALUES (?, ?, ?)", CATEGORIES)
        cur.executemany(
            "INSERT INTO agencies (id, slug, agency_name, agency_code, website) VALUES (?, ?, ?, ?, ?)",
            AGENCIES,
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def grants_db(tmp_path) -> Path:
    return init_grants_db(tmp_path / "grants.sqlite")


@pytest.fixture
def backend(grants_db):
    from grant_directory.backend.sqlite import SQLiteBackend

    return SQLiteBackend(str(grants_db))


@pytest.fixture
def resolver():
    from grant_directory.geo import default_resolver

    return default_resolver()


@pytest.fixture
def api_client(backend, grants_db):
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    from grant_directory.api.app import app
    from grant_directory.context import build_context, get_context
    from grant_directory.settings import Settings

    settings = Settings(
        backend="sqlite",
        sqlite_path=str(grants_db),
        supabase_url="",
        supabase_key="",
        http_timeout_s=10.0,
        default_page_size=12,
        search_debug=False,
    )
    ctx = build_context(settings=settings, backend=backend)
    app.dependency_overrides[get_context] = lambda: ctx
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

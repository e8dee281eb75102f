"""
QloudSound API - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- An isolated SQLite file per test (and a clean table-creation memo)
- Disabled Telegram credentials so no test ever reaches the network
- A FastAPI TestClient running the full middleware stack
- Sample request payloads and records
- Small synchronous helpers for inspecting the database
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from qloudsound import database
from qloudsound.main import app
from qloudsound.models import CatalogEntry, Submission

# ---------------------------------------------------------------------------
# Isolation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def db_path(tmp_path: Path):
    """Point the persistence layer at a fresh SQLite file for each test."""
    path = tmp_path / "requests.db"
    database.reset_schema_cache()
    with patch("qloudsound.database.REQUESTS_DB_PATH", path):
        yield path
    database.reset_schema_cache()


@pytest.fixture(autouse=True)
def no_telegram():
    """Make sure the notifier sees no credentials unless a test sets them."""
    with patch("qloudsound.notifier.TELEGRAM_TOKEN", ""), patch(
        "qloudsound.notifier.TELEGRAM_CHAT", ""
    ), patch("qloudsound.notifier.TELEGRAM_FALLBACK_TOKEN", ""), patch(
        "qloudsound.notifier.TELEGRAM_FALLBACK_CHAT", ""
    ), patch("qloudsound.notifier.TELEGRAM_API_URL", "https://api.telegram.org"):
        yield


@pytest.fixture
def no_store():
    """Run as if REQUESTS_DB_PATH were left empty."""
    with patch("qloudsound.database.REQUESTS_DB_PATH", None):
        yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def valid_payload() -> Dict[str, Any]:
    return {
        "name": "Laia",
        "email": "laia@example.com",
        "style": "Rumba",
        "description": "Una canción para el cumpleaños de mi abuela",
        "filename": "letra.txt",
        "website": "",
    }


@pytest.fixture
def sample_submission() -> Submission:
    return Submission(
        id="req-1",
        name="Laia",
        email="laia@example.com",
        style="Rumba",
        description="Para mi abuela",
        created_at="2025-06-01T10:00:00.000Z",
    )


@pytest.fixture
def sample_entry(sample_submission: Submission) -> CatalogEntry:
    return CatalogEntry.for_submission(sample_submission)


# ---------------------------------------------------------------------------
# Inspection helpers
# ---------------------------------------------------------------------------


def fetch_rows(path: Path, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
    """Run a read query against the test database with plain sqlite3."""
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]
    finally:
        conn.close()


def table_names(path: Path) -> List[str]:
    if not path.exists():
        return []
    rows = fetch_rows(path, "SELECT name FROM sqlite_master WHERE type = 'table'")
    return sorted(r["name"] for r in rows)

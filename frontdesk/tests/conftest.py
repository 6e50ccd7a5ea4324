"""
Test configuration and fixtures for the Frontdesk test suite.

Provides:
- In-memory SQLite test database (isolated per test)
- FastAPI TestClient fixture
- Spreadsheet builders for upload tests
"""
import sqlite3
from contextlib import contextmanager
from io import BytesIO
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from frontdesk.core.db.base import SCHEMA


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

def _create_test_db() -> sqlite3.Connection:
    """Create an in-memory SQLite database with the full Frontdesk schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn


@contextmanager
def _test_get_db(conn: sqlite3.Connection):
    """Replacement for get_db() that uses the shared test connection."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


@pytest.fixture()
def test_db():
    """Provide a fresh in-memory SQLite database for each test."""
    conn = _create_test_db()
    yield conn
    conn.close()


@pytest.fixture()
def patch_db(test_db):
    """
    Patch the get_db context manager across all db modules so that
    every database call uses the in-memory test database.
    """
    cm = lambda: _test_get_db(test_db)  # noqa: E731

    with (
        patch("frontdesk.core.db.base.get_db", cm),
        patch("frontdesk.core.db.requests.get_db", cm),
        patch("frontdesk.core.db.cards.get_db", cm),
        patch("frontdesk.core.db.logs.get_db", cm),
    ):
        yield test_db


@pytest.fixture()
def client(patch_db):
    """
    Provide a FastAPI TestClient with the database patched.

    Skips init_db in the lifespan so no database file is created.
    """
    from frontdesk.api.main import app

    with patch("frontdesk.api.main.init_db"):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# Spreadsheet builders
# ---------------------------------------------------------------------------

EXPORT_HEADER = ["Student/staff", "Tag #", "Shelf", "Tracking", "Date"]


@pytest.fixture()
def make_xlsx():
    """Return a builder: {sheet_name: rows} -> xlsx bytes."""
    def _make(sheets):
        wb = Workbook()
        wb.remove(wb.active)
        for name, rows in sheets.items():
            ws = wb.create_sheet(title=name)
            for row in rows:
                ws.append(row)
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
    return _make


@pytest.fixture()
def export_rows():
    """A small mailroom export, header first."""
    return [
        EXPORT_HEADER,
        ["Jane Doe", "Tag A1", "BIN", "1Z999", "2024-01-05"],
        ["RTS Troy CSC", "Tag B2", "bin", "1Z998", "2024-01-05"],
        ["Sam Lee", "Tag C", "Shelf 4", "1Z997", "2024-01-06"],
        ["Ann Roe", "Tag D3", "bin", "1Z996", "2024-01-06"],
    ]


@pytest.fixture()
def export_xlsx(make_xlsx, export_rows):
    return make_xlsx({"Packages": export_rows, "Notes": [["ignored"]]})

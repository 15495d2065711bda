# ABOUTME: Pytest hooks and shared fixtures. Points the shared engine at a temp SQLite file per test.
# ABOUTME: Loads .env so integration tests (e.g. test_evals) have GEMINI_API_KEY when run via pytest.

import pytest

from dotenv import load_dotenv

load_dotenv()

from core import database


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh database file under a not-yet-existing data dir; engine reset before and after."""
    path = tmp_path / "data" / "smart_goals.db"
    database._reset_engine()
    monkeypatch.setattr(database, "_db_path", str(path))
    yield path
    database._reset_engine()


@pytest.fixture
def engine(db_path):
    return database.get_engine()

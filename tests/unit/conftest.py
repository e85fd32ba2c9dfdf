"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.core.session_store import SessionStore
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient.

    list_all_records is left in place; it pages through the patched list_records.
    """
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.upsert_record", in_memory_db.upsert_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture
def session(monkeypatch, tmp_path):
    """A session store persisting under tmp_path, swapped in for the global one."""
    store = SessionStore(path=tmp_path / "session.json", secret_key="test-secret")
    monkeypatch.setattr("src.services.auth_service.session_store", store)
    return store


@pytest.fixture
def fast_hashing(monkeypatch):
    """Cheap werkzeug hashing method so auth tests stay quick."""
    monkeypatch.setattr("src.core.config.constants.PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")


@pytest.fixture
def sample_challenge_data():
    """Returns sample challenge fields for testing."""
    return {
        "title": "30 Days of Discipline",
        "description": "Show up every day",
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "difficulty": "Beginner",
        "daily_prompts": ["Wake up early", "Read 10 pages"],
    }

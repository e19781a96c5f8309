"""
Shared test fixtures and configuration for the import wizard backend tests.
"""
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

from app import create_app
from app.config import TestConfig
from app.extensions import storage, workflow_client
from app.services.workflow_client import WorkflowClient
from app.storage.json_store import JsonStore
from app.storage.repositories import StoreRepository, TokenRepository

WORKFLOW_BASE_URL = TestConfig.WORKFLOW_BASE_URL


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory for JsonStore tests."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def app(temp_data_dir: Path) -> Flask:
    """Create a test Flask application bound to a throwaway data directory."""

    class _Config(TestConfig):
        DATA_DIR = temp_data_dir

    app = create_app(_Config)
    yield app
    workflow_client.deduper.clear()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def store(app: Flask) -> JsonStore:
    """The JsonStore the app under test writes to."""
    return storage.store


@pytest.fixture
def json_store(temp_data_dir: Path) -> JsonStore:
    """Create a JsonStore instance with temporary directory."""
    return JsonStore(str(temp_data_dir))


@pytest.fixture
def tokens(json_store: JsonStore) -> TokenRepository:
    return TokenRepository(json_store)


@pytest.fixture
def stores(json_store: JsonStore) -> StoreRepository:
    return StoreRepository(json_store)


@pytest.fixture
def wf_client() -> WorkflowClient:
    """A standalone workflow client pointed at the fake engine."""
    return WorkflowClient(base_url=WORKFLOW_BASE_URL)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "FLASK_ENV": "testing",
        "WORKFLOW_BASE_URL": WORKFLOW_BASE_URL,
        "DEFAULT_USER_ID": "user_test",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# Helper functions for tests

def webhook(name: str) -> str:
    """Absolute URL of a workflow webhook under the test base URL."""
    return f"{WORKFLOW_BASE_URL}/{name}"


def set_created_at(store: JsonStore, collection: str, row_id: str, created_at: str):
    """Pin a row's creation time so ordering assertions are deterministic."""
    store.update(collection, {"created_at": created_at}, id=row_id)

import os

import pytest
from fastapi.testclient import TestClient

# Default to the memory backend so importing the app never touches the filesystem
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from course_planner.main import app  # noqa: E402
from course_planner.stores import InMemoryStore, get_store  # noqa: E402

_AUTH_ENV = (
    "ENABLE_BASIC_AUTH",
    "BASIC_AUTH_USERNAME",
    "BASIC_AUTH_PASSWORD",
    "ANONYMOUS_ISSUERS",
    "ALLOW_GUEST_WRITES",
    "BATCH_MAX_ITEMS",
    "BATCH_MAX_WORKERS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Each test starts from default settings."""
    for name in _AUTH_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    """TestClient wired to a fresh in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
"""Shared fixtures for the py-load-eic test-suite."""

import pytest
from factories import SOURCE_URL

from py_load_eic.config import Settings
from py_load_eic.store.memory import MemoryStore


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake source and the in-memory store."""
    return Settings(source_url=SOURCE_URL, store_backend="memory")


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()

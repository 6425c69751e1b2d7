"""
Shared fixtures for feed route tests.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["ENABLE_CACHE_FOR_TESTS"] = "0"

import pytest
from fastapi.testclient import TestClient

from feed_api.main import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("API_KEY", raising=False)
    return TestClient(app)


@pytest.fixture
def keyed_client(monkeypatch):
    monkeypatch.setenv("API_KEY", "secret")
    return TestClient(app)

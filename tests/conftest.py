"""Pytest configuration and shared fixtures."""
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure packages are importable when running tests from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from controller.app import create_app  # noqa: E402
from controller.store import StatsStore  # noqa: E402


@pytest.fixture
def store():
    return StatsStore()


@pytest.fixture
def client(store):
    return TestClient(create_app(store))

"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from taskbuffer.config import Config  # noqa: E402


# Tuesday
NOW = datetime(2026, 2, 17, 10, 30)


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the cached configuration from leaking between tests."""
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def notes_dir(tmp_path):
    """An empty notes vault."""
    path = tmp_path / "notes"
    path.mkdir()
    return path

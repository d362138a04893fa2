"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from pathlib import Path

import pytest

# Set test environment before any app code runs
os.environ["ENV"] = "test"
os.environ.pop("BROWSER_EXECUTABLE_PATH", None)


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Clear the settings cache so env overrides in a test take effect."""
    from reportgen.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def templates_dir() -> Path:
    """Packaged templates directory."""
    from reportgen.config import DEFAULT_TEMPLATES_DIR

    return DEFAULT_TEMPLATES_DIR

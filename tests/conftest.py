"""Pytest configuration and shared fixtures for riftsync tests.

Settings are loaded lazily from the environment; a dummy API key is set
before any module under test can build them.
"""

import os

import pytest

os.environ.setdefault("RIOT_API_KEY", "RGAPI-test-key")

from riftsync.config.settings import reset_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test sees settings rebuilt from its own environment."""
    reset_settings()
    yield
    reset_settings()

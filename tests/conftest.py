"""Shared pytest fixtures for the Gerrit monitor test suite."""

from __future__ import annotations

import pytest

from gerrit_monitor.config import AppSettings

pytest_plugins = ("respx",)


@pytest.fixture
def settings() -> AppSettings:
    """Provide application settings with deterministic defaults for tests."""
    return AppSettings.model_validate(
        {
            "hosts": ["https://review.example.org/"],
            "max_attempts": 1,
            "timeout": 5.0,
        },
    )

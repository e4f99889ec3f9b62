"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from gerrit_monitor.config import AppSettings


def test_hosts_are_normalized(settings: AppSettings) -> None:
    """Trailing slashes are dropped from configured hosts."""
    assert settings.hosts == ["https://review.example.org"]
    assert settings.require_hosts() == ["https://review.example.org"]


def test_hosts_must_be_origins() -> None:
    """Hosts with a path or without a scheme are rejected."""
    with pytest.raises(ValidationError, match="Invalid Gerrit host"):
        AppSettings.model_validate({"hosts": ["review.example.org"]})
    with pytest.raises(ValidationError, match="Invalid Gerrit host"):
        AppSettings.model_validate({"hosts": ["https://review.example.org/c/123"]})


def test_hosts_loaded_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hosts and flags are read from GMON_ prefixed variables."""
    monkeypatch.setenv("GMON_HOSTS", '["https://a.example.org/", "http://b.example.org"]')
    monkeypatch.setenv("GMON_DETAILED", "true")

    loaded = AppSettings()

    assert loaded.hosts == ["https://a.example.org", "http://b.example.org"]
    assert loaded.detailed is True


def test_concurrency_bounds() -> None:
    """Concurrency must stay within the supported range."""
    with pytest.raises(ValidationError):
        AppSettings.model_validate({"max_concurrency": 0})

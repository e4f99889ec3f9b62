"""Configuration management for the Gerrit monitor."""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ORIGIN_RE = re.compile(r"^(https?://[^/]+)/*$")


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_prefix="GMON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    hosts: list[str] = Field(
        default_factory=list,
        description="Gerrit origins to monitor, e.g. https://review.example.org.",
    )
    detailed: bool = Field(
        default=False,
        description="Request commit messages and detailed account information.",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum number of Gerrit hosts queried concurrently.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single Gerrit request.",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request before giving up on transient failures.",
    )

    @field_validator("hosts")
    @classmethod
    def _normalize_hosts(cls, hosts: list[str]) -> list[str]:
        # Hosts stored with a trailing '/' produce '//' in request paths,
        # which some Gerrit instances reject.
        normalized: list[str] = []
        for host in hosts:
            match = _ORIGIN_RE.match(host.strip())
            if match is None:
                msg = f"Invalid Gerrit host {host!r}: expected an http(s) origin"
                raise ValueError(msg)
            normalized.append(match.group(1))
        return normalized

    def require_hosts(self) -> list[str]:
        """Return the configured hosts, failing when none are set."""
        if not self.hosts:
            msg = "GMON_HOSTS must be configured"
            raise ValueError(msg)
        return list(self.hosts)


def load_settings() -> AppSettings:
    """Load application settings from supported sources."""
    return AppSettings()

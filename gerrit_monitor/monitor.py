"""Orchestration of review queries across every configured Gerrit host."""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from gerrit_monitor.fetchers import accounts, changes
from gerrit_monitor.gerrit_client import GerritClient, GerritError
from gerrit_monitor.search import SearchResult, SearchResults

if TYPE_CHECKING:
    from gerrit_monitor.config import AppSettings

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[["AppSettings", str], GerritClient]


class AttentionMonitor:
    """Fetch the CLs needing attention from every host, isolating host failures."""

    def __init__(
        self,
        settings: "AppSettings",
        *,
        hosts: list[str] | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize the monitor with runtime settings."""
        self._settings = settings
        self._hosts = list(hosts) if hosts is not None else settings.require_hosts()
        self._semaphore = asyncio.Semaphore(settings.max_concurrency)
        self._client_factory: ClientFactory = client_factory or GerritClient
        self.failed_hosts: dict[str, BaseException] = {}

    async def run(self) -> SearchResults:
        """Query every host concurrently and return the successful results in host order."""
        self.failed_hosts = {}
        outcomes: list[SearchResult | BaseException] = await asyncio.gather(
            *(self._fetch_host(host) for host in self._hosts),
            return_exceptions=True,
        )
        results: list[SearchResult] = []
        for host, outcome in zip(self._hosts, outcomes, strict=True):
            if isinstance(outcome, (GerritError, httpx.HTTPError, ValueError)):
                LOGGER.error("Failed to fetch reviews from %s: %s", host, outcome)
                self.failed_hosts[host] = outcome
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        LOGGER.info("Fetched reviews from %s of %s hosts", len(results), len(self._hosts))
        return SearchResults(results)

    async def _fetch_host(self, host: str) -> SearchResult:
        async with self._semaphore, self._client_factory(self._settings, host) as client:
            account = await accounts.fetch_account(client)
            LOGGER.debug("Authenticated to %s as account %s", host, account.id)
            return await changes.fetch_reviews(client, account, detailed=self._settings.detailed)

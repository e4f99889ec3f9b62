"""Grouping of search results by the attention they need from a user."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from gerrit_monitor.models import Account, Category, Changelist

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime

LOGGER = logging.getLogger(__name__)

CategoryMap = dict[Category, list[Changelist]]


class SearchResult:
    """The changelists returned by one query for one user on one host."""

    def __init__(self, host: str, user: Account, changelists: Iterable[Changelist]) -> None:
        """Bind the changelists to the host and the user they were fetched for."""
        self.host = host
        self.user = user
        self.changelists = list(changelists)

    def __len__(self) -> int:
        """Return the number of changelists in the result."""
        return len(self.changelists)

    @classmethod
    def wrap(cls, host: str, user: Account, payloads: Iterable[dict[str, Any]]) -> SearchResult:
        """Validate raw change payloads, skipping and logging malformed ones."""
        changelists: list[Changelist] = []
        for index, payload in enumerate(payloads):
            try:
                changelists.append(Changelist.wrap(host, payload))
            except ValidationError as error:
                LOGGER.warning(
                    "Skipping invalid change %s from %s (entry %s): %s",
                    payload.get("_number", "?"),
                    host,
                    index,
                    error,
                )
        return cls(host, user, changelists)

    def to_json(self) -> dict[str, Any]:
        """Return the data required to recreate the search result."""
        return {
            "host": self.host,
            "user": self.user.model_dump(mode="json", by_alias=True),
            "data": [changelist.to_json() for changelist in self.changelists],
        }

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> SearchResult:
        """Recreate a search result from :meth:`to_json` output."""
        return cls.wrap(payload["host"], Account.model_validate(payload["user"]), payload["data"])

    def category_map(self, now: datetime | None = None) -> CategoryMap:
        """Return the changelists grouped by the attention they need from the user."""
        result: CategoryMap = {}
        seen: dict[Category, set[int]] = {}
        for changelist in self.changelists:
            category = changelist.get_category(self.user, now)
            bucket = result.setdefault(category, [])
            identities = seen.setdefault(category, set())
            if id(changelist) in identities:
                continue
            identities.add(id(changelist))
            bucket.append(changelist)
        return result


class SearchResults:
    """The results of several queries whose categorizations are merged."""

    def __init__(self, results: Iterable[SearchResult]) -> None:
        """Store the results in query order."""
        self.results = list(results)

    def __iter__(self) -> Iterator[SearchResult]:
        """Iterate over the individual query results."""
        return iter(self.results)

    def __len__(self) -> int:
        """Return the number of queries."""
        return len(self.results)

    def to_json(self) -> list[dict[str, Any]]:
        """Return the data required to recreate every search result."""
        return [result.to_json() for result in self.results]

    def category_map(self, now: datetime | None = None) -> CategoryMap:
        """Concatenate the per-query category maps in query order.

        Changelists are only deduplicated within a single query.
        """
        categories: CategoryMap = {}
        for result in self.results:
            for category, changelists in result.category_map(now).items():
                categories.setdefault(category, []).extend(changelists)
        return categories

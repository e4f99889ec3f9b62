"""Change fetchers returning the CLs that may need a user's attention."""

import logging
from itertools import chain
from typing import TYPE_CHECKING, Any

from gerrit_monitor.gerrit_client import GerritProtocolError
from gerrit_monitor.search import SearchResult

if TYPE_CHECKING:
    from gerrit_monitor.gerrit_client import GerritClient
    from gerrit_monitor.models import Account

LOGGER = logging.getLogger(__name__)

_BASE_OPTIONS = ("CURRENT_REVISION", "DETAILED_LABELS", "MESSAGES", "REVIEWED", "SUBMITTABLE")
_DETAILED_OPTIONS = ("CURRENT_COMMIT", "DETAILED_ACCOUNTS")


def build_review_params(account: "Account", *, detailed: bool = False) -> list[tuple[str, str]]:
    """Return the query parameters selecting open CLs owned or reviewed by the account."""
    user_id = account.id
    params = [
        ("q", f"status:open owner:{user_id}"),
        ("q", f"status:open -star:ignore reviewer:{user_id} -owner:{user_id}"),
    ]
    params.extend(("o", option) for option in _BASE_OPTIONS)
    if detailed:
        params.extend(("o", option) for option in _DETAILED_OPTIONS)
    return params


async def fetch_reviews(
    client: "GerritClient",
    account: "Account",
    *,
    detailed: bool = False,
) -> SearchResult:
    """Return the open CLs owned by or awaiting review from the account."""
    payload = await client.get_json("/changes/", params=build_review_params(account, detailed=detailed))
    changes = flatten_query_results(payload)
    LOGGER.debug("Fetched %s changes from %s", len(changes), client.host)
    return SearchResult.wrap(client.host, account, changes)


def flatten_query_results(payload: Any) -> list[dict[str, Any]]:
    """Flatten the one-list-per-query reply of a multi-query request."""
    if not isinstance(payload, list):
        msg = f"Unexpected change query payload type: {type(payload).__name__}"
        raise GerritProtocolError(msg)
    # A single query returns a flat list of changes rather than a list of lists.
    return list(chain.from_iterable(item if isinstance(item, list) else [item] for item in payload))

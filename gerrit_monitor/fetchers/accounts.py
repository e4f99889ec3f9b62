"""Account fetchers for Gerrit hosts."""

from typing import TYPE_CHECKING

from gerrit_monitor.gerrit_client import GerritAPIError, GerritAuthError, is_framed, parse_reply
from gerrit_monitor.models import Account

if TYPE_CHECKING:
    from gerrit_monitor.gerrit_client import GerritClient

LOGIN_PROMPT = " Please log in to the Gerrit host and try again."

_UNAUTHORIZED = 401
_FORBIDDEN = 403
_REDIRECT_LOWER = 300
_REDIRECT_UPPER = 400


async def fetch_account(client: "GerritClient") -> Account:
    """Return the account of the user authenticated against the host."""
    try:
        response = await client.request("GET", "/accounts/self")
    except GerritAPIError as exc:
        if _requires_login(exc.status_code):
            msg = f"Cannot fetch account from {client.host} (status {exc.status_code}).{LOGIN_PROMPT}"
            raise GerritAuthError(msg) from exc
        raise
    # Gerrit serves a login page instead of a JSON reply to anonymous users.
    if not is_framed(response.text):
        msg = f"Cannot fetch account from {client.host}.{LOGIN_PROMPT}"
        raise GerritAuthError(msg)
    return Account.model_validate(parse_reply(response.text))


def _requires_login(status_code: int | None) -> bool:
    if status_code is None:
        return False
    if status_code in (_UNAUTHORIZED, _FORBIDDEN):
        return True
    # Redirects point at the host's sign-in page.
    return _REDIRECT_LOWER <= status_code < _REDIRECT_UPPER

"""Async Gerrit REST client with retry and reply framing helpers."""

import logging
from types import TracebackType
from typing import Any, Self, TYPE_CHECKING
from collections.abc import Mapping, Sequence

import httpx
import orjson
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

if TYPE_CHECKING:
    from gerrit_monitor.config import AppSettings

LOGGER = logging.getLogger(__name__)

MAGIC_PREFIX = ")]}'\n"

_RETRY_FAILURE_MESSAGE = "Gerrit request failed after retries"
_SERVER_ERROR_LOWER = 500
_SERVER_ERROR_UPPER = 600

Params = Mapping[str, Any] | Sequence[tuple[str, Any]]


class GerritError(RuntimeError):
    """Base class for failures talking to a Gerrit server."""


class GerritAPIError(GerritError):
    """Raised when Gerrit returns a non-retryable error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Attach HTTP status metadata to the exception instance."""
        super().__init__(message)
        self.status_code = status_code


class GerritProtocolError(GerritError):
    """Raised when a reply is not framed like a Gerrit JSON reply."""


class GerritAuthError(GerritError):
    """Raised when the Gerrit host requires the user to log in."""


class GerritClient:
    """Asynchronous client for the JSON API of a single Gerrit host.

    See https://gerrit-review.googlesource.com/Documentation/rest-api.html
    """

    def __init__(
        self,
        settings: "AppSettings",
        host: str,
    ) -> None:
        """Configure the HTTP client with cache-busting headers and retry policy."""
        self.host = host
        headers = {
            "User-Agent": "gerrit-monitor/0.1",
            "Accept": "application/json",
            "pragma": "no-cache",
            "cache-control": "no-cache, must-revalidate",
        }
        self._client = httpx.AsyncClient(
            base_url=host,
            headers=headers,
            timeout=httpx.Timeout(settings.timeout),
        )
        self._max_attempts = settings.max_attempts

    async def __aenter__(self) -> Self:
        """Enter the async context manager and return the client."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Ensure the underlying HTTP client is closed when exiting the context."""
        del exc_type, exc, tb
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Params | None = None,
    ) -> httpx.Response:
        """Perform an HTTP request, retrying transport failures and server errors."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
            wait=wait_exponential_jitter(initial=1, max=10),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._client.request(method, path, params=params)
                    try:
                        response.raise_for_status()
                    except httpx.HTTPStatusError as exc:
                        status_code = exc.response.status_code
                        if _SERVER_ERROR_LOWER <= status_code < _SERVER_ERROR_UPPER:
                            LOGGER.warning("Gerrit %s returned %s, retrying", self.host, status_code)
                            raise
                        error_message = f"Gerrit {self.host} returned {status_code}: {exc.response.text}"
                        raise GerritAPIError(error_message, status_code=status_code) from exc
                    return response
        except RetryError as exc:  # pragma: no cover - defensive
            raise GerritAPIError(_RETRY_FAILURE_MESSAGE) from exc
        except httpx.HTTPStatusError as exc:
            error_message = f"Gerrit {self.host} returned {exc.response.status_code} after retries"
            raise GerritAPIError(error_message, status_code=exc.response.status_code) from exc
        raise GerritAPIError(_RETRY_FAILURE_MESSAGE)

    async def get_json(self, path: str, *, params: Params | None = None) -> Any:
        """Send a GET request and decode the framed JSON reply."""
        response = await self.request("GET", path, params=params)
        return parse_reply(response.text)


def is_framed(reply: str) -> bool:
    """Return True when the reply starts with Gerrit's JSON magic prefix."""
    return reply.startswith(MAGIC_PREFIX)


def parse_reply(reply: str) -> Any:
    """Decode a Gerrit JSON reply, which must start with ``)]}'\\n``."""
    if not is_framed(reply):
        header = reply[: len(MAGIC_PREFIX)]
        msg = f"Unexpected reply from Gerrit server: {header}..."
        raise GerritProtocolError(msg)
    try:
        return orjson.loads(reply[len(MAGIC_PREFIX) :])
    except orjson.JSONDecodeError as exc:
        msg = f"Gerrit server returned an invalid JSON payload: {exc}"
        raise GerritProtocolError(msg) from exc

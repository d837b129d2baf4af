"""Bearer-token memo for credentialed adapters.

Hey future me - the adapter NEVER talks to the Spotify accounts service directly. It asks our
backend token endpoint (/api/spotify/token) and keeps the answer here until shortly before it
expires. One TokenCache per adapter instance, no module globals, so tests get a clean slate by
constructing a new adapter (or calling reset()).

Rules:
- Fresh memo (now + 30s < expires_at) → returned without any network access
- Fetch already in flight → every caller awaits that SAME task
- force_refresh → memo dropped first, then a new fetch
- Fetch fails → memo invalidated, error (classified as stage "token") raised to all waiters
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError
from playlistnotes.domain.ports import IFetchClient
from playlistnotes.domain.value_objects.cancellation import CancellationToken

logger = logging.getLogger(__name__)

TOKEN_REFRESH_BUFFER_MS = 30_000
DEFAULT_EXPIRES_IN_SECONDS = 60
EXPIRY_SKEW_SECONDS = 5
MIN_LIFETIME_SECONDS = 5


@dataclass(frozen=True)
class TokenMemo:
    """Cached bearer token. expires_at is epoch MILLISECONDS."""

    value: str
    token_type: str
    expires_at: int

    @property
    def authorization(self) -> str:
        """Value for the Authorization header."""
        return f"{self.token_type} {self.value}"


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


class TokenCache:
    """Memoizes the bearer token handed out by the backend token endpoint."""

    def __init__(
        self,
        endpoint: str,
        error_mapper: Callable[[BaseException], AdapterError],
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            endpoint: Backend token endpoint URL
            error_mapper: Turns a failed fetch into the adapter's AdapterError (stage "token")
            clock: Epoch-seconds clock, injectable for tests
        """
        self.endpoint = endpoint
        self._error_mapper = error_mapper
        self._clock = clock
        self._memo: TokenMemo | None = None
        self._in_flight: asyncio.Task[TokenMemo] | None = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def memo(self) -> TokenMemo | None:
        return self._memo

    def is_fresh(self) -> bool:
        """True if the memo can be used without hitting the endpoint."""
        return (
            self._memo is not None
            and self._now_ms() + TOKEN_REFRESH_BUFFER_MS < self._memo.expires_at
        )

    def invalidate(self) -> None:
        """Drop the memo. A fetch that is already running keeps running."""
        self._memo = None

    def reset(self) -> None:
        """Forget everything, including the in-flight fetch (tests, logout)."""
        self._memo = None
        self._in_flight = None

    async def acquire(
        self,
        fetch_client: IFetchClient,
        *,
        force_refresh: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> TokenMemo:
        """Return a usable token, fetching one if needed.

        Args:
            fetch_client: Client used to call the token endpoint
            force_refresh: Discard the memo and fetch a new token
            cancel_token: Stops THIS caller from waiting, the shared fetch continues

        Returns:
            TokenMemo

        Raises:
            AdapterError: Token endpoint failed or returned no access_token
            ImportAbortedError: cancel_token fired while waiting
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        if force_refresh:
            self.invalidate()
        elif self.is_fresh() and self._memo is not None:
            return self._memo

        task = self._in_flight
        if task is None or force_refresh:
            task = asyncio.create_task(self._fetch(fetch_client))
            task.add_done_callback(self._clear_in_flight)
            self._in_flight = task

        # shield: a waiter that cancels must not cancel the fetch the others share
        if cancel_token is not None:
            return await cancel_token.run(asyncio.shield(task))
        return await asyncio.shield(task)

    def _clear_in_flight(self, task: asyncio.Task[TokenMemo]) -> None:
        if self._in_flight is task:
            self._in_flight = None
        # Mark the outcome as retrieved even if every waiter already gave up
        if not task.cancelled():
            task.exception()

    async def _fetch(self, fetch_client: IFetchClient) -> TokenMemo:
        started = time.perf_counter()
        try:
            payload = await fetch_client.get_json(
                self.endpoint, headers={"Cache-Control": "no-store"}
            )
            memo = self._to_memo(payload)
        except AdapterError:
            self.invalidate()
            raise
        except Exception as e:
            self.invalidate()
            raise self._error_mapper(e) from e

        self._memo = memo
        logger.debug(
            "token.fetched",
            extra={
                "expires_at": memo.expires_at,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return memo

    def _to_memo(self, payload: Any) -> TokenMemo:
        data = payload if isinstance(payload, dict) else {}
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AdapterError(
                ImportErrorCode.INVALID_RESPONSE,
                details={"stage": "token", "reason": "missing_token", "endpoint": self.endpoint},
            )

        token_type = data.get("token_type")
        now_ms = self._now_ms()

        # Yo, explicit expires_at wins when it's in the future. Otherwise expires_in minus a
        # small skew, and a missing expires_in means "assume one minute".
        expires_at = _as_number(data.get("expires_at"))
        if expires_at is None or expires_at <= now_ms:
            expires_in = _as_number(data.get("expires_in"))
            if expires_in is None:
                expires_in = DEFAULT_EXPIRES_IN_SECONDS
            lifetime = max(MIN_LIFETIME_SECONDS, expires_in - EXPIRY_SKEW_SECONDS)
            expires_at = now_ms + lifetime * 1000

        return TokenMemo(
            value=access_token,
            token_type=token_type if isinstance(token_type, str) and token_type else "Bearer",
            expires_at=int(expires_at),
        )

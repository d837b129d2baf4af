"""Spotify accounts client for the client-credentials flow (backend side).

Hey future me - this is the SERVER half of token handling. The browser-side adapter never
sees client_id/client_secret, it calls our /api/spotify/token endpoint, which uses this
client to exchange the app credentials for a short-lived bearer token.

Behaviour:
- One token is cached process-wide and handed out until (expires_in - 60s) has passed
- Concurrent requests while a fetch is in flight share that ONE fetch
- A 429 from the accounts service is retried exactly once, honoring Retry-After
  (seconds or HTTP date, capped at 5s)
"""

import asyncio
import base64
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC
from email.utils import parsedate_to_datetime

import httpx

from playlistnotes.config import SpotifySettings
from playlistnotes.domain.exceptions import ConfigurationError, ExternalServiceError
from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)

MIN_EXPIRES_SECONDS = 5


@dataclass
class ClientCredentialsToken:
    """Token as cached on the server. expires_at is epoch MILLISECONDS."""

    access_token: str
    token_type: str
    expires_at: int
    fetched_at: int

    def expires_in(self, now_ms: int) -> int:
        """Whole seconds until expiry, never negative."""
        return max(0, round((self.expires_at - now_ms) / 1000))


def parse_retry_after(header: str | None, max_seconds: float, now: float) -> float | None:
    """Parse a Retry-After header into a delay in seconds.

    Args:
        header: Raw header value (delta-seconds or HTTP date)
        max_seconds: Upper bound for the returned delay
        now: Current epoch seconds (for HTTP dates)

    Returns:
        Delay in seconds, or None if the header is missing/unparsable
    """
    if not header or not header.strip():
        return None
    value = header.strip()

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, min(seconds, max_seconds))

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)
    delta = retry_at.timestamp() - now
    if delta <= 0:
        return 0.0
    return min(delta, max_seconds)


class SpotifyCredentialsClient:
    """Exchanges app credentials for bearer tokens and caches them."""

    def __init__(
        self,
        settings: SpotifySettings,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Spotify settings (credentials, token_url, skew)
            client: Optional httpx client, defaults to the shared pool
            clock: Epoch-seconds clock, injectable for tests
            sleep: Async sleep used for Retry-After, injectable for tests
        """
        self.settings = settings
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self._cached: ClientCredentialsToken | None = None
        self._in_flight: asyncio.Task[ClientCredentialsToken] | None = None

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client()

    def _basic_auth(self) -> str:
        raw = f"{self.settings.client_id}:{self.settings.client_secret}".encode()
        return base64.b64encode(raw).decode("ascii")

    def is_cached_token_valid(self) -> bool:
        return self._cached is not None and self.now_ms() < self._cached.expires_at

    def reset(self) -> None:
        """Drop the cached token (tests, credential rotation)."""
        self._cached = None
        self._in_flight = None

    async def get_token(self) -> ClientCredentialsToken:
        """Return a valid token, fetching one if the cache is empty or stale.

        Raises:
            ConfigurationError: client_id/client_secret not configured
            ExternalServiceError: Accounts service refused or failed
        """
        if not self.settings.has_credentials:
            raise ConfigurationError("Spotify client credentials are not configured")

        if self._cached is not None and self.is_cached_token_valid():
            logger.debug(
                "spotify.token.cache_hit",
                extra={"expires_at": self._cached.expires_at},
            )
            return self._cached

        if self._in_flight is None:
            self._in_flight = asyncio.create_task(self._fetch_and_store())
            # Clear the slot once done, whoever is awaiting
            self._in_flight.add_done_callback(self._clear_in_flight)

        # shield: one cancelled request must not kill the fetch the others wait on
        return await asyncio.shield(self._in_flight)

    def _clear_in_flight(self, task: asyncio.Task[ClientCredentialsToken]) -> None:
        if self._in_flight is task:
            self._in_flight = None

    async def _fetch_and_store(self) -> ClientCredentialsToken:
        token = await self._fetch_token()
        self._cached = token
        logger.info(
            "spotify.token.fetched",
            extra={"expires_at": token.expires_at},
        )
        return token

    async def _fetch_token(self) -> ClientCredentialsToken:
        client = await self._get_client()
        headers = {
            "Authorization": f"Basic {self._basic_auth()}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        for attempt in (1, 2):
            try:
                response = await client.post(
                    self.settings.token_url,
                    headers=headers,
                    data={"grant_type": "client_credentials"},
                )
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    f"Spotify accounts service unreachable: {e}", error="spotify_unavailable"
                ) from e

            if response.is_success:
                try:
                    payload = response.json()
                except ValueError as e:
                    raise ExternalServiceError(
                        "Spotify token response is not JSON", error="invalid_response"
                    ) from e
                return self._to_token(payload)

            if response.status_code == 429 and attempt == 1:
                delay = parse_retry_after(
                    response.headers.get("retry-after"),
                    self.settings.retry_after_max_seconds,
                    self._clock(),
                )
                if delay is not None:
                    logger.warning(
                        "spotify.token.rate_limited",
                        extra={"retry_after_seconds": delay},
                    )
                    if delay > 0:
                        await self._sleep(delay)
                    continue

            raise ExternalServiceError(
                f"Spotify token exchange failed with HTTP {response.status_code}",
                status=response.status_code,
                error=self._error_code(response),
            )

        # unreachable, the second attempt always returns or raises
        raise ExternalServiceError("Spotify token exchange failed", error="spotify_error")

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return "spotify_error"
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            return payload["error"]
        return "spotify_error"

    def _to_token(self, data: dict) -> ClientCredentialsToken:
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise ExternalServiceError(
                "Spotify token response without access_token", error="invalid_response"
            )
        raw_expires_in = data.get("expires_in")
        expires_in = raw_expires_in if isinstance(raw_expires_in, (int, float)) else 0
        lifetime = max(
            MIN_EXPIRES_SECONDS, expires_in - self.settings.token_expiry_skew_seconds
        )
        now_ms = self.now_ms()
        token_type = data.get("token_type")
        return ClientCredentialsToken(
            access_token=access_token,
            token_type=token_type if isinstance(token_type, str) else "Bearer",
            expires_at=now_ms + int(lifetime * 1000),
            fetched_at=now_ms,
        )

"""Default IFetchClient implementation on top of the shared httpx pool."""

import logging
from typing import Any

import httpx

from playlistnotes.domain.ports import IFetchClient
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class HttpxFetchClient(IFetchClient):
    """GET-and-decode-JSON over httpx.

    Non-2xx responses raise httpx.HTTPStatusError (via raise_for_status), transport
    failures raise httpx.TransportError. Adapters classify both, this class never maps
    errors itself.
    """

    # Hey future me - `client` is injectable for tests (httpx.MockTransport) and for callers
    # that need their own limits. Without it we borrow the process-wide pool client.
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client()

    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Any:
        """GET ``url`` and decode the JSON body.

        Args:
            url: Absolute URL
            headers: Extra request headers (Authorization, Cache-Control...)
            cancel_token: Cancels the in-flight request when fired

        Returns:
            Decoded JSON

        Raises:
            httpx.HTTPStatusError: Non-2xx response
            httpx.TransportError: Connection/timeout problems
            ImportAbortedError: cancel_token fired
        """
        client = await self._get_client()
        request = client.get(url, headers=headers)
        if cancel_token is not None:
            response = await cancel_token.run(request)
        else:
            response = await request

        response.raise_for_status()
        logger.debug(
            "fetch.ok",
            extra={"url": url.split("?", 1)[0], "status_code": response.status_code},
        )
        return response.json()

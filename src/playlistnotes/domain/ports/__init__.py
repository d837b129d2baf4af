"""Domain ports (interfaces) for dependency inversion.

Following Ports & Adapters, these are the PORTS the import subsystem depends on.
Implementations live in the infrastructure layer (HttpxFetchClient, SpotifyAdapter,
the paged mock adapters).
"""

from abc import ABC, abstractmethod
from typing import Any

from playlistnotes.domain.dtos import ImportPage
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.providers import Provider


class IFetchClient(ABC):
    """Minimal JSON-over-HTTP client the adapters talk to.

    Injectable so tests can hand in a double and so alternate transports can be used.
    Implementations raise ``httpx.HTTPStatusError`` for non-2xx responses (or any error
    exposing the HTTP status as ``status`` / ``response.status_code``) and let transport
    errors propagate. Adapters classify both.
    """

    @abstractmethod
    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body."""
        pass


class IPlaylistAdapter(ABC):
    """Contract shared by every provider adapter.

    Hey future me - `url` identifies the playlist and drives the FIRST page, `cursor`
    drives every following page. Cursors come from the previous page and MUST be
    validated against the provider's own API before they are dereferenced.
    """

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Provider this adapter serves."""
        pass

    @abstractmethod
    async def import_playlist(
        self,
        *,
        url: str | None = None,
        cursor: str | None = None,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> ImportPage:
        """Fetch one page.

        Raises:
            AdapterError: Classified failure (see ImportErrorCode)
            ImportAbortedError: The cancel token fired before or during the call
        """
        pass

    async def prime(
        self,
        *,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> None:
        """Warm up credentials/connections ahead of a user-initiated import.

        No-op by default, only credentialed adapters have something to warm.
        """
        return None


__all__ = ["IFetchClient", "IPlaylistAdapter"]

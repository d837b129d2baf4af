"""External integrations: shared HTTP pool, JSON fetch client, Spotify accounts client."""

from playlistnotes.infrastructure.integrations.fetch_client import HttpxFetchClient
from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool
from playlistnotes.infrastructure.integrations.spotify_client import (
    ClientCredentialsToken,
    SpotifyCredentialsClient,
)

__all__ = [
    "ClientCredentialsToken",
    "HttpClientPool",
    "HttpxFetchClient",
    "SpotifyCredentialsClient",
]

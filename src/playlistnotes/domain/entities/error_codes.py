"""Import Error Codes - the symbolic taxonomy every import failure is classified into.

Hey future me - these are CODES, not exception types! Adapters classify raw
HTTP/transport failures at the point of failure and attach one of these to an
AdapterError. Everything above the adapters (session, flow, API) only forwards
the code, it never invents new ones.

CATEGORIES:

INPUT:
- ERR_UNSUPPORTED_URL: the pasted link is not a playlist/show we understand

UPSTREAM:
- ERR_PRIVATE_PLAYLIST: 401/403 after the one allowed token refresh
- ERR_NOT_FOUND: 404
- ERR_RATE_LIMITED: 429
- ERR_INVALID_RESPONSE: payload is structurally unusable (missing items, token)
- ERR_NETWORK: transport failure, including the credential endpoint
- ERR_TOKEN_EXPIRED: credential rejected and could not be renewed

PODCASTS:
- ERR_EPISODE_UNAVAILABLE: region lock (403 on tracks, 451)
- ERR_SHOW_EMPTY: show without any episodes
- ERR_PODCAST_CONTENT: episode payload we cannot turn into a track

OTHER:
- ERR_ABORTED: the caller cancelled (never attached to an AdapterError!)
- ERR_UNKNOWN: unclassified

USAGE:
    from playlistnotes.domain.entities.error_codes import (
        ImportErrorCode,
        extract_error_code,
        get_error_message,
    )

    code = extract_error_code(err) or ImportErrorCode.UNKNOWN
    message = get_error_message(code)
"""

from enum import StrEnum
from typing import Any


class ImportErrorCode(StrEnum):
    """Standardized error codes for playlist imports.

    StrEnum means the values ARE strings, so ImportErrorCode.NOT_FOUND == "ERR_NOT_FOUND".
    That keeps JSON responses and persisted error state free of enum plumbing.
    """

    UNSUPPORTED_URL = "ERR_UNSUPPORTED_URL"
    PRIVATE_PLAYLIST = "ERR_PRIVATE_PLAYLIST"
    NOT_FOUND = "ERR_NOT_FOUND"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    INVALID_RESPONSE = "ERR_INVALID_RESPONSE"
    NETWORK = "ERR_NETWORK"
    TOKEN_EXPIRED = "ERR_TOKEN_EXPIRED"
    EPISODE_UNAVAILABLE = "ERR_EPISODE_UNAVAILABLE"
    SHOW_EMPTY = "ERR_SHOW_EMPTY"
    PODCAST_CONTENT = "ERR_PODCAST_CONTENT"
    ABORTED = "ERR_ABORTED"
    UNKNOWN = "ERR_UNKNOWN"


# Transient failures - the same request may well succeed a bit later.
RETRYABLE_ERRORS: frozenset[str] = frozenset(
    {
        ImportErrorCode.RATE_LIMITED,
        ImportErrorCode.NETWORK,
        ImportErrorCode.UNKNOWN,
    }
)

# User facing messages, shown verbatim in the UI and in API error bodies.
ERROR_MESSAGES: dict[str, str] = {
    ImportErrorCode.UNSUPPORTED_URL: (
        "That URL doesn't look like a Spotify, YouTube, or SoundCloud playlist."
    ),
    ImportErrorCode.PRIVATE_PLAYLIST: "This playlist is private or unavailable.",
    ImportErrorCode.NOT_FOUND: "Playlist not found.",
    ImportErrorCode.RATE_LIMITED: "Too many requests, please try again shortly.",
    ImportErrorCode.INVALID_RESPONSE: "The service returned an unexpected response.",
    ImportErrorCode.NETWORK: "Network problem, check your connection and retry.",
    ImportErrorCode.TOKEN_EXPIRED: "Your session expired, please try again.",
    ImportErrorCode.EPISODE_UNAVAILABLE: "This episode isn't available in your region.",
    ImportErrorCode.SHOW_EMPTY: "This show doesn't have any episodes yet.",
    ImportErrorCode.PODCAST_CONTENT: "This podcast content couldn't be imported.",
    ImportErrorCode.ABORTED: "Import was cancelled.",
    ImportErrorCode.UNKNOWN: "Something went wrong. Please try again.",
}


def get_error_message(code: str | None) -> str:
    """Get the user facing message for an error code.

    Unknown or missing codes get the generic ERR_UNKNOWN message, never a KeyError.

    Args:
        code: Error code (ImportErrorCode or its string value)

    Returns:
        Human readable message
    """
    if code is None:
        return ERROR_MESSAGES[ImportErrorCode.UNKNOWN]
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[ImportErrorCode.UNKNOWN])


def is_retryable_error(code: str | None) -> bool:
    """Check whether an import failing with this code is worth retrying later."""
    if code is None:
        return True
    return code in RETRYABLE_ERRORS


# Hey future me - this looks at the `code` attribute ANY exception may carry. AdapterError
# always has one, but a test double or a wrapped error might only carry the raw string.
# Strings that aren't in the taxonomy (e.g. "HTTP_429") return None on purpose - mapping
# raw HTTP failures is the adapter's job, not the flow's.
def extract_error_code(err: Any) -> ImportErrorCode | None:
    """Extract a taxonomy code from an exception (or any object with a ``code``).

    Args:
        err: Exception or object possibly carrying a ``code`` attribute

    Returns:
        The ImportErrorCode, or None if the object carries no known code
    """
    code = getattr(err, "code", None)
    if isinstance(code, ImportErrorCode):
        return code
    if isinstance(code, str):
        try:
            return ImportErrorCode(code)
        except ValueError:
            return None
    return None

"""Domain entities."""

from playlistnotes.domain.entities.error_codes import (
    ERROR_MESSAGES,
    ImportErrorCode,
    extract_error_code,
    get_error_message,
)

__all__ = [
    "ERROR_MESSAGES",
    "ImportErrorCode",
    "extract_error_code",
    "get_error_message",
]

"""Shared logger helpers so import operations log the same way everywhere.

USAGE:
    from playlistnotes.infrastructure.observability.logger_template import (
        get_module_logger,
        log_operation,
    )

    logger = get_module_logger(__name__)

    async with log_operation(logger, "import.initial", provider="spotify"):
        page = await adapter.import_playlist(url=url)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from playlistnotes.domain.exceptions import ImportAbortedError


# Always pass __name__ so the logger hierarchy mirrors the package
# (playlistnotes.infrastructure.adapters.spotify_adapter ...).
def get_module_logger(name: str) -> logging.Logger:
    """Get logger for module with standard config.

    Args:
        name: Module name (use __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


# Yo, wrap any import step in this and you get {op}.started / {op}.completed with
# duration_ms for free. Failures log {op}.failed and RE-RAISE, nothing is swallowed.
# Cancellation is not a failure, so an ImportAbortedError logs {op}.aborted at INFO
# without a traceback.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[dict[str, Any]]:
    """Context manager for logging operation start/end with automatic timing.

    The yielded dict is merged into the completion log, so the body can report
    results (e.g. ``fields["tracks"] = len(page.tracks)``).

    Args:
        logger: Logger instance from get_module_logger()
        operation: Operation name (e.g. "import.initial", "import.next")
        **context: Additional fields to include in all three logs

    Example:
        >>> async with log_operation(logger, "import.next", provider="youtube") as fields:
        ...     page = await adapter.import_playlist(url=url, cursor=cursor)
        ...     fields["tracks"] = len(page.tracks)
    """
    start = time.monotonic()
    result_fields: dict[str, Any] = {}
    logger.debug(f"{operation}.started", extra=context)

    try:
        yield result_fields
    except ImportAbortedError:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"{operation}.aborted",
            extra={**context, "duration_ms": duration_ms},
        )
        raise
    except Exception as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise
    else:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"{operation}.completed",
            extra={**context, **result_fields, "duration_ms": duration_ms},
        )

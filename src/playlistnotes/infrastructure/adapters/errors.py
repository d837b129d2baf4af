"""Helpers shared by the adapters for classifying raw failures."""

import re
from typing import Any

import httpx

_HTTP_CODE_PATTERN = re.compile(r"^HTTP_(\d{3})$")


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def extract_http_status(err: BaseException | Any) -> int | None:
    """Best-effort HTTP status of a failure.

    Understands httpx.HTTPStatusError, objects with a ``status`` attribute or a
    ``details["status"]`` entry, anything with ``response.status_code``, and fetch-client
    doubles that only set ``code = "HTTP_429"``.
    """
    if isinstance(err, httpx.HTTPStatusError):
        return err.response.status_code

    status = _as_status(getattr(err, "status", None))
    if status is not None:
        return status

    details = getattr(err, "details", None)
    if isinstance(details, dict):
        status = _as_status(details.get("status"))
        if status is not None:
            return status

    response = getattr(err, "response", None)
    status = _as_status(getattr(response, "status_code", None))
    if status is not None:
        return status

    code = getattr(err, "code", None)
    if isinstance(code, str):
        match = _HTTP_CODE_PATTERN.match(code)
        if match:
            return int(match.group(1))
    return None

"""HTTP helper utilities shared by the HTTP based notifiers."""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import urlsplit

import aiohttp
import orjson

from ..errors import NotifierError
from .base import is_success_status

_ERROR_BODY_LIMIT = 200


def orjson_dumps(value: Any) -> str:
    """JSON serializer handed to ``aiohttp.ClientSession``."""
    return orjson.dumps(value).decode("utf-8")


def ensure_http_url(request_url: str) -> str:
    """Ensure the provided URL uses an allowed HTTP/HTTPS scheme."""
    parsed = urlsplit(request_url)
    scheme = parsed.scheme.lower()
    if scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported URL scheme: {request_url}")
    if not parsed.netloc:
        raise ValueError(f"URL missing network location: {request_url}")
    return request_url


async def post_json(
    session: aiohttp.ClientSession,
    sink: str,
    url: str,
    payload: Any,
    *,
    timeout: Optional[aiohttp.ClientTimeout] = None,
) -> int:
    """POST *payload* as JSON and raise :class:`NotifierError` unless the response is 2xx."""
    try:
        async with session.post(url, json=payload, timeout=timeout) as response:
            if is_success_status(response.status):
                return response.status
            body = await response.text()
    except asyncio.TimeoutError as exc:
        raise NotifierError(sink, f"request to {url} timed out") from exc
    except aiohttp.ClientError as exc:
        raise NotifierError(sink, f"request to {url} failed: {exc}") from exc

    raise NotifierError(sink, f"{url} answered HTTP {response.status}: {body[:_ERROR_BODY_LIMIT]}")


__all__ = ["ensure_http_url", "orjson_dumps", "post_json"]

"""Elasticsearch notifier: indexes each event as a document."""

from __future__ import annotations

from typing import Optional

import aiohttp

from ..errors import NotifierError
from ..event import OomEvent
from .base import Notifier
from .http_utils import ensure_http_url, post_json


class ElasticsearchNotifier(Notifier):
    name = "elasticsearch"

    def __init__(self, server: str, index: str, *, timeout_seconds: Optional[float] = None):
        super().__init__()
        try:
            self.server = ensure_http_url(server).rstrip("/")
        except ValueError as exc:
            raise NotifierError(self.name, f"server must have the format http://hostname:port ({exc})") from exc
        self.index = index
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds) if timeout_seconds else None

    @property
    def document_url(self) -> str:
        return f"{self.server}/{self.index}/_doc"

    async def send(self, event: OomEvent) -> None:
        await post_json(self.session, self.name, self.document_url, {"message": event.to_dict()}, timeout=self._timeout)

    def describe(self) -> str:
        return f"elasticsearch ({self.document_url})"


__all__ = ["ElasticsearchNotifier"]

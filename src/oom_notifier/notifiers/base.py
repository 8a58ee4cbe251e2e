"""Notifier interface shared by every sink."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..errors import NotifierError
from ..event import OomEvent

_HTTP_SUCCESS_RANGE = range(200, 300)


def is_success_status(status: int) -> bool:
    return status in _HTTP_SUCCESS_RANGE


class Notifier(ABC):
    """A single notification sink.

    ``send`` raises :class:`NotifierError` for every delivery failure; it never
    retries.
    """

    name = "notifier"

    def __init__(self) -> None:
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self, session: aiohttp.ClientSession) -> None:
        """Attach the dispatcher's shared HTTP session."""
        self._session = session

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise NotifierError(self.name, "notifier used without an open HTTP session")
        return self._session

    @abstractmethod
    async def send(self, event: OomEvent) -> None: ...

    async def close(self) -> None:
        self._session = None

    def describe(self) -> str:
        return self.name


__all__ = ["Notifier", "is_success_status"]

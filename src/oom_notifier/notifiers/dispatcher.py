"""Fan-out of one OOM event to every enabled notifier."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import aiohttp
import orjson

from ..errors import NotifierError
from ..event import OomEvent
from .base import Notifier
from .http_utils import orjson_dumps

logger = logging.getLogger(__name__)

UNEXPECTED_SEND_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    orjson.JSONEncodeError,
    OSError,
    ValueError,
    TypeError,
    KeyError,
    RuntimeError,
)


@dataclass
class DispatchReport:
    """Per-sink outcome of one dispatch."""

    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class NotifierDispatcher:
    """Sends events to each notifier in turn, isolating failures per notifier.

    Used as an async context manager: entering opens the single HTTP session
    shared by all sends and starts every notifier; leaving closes them.
    """

    def __init__(self, notifiers: Sequence[Notifier], *, timeout_seconds: Optional[float] = None):
        self.notifiers = list(notifiers)
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        if self._session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds) if self.timeout_seconds else aiohttp.ClientTimeout()
        self._session = aiohttp.ClientSession(timeout=timeout, json_serialize=orjson_dumps)
        for notifier in self.notifiers:
            await notifier.start(self._session)

    async def close(self) -> None:
        for notifier in self.notifiers:
            try:
                await notifier.close()
            except UNEXPECTED_SEND_ERRORS as exc:
                logger.debug("Closing %s failed: %s", notifier.name, exc)
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()

    async def __aenter__(self) -> "NotifierDispatcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def dispatch(self, event: OomEvent) -> DispatchReport:
        report = DispatchReport()
        for notifier in self.notifiers:
            logger.info("Sending event to %s", notifier.describe())
            try:
                await notifier.send(event)
            except NotifierError as exc:
                logger.error("Error while sending the oom event to the configured %s: %s", notifier.name, exc)
                report.failed.append(notifier.name)
                continue
            except UNEXPECTED_SEND_ERRORS:
                logger.exception("Unexpected failure while sending the oom event to %s", notifier.name)
                report.failed.append(notifier.name)
                continue
            logger.info("OOM event for pid %d successfully delivered to %s", event.pid, notifier.name)
            report.delivered.append(notifier.name)
        return report


__all__ = ["DispatchReport", "NotifierDispatcher"]

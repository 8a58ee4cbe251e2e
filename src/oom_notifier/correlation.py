"""Joins a pid reported by the kernel with the cached command line."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .errors import CacheContentionError
from .event import OomEvent, build_oom_event
from .process_table import ProcessTableCache

logger = logging.getLogger(__name__)

EventBuilder = Callable[[int, str], OomEvent]


class CorrelationEngine:
    """Turns a kernel-reported pid into at most one :class:`OomEvent`.

    A successful correlation consumes the cache entry, so a later OOM for a
    reused pid can never be reported with a stale command line.
    """

    def __init__(self, cache: ProcessTableCache, event_builder: EventBuilder = build_oom_event):
        self.cache = cache
        self.event_builder = event_builder

    def correlate(self, pid: int) -> Optional[OomEvent]:
        try:
            cmdline = self.cache.pop(pid)
        except CacheContentionError as exc:
            logger.error("Detected OOM for pid %d but the process table was unavailable: %s", pid, exc)
            return None

        if cmdline is None:
            logger.warning("Detected OOM for pid %d but could not obtain informations about the process", pid)
            return None

        return self.event_builder(pid, cmdline)


__all__ = ["CorrelationEngine"]

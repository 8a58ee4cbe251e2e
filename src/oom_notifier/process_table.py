"""
Process table cache and its background refresher.

The kernel log line for an OOM kill only carries the pid and the short task
name. This module keeps a bounded pid -> command line map that is refreshed
on a timer so the full command line can be recovered after the process is
gone.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional, Tuple

import psutil

from .errors import CacheContentionError, ProcessEnumerationError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0

ProcessSnapshot = List[Tuple[int, str]]


class ProcessTableCache:
    """Least-recently-used pid -> command line map guarded by a single lock.

    Every public operation acquires the lock with a bounded timeout and raises
    :class:`CacheContentionError` when it cannot.
    """

    def __init__(self, capacity: int, *, lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        if capacity < 1:
            raise ValueError(f"Process table capacity must be positive (got {capacity})")
        self._capacity = capacity
        self._lock_timeout_seconds = lock_timeout_seconds
        self._entries: "OrderedDict[int, str]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def _acquire(self, operation: str) -> None:
        if not self._lock.acquire(timeout=self._lock_timeout_seconds):
            raise CacheContentionError(
                f"Could not acquire the process table lock for {operation} within {self._lock_timeout_seconds}s"
            )

    def _put_locked(self, pid: int, cmdline: str) -> None:
        if pid in self._entries:
            self._entries.move_to_end(pid)
        self._entries[pid] = cmdline
        if len(self._entries) > self._capacity:
            evicted_pid, _ = self._entries.popitem(last=False)
            logger.debug("Process table full, evicted least recently used pid %d", evicted_pid)

    def put(self, pid: int, cmdline: str) -> None:
        """Insert or overwrite the command line for *pid*."""
        self._acquire("put")
        try:
            self._put_locked(pid, cmdline)
        finally:
            self._lock.release()

    def put_batch(self, entries: Iterable[Tuple[int, str]]) -> int:
        """Insert a whole refresh cycle while holding the lock continuously."""
        count = 0
        self._acquire("refresh batch")
        try:
            for pid, cmdline in entries:
                logger.debug("Adding/Overwriting process %d with command line: %s", pid, cmdline)
                self._put_locked(pid, cmdline)
                count += 1
        finally:
            self._lock.release()
        return count

    def get(self, pid: int) -> Optional[str]:
        self._acquire("get")
        try:
            cmdline = self._entries.get(pid)
            if cmdline is not None:
                self._entries.move_to_end(pid)
            return cmdline
        finally:
            self._lock.release()

    def pop(self, pid: int) -> Optional[str]:
        """Look up *pid* and evict it in the same critical section."""
        self._acquire("lookup-and-evict")
        try:
            return self._entries.pop(pid, None)
        finally:
            self._lock.release()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._entries


def _resolve_cmdline(proc: psutil.Process) -> str:
    try:
        return " ".join(proc.cmdline())
    except (psutil.Error, OSError) as exc:
        # Keep the pid in the table; the failure text stands in for the command line.
        return str(exc)


def snapshot_processes() -> ProcessSnapshot:
    """Enumerate live processes as ``(pid, cmdline)`` pairs."""
    logger.debug("Performing full process scan...")
    start_time = time.time()
    snapshot: ProcessSnapshot = []
    try:
        for proc in psutil.process_iter():
            snapshot.append((proc.pid, _resolve_cmdline(proc)))
    except (psutil.Error, OSError) as exc:
        raise ProcessEnumerationError(f"Could not list the processes running on the host: {exc}") from exc

    logger.debug("Full process scan completed in %.3fs, found %d processes", time.time() - start_time, len(snapshot))
    return snapshot


class ProcessTableRefresher:
    """Periodically reloads the process table cache until its stop token is set."""

    def __init__(
        self,
        cache: ProcessTableCache,
        interval_seconds: float,
        stop_event: asyncio.Event,
        scanner: Callable[[], ProcessSnapshot] = snapshot_processes,
    ):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.stop_event = stop_event
        self.scanner = scanner

    async def refresh(self) -> int:
        """Run one refresh cycle and return the number of cached processes written."""
        snapshot = await asyncio.to_thread(self.scanner)
        return self.cache.put_batch(snapshot)

    async def run(self) -> None:
        logger.info("Process table refresher started (interval: %.3fs)", self.interval_seconds)

        while not self.stop_event.is_set():
            try:
                await self.refresh()
            except ProcessEnumerationError as exc:
                logger.error("%s", exc)
            except CacheContentionError as exc:
                logger.error("Could not refresh the process table: %s", exc)

            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("Received termination signal. Exiting processes list refresher")


__all__ = [
    "ProcessSnapshot",
    "ProcessTableCache",
    "ProcessTableRefresher",
    "snapshot_processes",
]

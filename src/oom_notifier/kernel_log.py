"""
Kernel ring buffer polling and OOM line parsing.

Example kernel log entry we want to detect:

    Out of memory: Killed process 9865 (oom_trigger) total-vm:7468696kB, anon-rss:...

The watcher keeps a watermark (seconds since boot of the newest processed
entry) so that no entry is ever handled twice across poll cycles.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from .errors import KernelLogReadError, OomNotifierError
from .event import OomEvent

logger = logging.getLogger(__name__)

OOM_SIGNATURE = "out of memory:"
KMSG_PATH = Path("/dev/kmsg")
_KMSG_READ_SIZE = 8192
_DMESG_TIMEOUT_SECONDS = 10
_DMESG_LINE_RE = re.compile(r"^\[\s*(?P<timestamp>\d+\.\d+)\]\s?(?P<message>.*)$")
EVENT_HANDLING_ERRORS = (OomNotifierError, TypeError, ValueError, KeyError)


@dataclass(frozen=True)
class KernelLogEntry:
    message: str
    timestamp: Optional[float] = None

    @property
    def timestamp_from_boot(self) -> float:
        """Seconds since boot; entries without a timestamp sort as boot time."""
        return self.timestamp if self.timestamp is not None else 0.0


class KernelLogReader(Protocol):
    def read_entries(self) -> List[KernelLogEntry]: ...


class Correlator(Protocol):
    def correlate(self, pid: int) -> Optional[OomEvent]: ...


class EventSink(Protocol):
    async def dispatch(self, event: OomEvent) -> object: ...


def is_oom_message(message: str) -> bool:
    return OOM_SIGNATURE in message.lower()


def extract_pid(message: str) -> Optional[int]:
    """Return the first whitespace-delimited token made only of digits.

    Tie-break policy: the kernel's own pid field precedes any other bare
    number in an OOM line, so scanning stops at the first numeric token.
    """
    for token in message.split():
        if token.isdecimal():
            return int(token)
    return None


def parse_kmsg_record(record: str) -> Optional[KernelLogEntry]:
    """Parse one ``prio,seq,usec,flags[,...];text`` record from /dev/kmsg."""
    header, separator, body = record.partition(";")
    if not separator:
        return None
    message = body.split("\n", 1)[0]
    fields = header.split(",")
    timestamp: Optional[float] = None
    if len(fields) >= 3:
        try:
            timestamp = int(fields[2]) / 1_000_000
        except ValueError:
            timestamp = None
    return KernelLogEntry(message=message, timestamp=timestamp)


def parse_dmesg_line(line: str) -> KernelLogEntry:
    match = _DMESG_LINE_RE.match(line)
    if match is None:
        return KernelLogEntry(message=line, timestamp=None)
    return KernelLogEntry(message=match.group("message"), timestamp=float(match.group("timestamp")))


class KmsgReader:
    """Reads every record currently held in the ring buffer through /dev/kmsg."""

    def __init__(self, path: Path = KMSG_PATH):
        self.path = Path(path)

    def read_entries(self) -> List[KernelLogEntry]:
        try:
            fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            raise KernelLogReadError(f"Could not open {self.path}: {exc}") from exc

        entries: List[KernelLogEntry] = []
        try:
            while True:
                try:
                    record = os.read(fd, _KMSG_READ_SIZE)
                except BlockingIOError:
                    break
                except BrokenPipeError:
                    logger.debug("Kernel log record overwritten while reading %s", self.path)
                    continue
                except OSError as exc:
                    raise KernelLogReadError(f"Could not read {self.path}: {exc}") from exc
                if not record:
                    break
                entry = parse_kmsg_record(record.decode("utf-8", errors="replace"))
                if entry is not None:
                    entries.append(entry)
        finally:
            os.close(fd)
        return entries


class DmesgReader:
    """Reads the ring buffer through the ``dmesg`` command."""

    def __init__(self, command: Optional[List[str]] = None):
        self.command = command or ["dmesg"]

    def read_entries(self) -> List[KernelLogEntry]:
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                timeout=_DMESG_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise KernelLogReadError(f"Could not run {' '.join(self.command)}: {exc}") from exc
        if result.returncode != 0:
            raise KernelLogReadError(
                f"{' '.join(self.command)} exited with code {result.returncode}: {result.stderr.strip()}"
            )
        return [parse_dmesg_line(line) for line in result.stdout.splitlines() if line.strip()]


def open_kernel_log_reader(backend: str = "auto") -> KernelLogReader:
    if backend == "kmsg":
        return KmsgReader()
    if backend == "dmesg":
        return DmesgReader()
    if backend == "auto":
        if os.access(KMSG_PATH, os.R_OK):
            return KmsgReader()
        logger.info("%s is not readable, falling back to dmesg", KMSG_PATH)
        return DmesgReader()
    raise ValueError(f"Unknown kernel log backend: {backend}")


class KernelLogWatcher:
    """Polls the kernel log, correlates OOM kills and dispatches the resulting events."""

    def __init__(
        self,
        reader: KernelLogReader,
        correlator: Correlator,
        dispatcher: EventSink,
        interval_seconds: float,
        stop_event: asyncio.Event,
        *,
        watermark: float = 0.0,
        retry_misses: bool = False,
    ):
        self.reader = reader
        self.correlator = correlator
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self.stop_event = stop_event
        self.watermark = watermark
        self.retry_misses = retry_misses
        self._deferred_pids: List[int] = []

    @property
    def deferred_pids(self) -> List[int]:
        return list(self._deferred_pids)

    async def _emit(self, pid: int, events: List[OomEvent], *, allow_retry: bool) -> None:
        event = self.correlator.correlate(pid)
        if event is None:
            if allow_retry and self.retry_misses:
                logger.info("Will retry correlation for pid %d on the next kernel log cycle", pid)
                self._deferred_pids.append(pid)
            return
        logger.info("New OOM event: %s", event.to_json())
        await self.dispatcher.dispatch(event)
        events.append(event)

    async def _emit_guarded(self, pid: int, events: List[OomEvent], *, allow_retry: bool) -> None:
        try:
            await self._emit(pid, events, allow_retry=allow_retry)
        except EVENT_HANDLING_ERRORS:
            logger.exception("Could not handle the OOM event for pid %d, continuing with the next entry", pid)

    async def _retry_deferred(self, events: List[OomEvent]) -> None:
        pending, self._deferred_pids = self._deferred_pids, []
        for pid in pending:
            await self._emit_guarded(pid, events, allow_retry=False)

    async def poll(self) -> List[OomEvent]:
        """Run one poll cycle and return the events it produced."""
        events: List[OomEvent] = []
        if self._deferred_pids:
            await self._retry_deferred(events)

        entries = await asyncio.to_thread(self.reader.read_entries)
        fresh = []
        for entry in entries:
            if entry.timestamp_from_boot <= self.watermark:
                continue
            fresh.append(entry)
        fresh.sort(key=lambda item: item.timestamp_from_boot)

        for entry in fresh:
            try:
                logger.debug("New log entry from the kernel: %s", entry.message)
                if not is_oom_message(entry.message):
                    continue
                pid = extract_pid(entry.message)
                if pid is None:
                    logger.debug("OOM line without a numeric pid token: %s", entry.message)
                    continue
                await self._emit_guarded(pid, events, allow_retry=True)
            finally:
                self.watermark = entry.timestamp_from_boot
        return events

    async def run(self) -> None:
        logger.info("Kernel log watcher started (interval: %.3fs, watermark: %.6fs)", self.interval_seconds, self.watermark)

        while not self.stop_event.is_set():
            try:
                await self.poll()
            except KernelLogReadError as exc:
                logger.error("Could not get the log entries from the kernel ring buffer: %s", exc)

            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("Received termination signal. Exiting kernel log refresher")


__all__ = [
    "DmesgReader",
    "KernelLogEntry",
    "KernelLogReader",
    "KernelLogWatcher",
    "KmsgReader",
    "OOM_SIGNATURE",
    "extract_pid",
    "is_oom_message",
    "open_kernel_log_reader",
    "parse_dmesg_line",
    "parse_kmsg_record",
]

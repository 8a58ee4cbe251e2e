"""The structured OOM event handed to every notifier."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict

import orjson

from .system_info import read_hostname, read_kernel_version

EVENT_FIELDS = ("pid", "cmdline", "hostname", "kernel", "time")


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class OomEvent:
    """One detected OOM kill, joined with the killed process's command line."""

    pid: int
    cmdline: str
    hostname: str
    kernel_version: str
    time_millis: int

    def to_dict(self) -> Dict[str, str]:
        """Wire form: every field rendered as a string."""
        return {
            "pid": str(self.pid),
            "cmdline": self.cmdline,
            "hostname": self.hostname,
            "kernel": self.kernel_version,
            "time": str(self.time_millis),
        }

    def to_json(self) -> str:
        return orjson.dumps(self.to_dict()).decode("utf-8")

    def summary(self) -> str:
        """Short human-readable rendering for chat notifications."""
        return (
            f"Process {self.cmdline} (pid {self.pid}) was killed by the OOM killer "
            f"on host {self.hostname} (kernel: {self.kernel_version})"
        )


def json_safe_text(value: str) -> str:
    """Replace lone surrogates (undecodable argv bytes from psutil) with U+FFFD."""
    try:
        raw = value.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        raw = value.encode("utf-8", "surrogatepass")
    return raw.decode("utf-8", "replace")


def build_oom_event(
    pid: int,
    cmdline: str,
    *,
    hostname_reader: Callable[[], str] = read_hostname,
    kernel_reader: Callable[[], str] = read_kernel_version,
    clock: Callable[[], int] = epoch_millis,
) -> OomEvent:
    return OomEvent(
        pid=pid,
        cmdline=json_safe_text(cmdline),
        hostname=json_safe_text(hostname_reader()),
        kernel_version=json_safe_text(kernel_reader()),
        time_millis=clock(),
    )


__all__ = ["EVENT_FIELDS", "OomEvent", "build_oom_event", "epoch_millis", "json_safe_text"]

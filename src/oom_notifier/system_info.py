"""Readers for the /proc files the notifier depends on."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

from .errors import StartupError, SystemInfoError

logger = logging.getLogger(__name__)

PID_MAX_PATH = Path("/proc/sys/kernel/pid_max")
UPTIME_PATH = Path("/proc/uptime")
HOSTNAME_PATH = Path("/proc/sys/kernel/hostname")
KERNEL_VERSION_PATH = Path("/proc/version")
UNKNOWN = "N/A"

PathLike = Union[str, Path]


def _read_text(path: PathLike) -> str:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise SystemInfoError(str(path), reason=str(exc)) from exc


def read_pid_max(path: PathLike = PID_MAX_PATH) -> int:
    """Return the kernel's maximum pid value.

    The process table cache is sized from this value, so any failure here is
    fatal and raised as :class:`StartupError`.
    """
    try:
        content = _read_text(path)
    except SystemInfoError as exc:
        raise StartupError(f"Could not determine the pid_max of the system: {exc}") from exc

    raw = content.strip()
    try:
        pid_max = int(raw)
    except ValueError as exc:
        raise StartupError(f"Could not determine the pid_max of the system: {path} contains {raw!r}") from exc
    if pid_max < 1:
        raise StartupError(f"Could not determine the pid_max of the system: {path} contains {raw!r}")
    return pid_max


def read_uptime(path: PathLike = UPTIME_PATH) -> float:
    """Return seconds since boot from the first field of /proc/uptime."""
    content = _read_text(path)
    fields = content.split()
    if not fields:
        raise SystemInfoError(str(path), reason="file is empty")
    try:
        return float(fields[0])
    except ValueError as exc:
        raise SystemInfoError(str(path), reason=f"unexpected content {fields[0]!r}") from exc


def read_hostname(path: PathLike = HOSTNAME_PATH) -> str:
    hostname = os.getenv("HOSTNAME")
    if hostname:
        return hostname
    try:
        return _read_text(path).strip()
    except SystemInfoError as exc:
        logger.error("Could not read %s to obtain the hostname: %s", path, exc.reason)
        return UNKNOWN


def read_kernel_version(path: PathLike = KERNEL_VERSION_PATH) -> str:
    try:
        return _read_text(path).strip()
    except SystemInfoError as exc:
        logger.error("Could not read %s to obtain the kernel version: %s", path, exc.reason)
        return UNKNOWN


__all__ = [
    "UNKNOWN",
    "read_hostname",
    "read_kernel_version",
    "read_pid_max",
    "read_uptime",
]

"""Common error types used across the notifier."""

from __future__ import annotations


class OomNotifierError(RuntimeError):
    """Base exception for oom-notifier failures."""


class StartupError(OomNotifierError):
    """Raised when the service cannot be brought up at all."""


class SystemInfoError(OomNotifierError):
    """Raised when a /proc system file cannot be read or parsed."""

    def __init__(self, path: str, *, reason: str) -> None:
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason


class ProcessEnumerationError(OomNotifierError):
    """Raised when the live process list cannot be obtained."""


class KernelLogReadError(OomNotifierError):
    """Raised when the kernel ring buffer cannot be read."""


class CacheContentionError(OomNotifierError):
    """Raised when the process table lock cannot be acquired in time."""


class NotifierError(OomNotifierError):
    """Raised when a notification sink fails to deliver an event."""

    def __init__(self, sink: str, message: str) -> None:
        super().__init__(f"{sink}: {message}")
        self.sink = sink


__all__ = [
    "CacheContentionError",
    "KernelLogReadError",
    "NotifierError",
    "OomNotifierError",
    "ProcessEnumerationError",
    "StartupError",
    "SystemInfoError",
]

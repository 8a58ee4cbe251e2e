"""Signal-driven cooperative shutdown for the two pollers."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Iterable, Tuple

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Owns one stop token per poller and sets both on SIGINT/SIGTERM.

    Each poller receives its own token at construction and checks it at the
    top of its loop; nothing is cancelled mid-cycle.
    """

    def __init__(self) -> None:
        self.refresher = asyncio.Event()
        self.watcher = asyncio.Event()
        self._installed: list[signal.Signals] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def tokens(self) -> Tuple[asyncio.Event, asyncio.Event]:
        return self.refresher, self.watcher

    @property
    def shutdown_requested(self) -> bool:
        return self.refresher.is_set() and self.watcher.is_set()

    def request_shutdown(self, reason: str = "requested") -> None:
        if not self.shutdown_requested:
            logger.info("Shutdown %s; stopping pollers after their current cycle", reason)
        self.refresher.set()
        self.watcher.set()

    def _on_signal(self, signum: signal.Signals) -> None:
        self.request_shutdown(f"signal {signum.name} received")

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[signal.Signals] = TERMINATION_SIGNALS,
    ) -> None:
        self._loop = loop
        for signum in signals:
            try:
                loop.add_signal_handler(signum, self._on_signal, signum)
            except (NotImplementedError, RuntimeError, ValueError) as exc:
                logger.warning("Could not install the %s handler: %s", signum.name, exc)
                continue
            self._installed.append(signum)

    def remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for signum in self._installed:
            self._loop.remove_signal_handler(signum)
        self._installed = []
        self._loop = None


__all__ = ["ShutdownCoordinator", "TERMINATION_SIGNALS"]

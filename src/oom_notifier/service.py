"""Wires the process table refresher, kernel log watcher and notifiers together."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .config import Settings, resolve_sink_configs
from .correlation import CorrelationEngine
from .errors import SystemInfoError
from .kernel_log import KernelLogReader, KernelLogWatcher, open_kernel_log_reader
from .notifiers import NotifierDispatcher, build_notifiers
from .process_table import ProcessTableCache, ProcessTableRefresher
from .shutdown import ShutdownCoordinator
from .system_info import read_pid_max, read_uptime

logger = logging.getLogger(__name__)


class OomNotifierService:
    """One daemon run: two pollers sharing the process table cache."""

    def __init__(
        self,
        settings: Settings,
        *,
        pid_max_reader: Callable[[], int] = read_pid_max,
        uptime_reader: Callable[[], float] = read_uptime,
        reader: Optional[KernelLogReader] = None,
        dispatcher: Optional[NotifierDispatcher] = None,
        shutdown: Optional[ShutdownCoordinator] = None,
    ):
        self.settings = settings
        # StartupError propagates to the caller.
        pid_max = pid_max_reader()
        logger.info("pid_max of the system is %d", pid_max)

        self.cache = ProcessTableCache(pid_max)
        self.shutdown = shutdown or ShutdownCoordinator()
        self.correlator = CorrelationEngine(self.cache)
        self.reader = reader or open_kernel_log_reader(settings.kernel_log_backend)
        if dispatcher is None:
            notifiers = build_notifiers(resolve_sink_configs(settings), timeout_seconds=settings.notifier_timeout_seconds)
            dispatcher = NotifierDispatcher(notifiers, timeout_seconds=settings.notifier_timeout_seconds)
        self.dispatcher = dispatcher

        self.refresher = ProcessTableRefresher(
            self.cache,
            settings.process_refresh_seconds,
            self.shutdown.refresher,
        )
        self.watcher = KernelLogWatcher(
            self.reader,
            self.correlator,
            self.dispatcher,
            settings.kernel_log_refresh_seconds,
            self.shutdown.watcher,
            watermark=self._initial_watermark(uptime_reader),
            retry_misses=settings.retry_misses,
        )

    @staticmethod
    def _initial_watermark(uptime_reader: Callable[[], float]) -> float:
        try:
            uptime = uptime_reader()
        except SystemInfoError as exc:
            logger.error("Could not determine the machine uptime: %s", exc)
            return 0.0
        logger.info("Machine uptime is %.3fs", uptime)
        return uptime

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """Run both pollers until each has observed its stop token."""
        if install_signal_handlers:
            self.shutdown.install_signal_handlers(asyncio.get_running_loop())
        try:
            async with self.dispatcher:
                await asyncio.gather(self.refresher.run(), self.watcher.run())
        finally:
            self.shutdown.remove_signal_handlers()
        logger.info("All pollers stopped")


__all__ = ["OomNotifierService"]

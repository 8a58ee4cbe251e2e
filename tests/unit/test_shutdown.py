import asyncio
import os
import signal

import pytest

from oom_notifier.shutdown import ShutdownCoordinator


def test_request_shutdown_sets_both_tokens():
    coordinator = ShutdownCoordinator()

    assert not coordinator.refresher.is_set()
    coordinator.request_shutdown()

    assert coordinator.refresher.is_set()
    assert coordinator.watcher.is_set()
    assert coordinator.shutdown_requested


def test_tokens_are_independent_objects():
    coordinator = ShutdownCoordinator()
    refresher, watcher = coordinator.tokens

    assert refresher is not watcher


@pytest.mark.asyncio
async def test_sigterm_sets_both_tokens():
    coordinator = ShutdownCoordinator()
    coordinator.install_signal_handlers(asyncio.get_running_loop(), [signal.SIGUSR1])
    try:
        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.wait_for(coordinator.watcher.wait(), timeout=1)
    finally:
        coordinator.remove_signal_handlers()

    assert coordinator.refresher.is_set()

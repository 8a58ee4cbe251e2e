"""End-to-end tests for OomNotifierService and the CLI entry point."""

import asyncio
import logging

import pytest

from oom_notifier import cli
from oom_notifier.config import Settings
from oom_notifier.errors import StartupError, SystemInfoError
from oom_notifier.service import OomNotifierService
from tests.helpers.oom_fakes import FakeKernelLog, RecordingDispatcher

OOM_LINE = "Out of memory: Killed process 4242 (stress) total-vm:7468696kB"


def _service(log, dispatcher, **kwargs):
    settings = Settings(process_refresh_ms=1, kernel_log_refresh_ms=1)
    return OomNotifierService(
        settings,
        pid_max_reader=lambda: 32768,
        uptime_reader=lambda: 100.0,
        reader=log,
        dispatcher=dispatcher,
        **kwargs,
    )


def test_cache_is_sized_from_pid_max():
    service = _service(FakeKernelLog(), RecordingDispatcher())

    assert service.cache.capacity == 32768
    assert service.watcher.watermark == 100.0


def test_pid_max_failure_is_fatal():
    def broken():
        raise StartupError("Could not determine the pid_max of the system")

    with pytest.raises(StartupError):
        OomNotifierService(Settings(), pid_max_reader=broken, reader=FakeKernelLog(), dispatcher=RecordingDispatcher())


def test_uptime_failure_starts_watermark_at_zero(caplog):
    def broken():
        raise SystemInfoError("/proc/uptime", reason="missing")

    with caplog.at_level(logging.ERROR):
        service = OomNotifierService(
            Settings(),
            pid_max_reader=lambda: 10,
            uptime_reader=broken,
            reader=FakeKernelLog(),
            dispatcher=RecordingDispatcher(),
        )

    assert service.watcher.watermark == 0.0
    assert any("uptime" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_run_correlates_and_stops_on_shutdown():
    log = FakeKernelLog()
    dispatcher = RecordingDispatcher()
    service = _service(log, dispatcher)
    service.refresher.scanner = lambda: [(4242, "stress --vm 8 --vm-bytes 2G")]

    task = asyncio.create_task(service.run(install_signal_handlers=False))
    while len(service.cache) == 0:
        await asyncio.sleep(0.001)
    log.add(OOM_LINE, 150.0)
    while not dispatcher.events:
        await asyncio.sleep(0.001)
    service.shutdown.request_shutdown()
    await asyncio.wait_for(task, timeout=2)

    assert [event.cmdline for event in dispatcher.events] == ["stress --vm 8 --vm-bytes 2G"]
    assert service.watcher.watermark == 150.0


def test_cli_returns_1_on_fatal_startup(monkeypatch):
    def broken(*args, **kwargs):
        raise StartupError("Could not determine the pid_max of the system")

    monkeypatch.setattr(cli, "OomNotifierService", broken)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    assert cli.main(["--process-refresh", "1000"]) == 1


def test_cli_passes_flags_to_settings(monkeypatch):
    captured = {}

    class FakeService:
        def __init__(self, settings):
            captured["settings"] = settings

        async def run(self):
            return None

    monkeypatch.setattr(cli, "OomNotifierService", FakeService)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    code = cli.main(["--syslog-proto", "unix", "--kafka-brokers", "b1:9092,b2:9092", "--kafka-topic", "oom", "--retry-misses"])

    settings = captured["settings"]
    assert code == 0
    assert settings.syslog_proto == "unix"
    assert settings.kafka_brokers == ("b1:9092", "b2:9092")
    assert settings.retry_misses is True
    assert settings.process_refresh_ms == 5000


def test_cli_rejects_invalid_configuration(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    assert cli.main(["--notifier-timeout", "-1"]) == 2


@pytest.mark.parametrize(
    "argv, env_value, expected",
    [
        ([], "/var/log/oom-notifier/env.log", "/var/log/oom-notifier/env.log"),
        (["--log-file", "/tmp/cli.log"], "/var/log/oom-notifier/env.log", "/tmp/cli.log"),
        ([], None, None),
    ],
)
def test_cli_log_file_comes_from_settings(monkeypatch, argv, env_value, expected):
    calls = []

    class FakeService:
        def __init__(self, settings):
            pass

        async def run(self):
            return None

    if env_value is not None:
        monkeypatch.setenv("OOM_NOTIFIER_LOG_FILE", env_value)
    monkeypatch.setattr(cli, "OomNotifierService", FakeService)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: calls.append(args))

    assert cli.main(argv) == 0

    file_calls = [args[0] for args in calls if args]
    assert file_calls == ([expected] if expected else [])

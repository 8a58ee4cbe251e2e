"""Tests for ProcessTableCache, snapshot_processes and ProcessTableRefresher."""

import asyncio
import logging
import threading

import psutil
import pytest

from oom_notifier import process_table
from oom_notifier.errors import CacheContentionError, ProcessEnumerationError
from oom_notifier.process_table import ProcessTableCache, ProcessTableRefresher, snapshot_processes


def test_put_overwrites_existing_value():
    cache = ProcessTableCache(4)
    cache.put(200, "nginx: master")
    cache.put(200, "nginx: worker")

    assert cache.get(200) == "nginx: worker"
    assert len(cache) == 1


def test_capacity_evicts_least_recently_used_first():
    cache = ProcessTableCache(2)
    cache.put(1, "init")
    cache.put(2, "sshd")
    cache.get(1)
    cache.put(3, "bash")

    assert len(cache) == 2
    assert 2 not in cache
    assert cache.get(1) == "init"
    assert cache.get(3) == "bash"


def test_overwrite_refreshes_recency():
    cache = ProcessTableCache(2)
    cache.put(1, "a")
    cache.put(2, "b")
    cache.put(1, "a2")
    cache.put(3, "c")

    assert 2 not in cache
    assert cache.get(1) == "a2"


def test_batch_never_exceeds_capacity():
    cache = ProcessTableCache(3)
    written = cache.put_batch((pid, f"proc-{pid}") for pid in range(10))

    assert written == 10
    assert len(cache) == 3
    assert [pid for pid in range(10) if pid in cache] == [7, 8, 9]


def test_pop_is_one_shot():
    cache = ProcessTableCache(4)
    cache.put(200, "nginx: worker")

    assert cache.pop(200) == "nginx: worker"
    assert cache.pop(200) is None
    assert 200 not in cache


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ProcessTableCache(0)


def test_lock_contention_raises():
    cache = ProcessTableCache(4, lock_timeout_seconds=0.01)
    cache._lock.acquire()
    try:
        with pytest.raises(CacheContentionError):
            cache.pop(1)
        with pytest.raises(CacheContentionError):
            cache.put_batch([(1, "x")])
    finally:
        cache._lock.release()


def test_batch_holds_lock_for_whole_batch():
    cache = ProcessTableCache(8)
    observed = []

    def entries():
        for pid in range(3):
            observed.append(cache._lock.locked())
            yield pid, str(pid)

    cache.put_batch(entries())

    assert observed == [True, True, True]
    assert not cache._lock.locked()


class _FakeProc:
    def __init__(self, pid, cmdline=None, error=None):
        self.pid = pid
        self._cmdline = cmdline
        self._error = error

    def cmdline(self):
        if self._error is not None:
            raise self._error
        return self._cmdline


def test_snapshot_substitutes_error_text_for_unreadable_cmdline(monkeypatch):
    denied = psutil.AccessDenied(pid=7, name="secret")
    procs = [
        _FakeProc(1, ["/sbin/init", "splash"]),
        _FakeProc(7, error=denied),
        _FakeProc(9, []),
    ]
    monkeypatch.setattr(process_table.psutil, "process_iter", lambda: iter(procs))

    snapshot = snapshot_processes()

    assert snapshot == [(1, "/sbin/init splash"), (7, str(denied)), (9, "")]


def test_snapshot_wraps_enumeration_failure(monkeypatch):
    def broken_iter():
        raise PermissionError("no /proc access")

    monkeypatch.setattr(process_table.psutil, "process_iter", broken_iter)

    with pytest.raises(ProcessEnumerationError):
        snapshot_processes()


@pytest.mark.asyncio
async def test_refresh_writes_snapshot_to_cache():
    cache = ProcessTableCache(16)
    refresher = ProcessTableRefresher(cache, 0, asyncio.Event(), scanner=lambda: [(10, "redis-server"), (11, "python app.py")])

    written = await refresher.refresh()

    assert written == 2
    assert cache.get(10) == "redis-server"


@pytest.mark.asyncio
async def test_run_exits_when_stop_token_set():
    stop = asyncio.Event()
    cache = ProcessTableCache(16)
    calls = []

    def scanner():
        calls.append("scan")
        return [(1, "init")]

    refresher = ProcessTableRefresher(cache, 0.01, stop, scanner=scanner)
    task = asyncio.create_task(refresher.run())
    while not calls:
        await asyncio.sleep(0)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert calls
    assert cache.get(1) == "init"


@pytest.mark.asyncio
async def test_run_does_not_start_a_cycle_once_stopped():
    stop = asyncio.Event()
    stop.set()
    calls = []
    refresher = ProcessTableRefresher(ProcessTableCache(4), 0, stop, scanner=lambda: calls.append("scan") or [])

    await refresher.run()

    assert calls == []


@pytest.mark.asyncio
async def test_run_logs_enumeration_failure_and_continues(caplog):
    stop = asyncio.Event()
    cache = ProcessTableCache(16)
    calls = []

    def scanner():
        calls.append("scan")
        if len(calls) == 1:
            raise ProcessEnumerationError("Could not list the processes running on the host: boom")
        stop.set()
        return [(5, "cron")]

    refresher = ProcessTableRefresher(cache, 0, stop, scanner=scanner)
    with caplog.at_level(logging.ERROR):
        await asyncio.wait_for(refresher.run(), timeout=1)

    assert calls == ["scan", "scan"]
    assert cache.get(5) == "cron"
    assert any("Could not list the processes" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_run_survives_lock_contention(caplog):
    stop = asyncio.Event()
    cache = ProcessTableCache(16, lock_timeout_seconds=0.01)
    holder = threading.Lock()
    calls = []

    def scanner():
        calls.append("scan")
        if len(calls) == 1:
            cache._lock.acquire()
            holder.acquire()
        else:
            if holder.locked():
                holder.release()
                cache._lock.release()
            stop.set()
        return [(len(calls), "proc")]

    refresher = ProcessTableRefresher(cache, 0, stop, scanner=scanner)
    with caplog.at_level(logging.ERROR):
        await asyncio.wait_for(refresher.run(), timeout=1)

    assert calls == ["scan", "scan"]
    assert cache.get(2) == "proc"
    assert any("Could not refresh the process table" in record.message for record in caplog.records)

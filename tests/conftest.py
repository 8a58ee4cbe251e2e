"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

from oom_notifier.event import OomEvent
from tests.helpers.oom_fakes import FakeKernelLog, RecordingDispatcher, make_event


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for name in list(os.environ):
        if name.startswith("OOM_NOTIFIER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOSTNAME", "host-a")


@pytest.fixture
def fake_kernel_log() -> FakeKernelLog:
    return FakeKernelLog()


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def event() -> OomEvent:
    return make_event()

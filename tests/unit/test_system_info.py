import logging

import pytest

from oom_notifier.errors import StartupError, SystemInfoError
from oom_notifier.system_info import UNKNOWN, read_hostname, read_kernel_version, read_pid_max, read_uptime


def test_pid_max_parses_trailing_newline(tmp_path):
    path = tmp_path / "pid_max"
    path.write_text("4194304\n")

    assert read_pid_max(path) == 4194304


@pytest.mark.parametrize("content", ["unlimited\n", "", "0\n"])
def test_pid_max_unusable_content_is_fatal(tmp_path, content):
    path = tmp_path / "pid_max"
    path.write_text(content)

    with pytest.raises(StartupError):
        read_pid_max(path)


def test_pid_max_missing_file_is_fatal(tmp_path):
    with pytest.raises(StartupError):
        read_pid_max(tmp_path / "missing")


def test_uptime_reads_first_field(tmp_path):
    path = tmp_path / "uptime"
    path.write_text("350735.47 234388.90\n")

    assert read_uptime(path) == pytest.approx(350735.47)


def test_uptime_errors(tmp_path):
    path = tmp_path / "uptime"
    path.write_text("")
    with pytest.raises(SystemInfoError):
        read_uptime(path)
    with pytest.raises(SystemInfoError):
        read_uptime(tmp_path / "missing")


def test_hostname_prefers_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("HOSTNAME", "from-env")

    assert read_hostname(tmp_path / "missing") == "from-env"


def test_hostname_falls_back_to_proc(tmp_path, monkeypatch):
    monkeypatch.delenv("HOSTNAME", raising=False)
    path = tmp_path / "hostname"
    path.write_text("db-01\n")

    assert read_hostname(path) == "db-01"


def test_hostname_unreadable(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv("HOSTNAME", raising=False)

    with caplog.at_level(logging.ERROR):
        assert read_hostname(tmp_path / "missing") == UNKNOWN
    assert "hostname" in caplog.records[0].message


def test_kernel_version(tmp_path):
    path = tmp_path / "version"
    path.write_text("Linux version 6.1.0-18-amd64 (debian-kernel@lists.debian.org)\n")

    assert read_kernel_version(path) == "Linux version 6.1.0-18-amd64 (debian-kernel@lists.debian.org)"
    assert read_kernel_version(tmp_path / "missing") == UNKNOWN

"""Syslog notifier over a unix socket, TCP or UDP."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import socket
import sys
import time
from typing import Tuple, Union

from ..errors import NotifierError
from ..event import OomEvent
from .base import Notifier

logger = logging.getLogger(__name__)

SYSLOG_UNIX_SOCKET = "/dev/log"
SYSLOG_TAG = "oom-notifier"

SyslogAddress = Union[str, Tuple[str, int]]


def parse_server_address(server: str) -> Tuple[str, int]:
    """Split ``hostname:port`` into its parts."""
    host, separator, port = server.strip().rpartition(":")
    if not separator or not host or not port.isdecimal():
        raise NotifierError("syslog", f"syslog server must have the form hostname:port (got {server!r})")
    return host.strip("[]"), int(port)


class _StrictSysLogHandler(logging.handlers.SysLogHandler):
    """SysLogHandler that surfaces send failures instead of printing them."""

    def handleError(self, record: logging.LogRecord) -> None:
        exc = sys.exc_info()[1]
        raise NotifierError("syslog", f"could not write the syslog record: {exc}") from exc


class _Rfc3164Formatter(logging.Formatter):
    """Prepends the RFC 3164 ``Mmm dd hh:mm:ss [hostname] tag[pid]:`` header."""

    def __init__(self, hostname: str = ""):
        host = f"{hostname} " if hostname else ""
        super().__init__(f"%(asctime)s {host}{SYSLOG_TAG}[%(process)d]: %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = time.localtime(record.created)
        return f"{time.strftime('%b', stamp)} {stamp.tm_mday:2d} {time.strftime('%H:%M:%S', stamp)}"


class SyslogNotifier(Notifier):
    """Writes one RFC 3164 record per event, facility ``user`` and severity ``err``."""

    name = "syslog"

    def __init__(self, protocol: str, server: str = ""):
        super().__init__()
        self.protocol = protocol
        self.server = server
        self.address: SyslogAddress
        if protocol == "unix":
            self.address = SYSLOG_UNIX_SOCKET
            self.socktype = socket.SOCK_DGRAM
        elif protocol in ("tcp", "udp"):
            self.address = parse_server_address(server)
            self.socktype = socket.SOCK_STREAM if protocol == "tcp" else socket.SOCK_DGRAM
        else:
            raise NotifierError(self.name, f"invalid configuration for protocol passed to the syslog notifier: {protocol!r}")

    def _open_handler(self) -> logging.handlers.SysLogHandler:
        kwargs = {"address": self.address, "facility": logging.handlers.SysLogHandler.LOG_USER}
        if self.protocol != "unix":
            kwargs["socktype"] = self.socktype
        try:
            handler = _StrictSysLogHandler(**kwargs)
        except OSError as exc:
            raise NotifierError(self.name, f"could not connect to syslog at {self.address}: {exc}") from exc
        # The local daemon stamps its own hostname on /dev/log records.
        handler.setFormatter(_Rfc3164Formatter("" if self.protocol == "unix" else socket.gethostname()))
        if self.protocol == "tcp":
            # Stream transports need an explicit record terminator.
            handler.append_nul = False
        return handler

    def _write(self, message: str) -> None:
        handler = self._open_handler()
        try:
            if self.protocol == "tcp":
                message = message + "\n"
            record = logging.LogRecord(
                name=SYSLOG_TAG,
                level=logging.ERROR,
                pathname=__file__,
                lineno=0,
                msg=message,
                args=None,
                exc_info=None,
            )
            handler.emit(record)
        finally:
            handler.close()

    async def send(self, event: OomEvent) -> None:
        await asyncio.to_thread(self._write, event.to_json())

    def describe(self) -> str:
        if self.protocol == "unix":
            return f"syslog (unix {SYSLOG_UNIX_SOCKET})"
        return f"syslog ({self.protocol} {self.server})"


__all__ = ["SyslogNotifier", "parse_server_address"]

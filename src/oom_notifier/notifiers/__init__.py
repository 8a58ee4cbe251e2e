"""Notification sinks and the dispatcher that fans events out to them."""

from .base import Notifier
from .dispatcher import DispatchReport, NotifierDispatcher
from .elasticsearch import ElasticsearchNotifier
from .factory import build_notifier, build_notifiers
from .kafka import KafkaNotifier
from .slack import SlackNotifier
from .syslog import SyslogNotifier

__all__ = [
    "DispatchReport",
    "ElasticsearchNotifier",
    "KafkaNotifier",
    "Notifier",
    "NotifierDispatcher",
    "SlackNotifier",
    "SyslogNotifier",
    "build_notifier",
    "build_notifiers",
]

"""Maps validated sink configs to notifier instances."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config.sinks import (
    ElasticsearchSinkConfig,
    KafkaSinkConfig,
    SinkConfig,
    SlackSinkConfig,
    SyslogSinkConfig,
)
from ..errors import NotifierError
from .base import Notifier
from .elasticsearch import ElasticsearchNotifier
from .kafka import KafkaNotifier
from .slack import SlackNotifier
from .syslog import SyslogNotifier

logger = logging.getLogger(__name__)


def build_notifier(config: SinkConfig, *, timeout_seconds: Optional[float] = None) -> Notifier:
    if isinstance(config, SyslogSinkConfig):
        return SyslogNotifier(config.protocol, config.server)
    if isinstance(config, ElasticsearchSinkConfig):
        return ElasticsearchNotifier(config.server, config.index, timeout_seconds=timeout_seconds)
    if isinstance(config, KafkaSinkConfig):
        return KafkaNotifier(config.brokers, config.topic, timeout_seconds=timeout_seconds)
    if isinstance(config, SlackSinkConfig):
        return SlackNotifier(config.webhook, config.channel, timeout_seconds=timeout_seconds)
    raise TypeError(f"Unsupported sink config: {config!r}")


def build_notifiers(configs: Sequence[SinkConfig], *, timeout_seconds: Optional[float] = None) -> List[Notifier]:
    """Instantiate every sink; a sink whose settings are unusable is logged and left out."""
    notifiers: List[Notifier] = []
    for config in configs:
        try:
            notifier = build_notifier(config, timeout_seconds=timeout_seconds)
        except NotifierError as exc:
            logger.warning("Notifier disabled: %s", exc)
            continue
        logger.info("Notifier enabled: %s", notifier.describe())
        notifiers.append(notifier)
    return notifiers


__all__ = ["build_notifier", "build_notifiers"]

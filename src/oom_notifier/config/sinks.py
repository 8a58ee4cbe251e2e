"""Validated notification sink configurations.

Each sink kind has its own frozen config variant. ``resolve_sink_configs``
turns the flat :class:`Settings` into the list of sinks that are fully
configured, once, at startup. The dispatcher iterates that list without
re-checking any field per event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Union

from .settings import Settings

logger = logging.getLogger(__name__)

SYSLOG_PROTOCOLS = ("unix", "tcp", "udp")


@dataclass(frozen=True)
class SyslogSinkConfig:
    protocol: str
    server: str = ""


@dataclass(frozen=True)
class ElasticsearchSinkConfig:
    server: str
    index: str


@dataclass(frozen=True)
class KafkaSinkConfig:
    brokers: tuple[str, ...]
    topic: str


@dataclass(frozen=True)
class SlackSinkConfig:
    webhook: str
    channel: str


SinkConfig = Union[SyslogSinkConfig, ElasticsearchSinkConfig, KafkaSinkConfig, SlackSinkConfig]


def _warn_partial(sink: str, present: List[str], missing: List[str]) -> None:
    logger.warning(
        "%s notifier is partially configured (set: %s; missing: %s); it will not be used",
        sink,
        ", ".join(present),
        ", ".join(missing),
    )


def _resolve_pair(sink: str, fields: dict) -> bool:
    present = [name for name, value in fields.items() if value]
    if len(present) == len(fields):
        return True
    if present:
        missing = [name for name in fields if name not in present]
        _warn_partial(sink, present, missing)
    return False


def _resolve_syslog(settings: Settings) -> List[SinkConfig]:
    protocol = settings.syslog_proto
    if not protocol:
        if settings.syslog_server:
            _warn_partial("Syslog", ["syslog-server"], ["syslog-proto"])
        return []
    if protocol not in SYSLOG_PROTOCOLS:
        logger.warning("Unsupported syslog protocol %r (expected one of %s); syslog notifier disabled", protocol, ", ".join(SYSLOG_PROTOCOLS))
        return []
    if protocol == "unix":
        if settings.syslog_server:
            logger.debug("Ignoring syslog-server %s for the unix syslog protocol", settings.syslog_server)
        return [SyslogSinkConfig(protocol="unix")]
    if not settings.syslog_server:
        _warn_partial("Syslog", ["syslog-proto"], ["syslog-server"])
        return []
    return [SyslogSinkConfig(protocol=protocol, server=settings.syslog_server)]


def resolve_sink_configs(settings: Settings) -> List[SinkConfig]:
    """Return the enabled sink configs, warning about partially configured ones."""

    configs: List[SinkConfig] = []

    if _resolve_pair(
        "Elasticsearch",
        {"elasticsearch-server": settings.elasticsearch_server, "elasticsearch-index": settings.elasticsearch_index},
    ):
        configs.append(ElasticsearchSinkConfig(server=settings.elasticsearch_server, index=settings.elasticsearch_index))

    if _resolve_pair("Slack", {"slack-webhook": settings.slack_webhook, "slack-channel": settings.slack_channel}):
        configs.append(SlackSinkConfig(webhook=settings.slack_webhook, channel=settings.slack_channel))

    if _resolve_pair("Kafka", {"kafka-brokers": settings.kafka_brokers, "kafka-topic": settings.kafka_topic}):
        configs.append(KafkaSinkConfig(brokers=tuple(settings.kafka_brokers), topic=settings.kafka_topic))

    configs.extend(_resolve_syslog(settings))

    if not configs:
        logger.info("No notifiers configured; OOM events will only be logged")
    return configs


__all__ = [
    "ElasticsearchSinkConfig",
    "KafkaSinkConfig",
    "SYSLOG_PROTOCOLS",
    "SinkConfig",
    "SlackSinkConfig",
    "SyslogSinkConfig",
    "resolve_sink_configs",
]

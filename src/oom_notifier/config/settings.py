"""Service settings parsed once at startup from the environment and CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import ConfigurationError
from .runtime import env_bool, env_float, env_str, split_list

logger = logging.getLogger(__name__)

DEFAULT_PROCESS_REFRESH_MS = 5000
DEFAULT_KERNEL_LOG_REFRESH_MS = 10000
DEFAULT_NOTIFIER_TIMEOUT_SECONDS = 10.0
KERNEL_LOG_BACKENDS = ("auto", "kmsg", "dmesg")


@dataclass(frozen=True)
class Settings:
    """Read-only configuration for one service run."""

    process_refresh_ms: int = DEFAULT_PROCESS_REFRESH_MS
    kernel_log_refresh_ms: int = DEFAULT_KERNEL_LOG_REFRESH_MS
    syslog_proto: str = ""
    syslog_server: str = ""
    elasticsearch_server: str = ""
    elasticsearch_index: str = ""
    kafka_brokers: tuple[str, ...] = ()
    kafka_topic: str = ""
    slack_webhook: str = ""
    slack_channel: str = ""
    kernel_log_backend: str = "auto"
    retry_misses: bool = False
    notifier_timeout_seconds: float = DEFAULT_NOTIFIER_TIMEOUT_SECONDS
    log_file: Optional[str] = None

    @property
    def process_refresh_seconds(self) -> float:
        return self.process_refresh_ms / 1000

    @property
    def kernel_log_refresh_seconds(self) -> float:
        return self.kernel_log_refresh_ms / 1000


def parse_refresh_ms(name: str, raw: Optional[str], default: int) -> int:
    """Parse a refresh interval in milliseconds, falling back to *default* on bad input."""

    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        logger.error("Invalid value specified for the parameter %s, fallback to the default one. Error : %s", name, exc)
        return default
    if value <= 0:
        logger.error("Invalid value specified for the parameter %s, fallback to the default one. Error : interval must be positive (got %d)", name, value)
        return default
    return value


def _pick(overrides: Mapping[str, Any], key: str, env_name: str) -> Optional[str]:
    value = overrides.get(key)
    if value is not None:
        return str(value).strip()
    return env_str(env_name)


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Build :class:`Settings` from ``OOM_NOTIFIER_*`` variables, with *overrides* taking precedence."""

    overrides = overrides or {}

    process_refresh_ms = parse_refresh_ms(
        "process-refresh",
        _pick(overrides, "process_refresh", "PROCESS_REFRESH_MS"),
        DEFAULT_PROCESS_REFRESH_MS,
    )
    kernel_log_refresh_ms = parse_refresh_ms(
        "kernel-log-refresh",
        _pick(overrides, "kernel_log_refresh", "KERNEL_LOG_REFRESH_MS"),
        DEFAULT_KERNEL_LOG_REFRESH_MS,
    )

    backend = (_pick(overrides, "kernel_log_backend", "KERNEL_LOG_BACKEND") or "auto").lower()
    if backend not in KERNEL_LOG_BACKENDS:
        raise ConfigurationError.invalid_value("kernel-log-backend", backend, f"Expected one of {', '.join(KERNEL_LOG_BACKENDS)}")

    retry_misses = overrides.get("retry_misses")
    if retry_misses is None:
        retry_misses = env_bool("RETRY_MISSES", or_value=False)

    timeout = overrides.get("notifier_timeout_seconds")
    if timeout is None:
        timeout = env_float("NOTIFIER_TIMEOUT_SECONDS", or_value=DEFAULT_NOTIFIER_TIMEOUT_SECONDS)
    if timeout <= 0:
        raise ConfigurationError.invalid_value("notifier-timeout", timeout, "Timeout must be positive")

    brokers_raw = _pick(overrides, "kafka_brokers", "KAFKA_BROKERS")

    return Settings(
        process_refresh_ms=process_refresh_ms,
        kernel_log_refresh_ms=kernel_log_refresh_ms,
        syslog_proto=(_pick(overrides, "syslog_proto", "SYSLOG_PROTO") or "").lower(),
        syslog_server=_pick(overrides, "syslog_server", "SYSLOG_SERVER") or "",
        elasticsearch_server=_pick(overrides, "elasticsearch_server", "ELASTICSEARCH_SERVER") or "",
        elasticsearch_index=_pick(overrides, "elasticsearch_index", "ELASTICSEARCH_INDEX") or "",
        kafka_brokers=split_list(brokers_raw) if brokers_raw else (),
        kafka_topic=_pick(overrides, "kafka_topic", "KAFKA_TOPIC") or "",
        slack_webhook=_pick(overrides, "slack_webhook", "SLACK_WEBHOOK") or "",
        slack_channel=_pick(overrides, "slack_channel", "SLACK_CHANNEL") or "",
        kernel_log_backend=backend,
        retry_misses=bool(retry_misses),
        notifier_timeout_seconds=float(timeout),
        log_file=_pick(overrides, "log_file", "LOG_FILE"),
    )


__all__ = [
    "DEFAULT_KERNEL_LOG_REFRESH_MS",
    "DEFAULT_NOTIFIER_TIMEOUT_SECONDS",
    "DEFAULT_PROCESS_REFRESH_MS",
    "KERNEL_LOG_BACKENDS",
    "Settings",
    "load_settings",
    "parse_refresh_ms",
]

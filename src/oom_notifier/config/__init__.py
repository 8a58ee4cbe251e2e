"""Configuration helpers and dataclasses."""

from .errors import ConfigurationError
from .runtime import env_bool, env_float, env_str, split_list
from .settings import Settings, load_settings
from .sinks import (
    ElasticsearchSinkConfig,
    KafkaSinkConfig,
    SinkConfig,
    SlackSinkConfig,
    SyslogSinkConfig,
    resolve_sink_configs,
)

__all__ = [
    "ConfigurationError",
    "ElasticsearchSinkConfig",
    "KafkaSinkConfig",
    "Settings",
    "SinkConfig",
    "SlackSinkConfig",
    "SyslogSinkConfig",
    "env_bool",
    "env_float",
    "env_str",
    "load_settings",
    "resolve_sink_configs",
    "split_list",
]

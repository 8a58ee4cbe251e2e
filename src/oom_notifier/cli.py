from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from . import __version__
from .config import ConfigurationError, load_settings
from .config.settings import KERNEL_LOG_BACKENDS
from .errors import StartupError
from .logging_config import setup_logging
from .service import OomNotifierService

logger = logging.getLogger("oom_notifier")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oom-notifier",
        description="Notify about oomed processes reporting full command line",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--process-refresh",
        "--pr",
        dest="process_refresh",
        help="Set the frequency to refresh the list of processes in milliseconds (default: 5000)",
    )
    parser.add_argument(
        "--kernel-log-refresh",
        "--kr",
        dest="kernel_log_refresh",
        help="Set the frequency to check for new Kernel log entries in milliseconds (default: 10000)",
    )
    parser.add_argument(
        "--syslog-proto",
        "--sp",
        dest="syslog_proto",
        help="Set protocol to connect to the syslog-server. Options: unix/tcp/udp",
    )
    parser.add_argument(
        "--syslog-server",
        "--ss",
        dest="syslog_server",
        help="Syslog server where to send the oom events, as hostname:port. Ignored for the unix protocol",
    )
    parser.add_argument(
        "--elasticsearch-server",
        "--es",
        dest="elasticsearch_server",
        help="Elasticsearch server where to send the events, as http://hostname:port",
    )
    parser.add_argument(
        "--elasticsearch-index",
        "--ei",
        dest="elasticsearch_index",
        help="The name of the elasticsearch index where to index the oom events",
    )
    parser.add_argument(
        "--kafka-brokers",
        "--kb",
        dest="kafka_brokers",
        help="Kafka cluster where to send the events, as broker1:port1,broker2:port2,...",
    )
    parser.add_argument(
        "--kafka-topic",
        "--kt",
        dest="kafka_topic",
        help="The name of the kafka topic where to send the oom events",
    )
    parser.add_argument("--slack-webhook", "--slw", dest="slack_webhook", help="Slack webhook where to post the notifications")
    parser.add_argument("--slack-channel", "--slc", dest="slack_channel", help="The slack channel where to post the notifications")
    parser.add_argument(
        "--kernel-log-backend",
        choices=KERNEL_LOG_BACKENDS,
        default=None,
        help="How to read the kernel ring buffer (default: auto)",
    )
    parser.add_argument(
        "--retry-misses",
        action="store_true",
        default=None,
        help="Retry a failed pid correlation once on the next kernel log cycle",
    )
    parser.add_argument(
        "--notifier-timeout",
        dest="notifier_timeout_seconds",
        type=float,
        default=None,
        help="Network timeout in seconds for each notifier send (default: 10)",
    )
    parser.add_argument("--log-file", dest="log_file", help="Also append log output to this file")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {key: value for key, value in vars(args).items() if value is not None}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv if argv is not None else sys.argv[1:])
    overrides = _overrides(args)
    setup_logging()

    try:
        settings = load_settings(overrides)
        if settings.log_file:
            setup_logging(settings.log_file)
        service = OomNotifierService(settings)
    except StartupError as exc:
        logger.critical("%s", exc)
        return 1
    except ConfigurationError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 2

    try:
        asyncio.run(service.run())
    except KeyboardInterrupt:
        logger.info("oom-notifier interrupted by user")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

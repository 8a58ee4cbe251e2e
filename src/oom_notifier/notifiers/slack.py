"""Slack incoming-webhook notifier."""

from __future__ import annotations

from typing import Optional

import aiohttp

from ..errors import NotifierError
from ..event import OomEvent
from .base import Notifier
from .http_utils import ensure_http_url, post_json

SLACK_USERNAME = "oom-notifier"


class SlackNotifier(Notifier):
    name = "slack"

    def __init__(self, webhook: str, channel: str, *, timeout_seconds: Optional[float] = None):
        super().__init__()
        try:
            self.webhook = ensure_http_url(webhook)
        except ValueError as exc:
            raise NotifierError(self.name, f"invalid webhook URL ({exc})") from exc
        self.channel = channel
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds) if timeout_seconds else None

    def build_payload(self, event: OomEvent) -> dict:
        return {
            "channel": self.channel,
            "username": SLACK_USERNAME,
            "text": event.summary(),
        }

    async def send(self, event: OomEvent) -> None:
        await post_json(self.session, self.name, self.webhook, self.build_payload(event), timeout=self._timeout)

    def describe(self) -> str:
        return f"slack (channel {self.channel})"


__all__ = ["SlackNotifier"]

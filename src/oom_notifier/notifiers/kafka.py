"""Kafka notifier backed by a persistent aiokafka producer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

import aiohttp
import orjson
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from ..errors import NotifierError
from ..event import OomEvent
from .base import Notifier

logger = logging.getLogger(__name__)

DEFAULT_ACK_TIMEOUT_SECONDS = 5.0
KAFKA_ERRORS = (KafkaError, OSError, asyncio.TimeoutError)

ProducerFactory = Callable[..., AIOKafkaProducer]


class KafkaNotifier(Notifier):
    """Publishes the serialized event to one topic, waiting for one replica ack."""

    name = "kafka"

    def __init__(
        self,
        brokers: Sequence[str],
        topic: str,
        *,
        timeout_seconds: Optional[float] = None,
        producer_factory: ProducerFactory = AIOKafkaProducer,
    ):
        super().__init__()
        if not brokers:
            raise NotifierError(self.name, "at least one broker address is required")
        self.brokers = list(brokers)
        self.topic = topic
        self.timeout_seconds = timeout_seconds or DEFAULT_ACK_TIMEOUT_SECONDS
        self._producer_factory = producer_factory
        self._producer: Optional[AIOKafkaProducer] = None

    async def start(self, session: aiohttp.ClientSession) -> None:
        await super().start(session)
        try:
            await self._ensure_producer()
        except NotifierError as exc:
            logger.error("Kafka producer not available yet, will retry on the next event: %s", exc)

    async def _ensure_producer(self) -> AIOKafkaProducer:
        if self._producer is not None:
            return self._producer
        producer = self._producer_factory(
            bootstrap_servers=self.brokers,
            acks=1,
            request_timeout_ms=int(self.timeout_seconds * 1000),
        )
        try:
            await producer.start()
        except KAFKA_ERRORS as exc:
            await self._stop_quietly(producer)
            raise NotifierError(self.name, f"could not connect to brokers {','.join(self.brokers)}: {exc}") from exc
        self._producer = producer
        return producer

    async def _stop_quietly(self, producer: AIOKafkaProducer) -> None:
        try:
            await producer.stop()
        except KAFKA_ERRORS as exc:
            logger.debug("Kafka producer stop failed: %s", exc)

    async def send(self, event: OomEvent) -> None:
        producer = await self._ensure_producer()
        payload = orjson.dumps(event.to_dict())
        try:
            await asyncio.wait_for(producer.send_and_wait(self.topic, payload), timeout=self.timeout_seconds)
        except KAFKA_ERRORS as exc:
            raise NotifierError(self.name, f"could not publish to topic {self.topic}: {exc!r}") from exc

    async def close(self) -> None:
        if self._producer is not None:
            producer, self._producer = self._producer, None
            await self._stop_quietly(producer)
        await super().close()

    def describe(self) -> str:
        return f"kafka (topic {self.topic})"


__all__ = ["KafkaNotifier"]

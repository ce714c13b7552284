from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]


class _InMemoryBroker:
    """Process-local topic dispatcher behind the Kafka producer/consumer stubs."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[MessageHandler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: MessageHandler) -> None:
        handlers = self._subscribers.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                self._subscribers.pop(topic, None)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def publish(self, topic: str, message: dict[str, Any]) -> None:
        handlers = list(self._subscribers.get(topic, []))
        logger.debug("Dispatching %s to %d subscriber(s)", topic, len(handlers))
        for handler in handlers:
            await handler(message)


_BROKER = _InMemoryBroker()


def subscriber_count(topic: str) -> int:
    """Return how many consumers are currently attached to ``topic``."""

    return _BROKER.subscriber_count(topic)


class KafkaProducerStub:
    """Kafka producer stand-in that delivers to in-process consumers."""

    def __init__(self, **kwargs: Any) -> None:
        self._bootstrap_servers = kwargs.get("bootstrap_servers")
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def send(self, topic: str, value: dict[str, Any]) -> None:
        if not self._connected:
            raise RuntimeError("Producer not connected")
        await _BROKER.publish(topic, value)

    async def close(self) -> None:
        self._connected = False


class KafkaConsumerStub:
    """Async consumer stand-in registering a handler per topic."""

    def __init__(
        self,
        topics: Sequence[str],
        handler: Callable[[str, dict[str, Any]], Awaitable[None]],
    ) -> None:
        self._topics = list(topics)
        self._handler = handler
        self._registrations: list[tuple[str, MessageHandler]] = []

    @property
    def started(self) -> bool:
        return bool(self._registrations)

    async def start(self) -> None:
        if self.started:
            return
        for topic in self._topics:
            async def _callback(message: dict[str, Any], current_topic: str = topic) -> None:
                await self._handler(current_topic, message)

            _BROKER.subscribe(topic, _callback)
            self._registrations.append((topic, _callback))

    async def stop(self) -> None:
        for topic, callback in self._registrations:
            _BROKER.unsubscribe(topic, callback)
        self._registrations.clear()

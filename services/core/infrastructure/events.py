"""
Event publisher - hands committed, user-scoped domain events to subscribers.

The default sink is the structured log; notification/membership services
attach their own async subscribers. A failing subscriber never breaks the
request that produced the event.
"""
from typing import Awaitable, Callable

from error_handler import handle_errors
from logging_config import get_logger

logger = get_logger("domain_events")

Subscriber = Callable[[object], Awaitable[None]]


class EventPublisher:
    """Fan-out of domain events after commit"""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def publish_all(self, events) -> None:
        for event in events:
            await self.publish(event)

    async def publish(self, event) -> None:
        logger.info("domain_event", **event.to_dict())
        for subscriber in self._subscribers:
            await self._deliver(subscriber, event)

    @handle_errors(default=None, context={"sink": "event_subscriber"}, log_level="WARNING")
    async def _deliver(self, subscriber: Subscriber, event) -> None:
        await subscriber(event)


event_publisher = EventPublisher()

"""In-process notification channel.

Events are broadcast to every subscriber; there is no per-animation routing
and no delivery guarantee. Each subscriber owns a bounded queue that its
transport (normally a WebSocket) drains at its own pace, so a slow client
only ever loses its own messages.
"""

import asyncio
from typing import Any
from uuid import UUID, uuid4

from animation_engine.config import settings
from animation_engine.domain.events import NotificationEvent
from animation_engine.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    """A single subscriber's message buffer."""

    def __init__(self, maxsize: int) -> None:
        self.id: UUID = uuid4()
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def deliver(self, message: dict[str, Any]) -> bool:
        """Enqueue a message without waiting. Returns False if it was dropped."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug("notification_dropped", subscription_id=str(self.id), dropped=self.dropped)
            return False
        return True

    async def get(self) -> dict[str, Any]:
        """Wait for the next message."""
        return await self.queue.get()

    def close(self) -> None:
        self.closed = True


class NotificationChannel:
    """Publish/subscribe fan-out of notification events."""

    def __init__(self, queue_size: int | None = None) -> None:
        self.queue_size = queue_size or settings.notification_queue_size
        self._subscribers: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self.queue_size)
        self._subscribers.add(subscription)
        logger.info(
            "notification_subscribed",
            subscription_id=str(subscription.id),
            subscribers=len(self._subscribers),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()
        self._subscribers.discard(subscription)
        logger.info(
            "notification_unsubscribed",
            subscription_id=str(subscription.id),
            subscribers=len(self._subscribers),
        )

    def publish(self, event: NotificationEvent) -> int:
        """Send an event to every open subscriber.

        Never blocks and never raises for delivery problems. Returns the
        number of subscribers the message was queued for.
        """
        message = event.to_message()
        delivered = 0
        # Iterate over a copy; subscribers may come and go while publishing
        for subscription in list(self._subscribers):
            if subscription.deliver(message):
                delivered += 1

        logger.debug(
            "notification_published",
            event_type=message["type"],
            animation_id=message["animationId"],
            delivered=delivered,
        )
        return delivered

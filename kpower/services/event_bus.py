"""
In-process event bus feeding the live /stream connections.

One producer side (publish) and any number of subscriptions. Each
subscription has its own bounded buffer and starts empty: events published
before it subscribed are never seen.

Overflow policy: publish never blocks. When a subscriber's buffer is full
the oldest unread event is dropped and counted; that subscriber's next
recv() raises SubscriberLagged once with the number of dropped events.
"""
import asyncio
import logging
from typing import List, Union

from kpower.domain.events import DomainEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class SubscriberLagged(Exception):
    """Raised by recv() when events were dropped because the buffer overflowed"""

    def __init__(self, missed: int):
        self.missed = missed
        super().__init__(f"Subscriber lagged behind, {missed} event(s) dropped")


class EventBusClosed(Exception):
    """Raised by recv() once the bus has been shut down"""
    pass


class Subscription:
    """
    A single consumer position on the bus.

    Use as an async context manager so the buffer is released on exit:

        async with bus.subscribe() as subscription:
            event = await subscription.recv()
    """

    def __init__(self, bus: "EventBus", capacity: int):
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._missed = 0
        self.closed = False

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()

    @property
    def pending(self) -> int:
        """Number of buffered, unread events"""
        return self._queue.qsize()

    def _offer(self, item: Union[DomainEvent, object]) -> None:
        """Buffer an item, dropping the oldest unread event when full"""
        if self._queue.full():
            dropped = self._queue.get_nowait()
            if dropped is not _CLOSED:
                self._missed += 1
        self._queue.put_nowait(item)

    async def recv(self) -> DomainEvent:
        """
        Wait for the next event.

        Raises:
            SubscriberLagged: Once after events were dropped for this subscriber
            EventBusClosed: When the bus shut down or the subscription was released
        """
        if self._missed:
            missed, self._missed = self._missed, 0
            raise SubscriberLagged(missed)

        if self.closed and self._queue.empty():
            raise EventBusClosed()

        item = await self._queue.get()
        if item is _CLOSED:
            self.closed = True
            raise EventBusClosed()
        return item

    def unsubscribe(self) -> None:
        """Detach from the bus and drop anything still buffered"""
        self._bus._remove(self)
        self.closed = True
        while not self._queue.empty():
            self._queue.get_nowait()


class EventBus:
    """Broadcasts domain events to all current subscribers"""

    def __init__(self, capacity: int = 100):
        if capacity < 1:
            raise ValueError("Event bus capacity must be at least 1")
        self.capacity = capacity
        self._subscribers: List[Subscription] = []
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Create a new subscription positioned at the next published event"""
        subscription = Subscription(self, self.capacity)
        if self._closed:
            subscription._offer(_CLOSED)
        else:
            self._subscribers.append(subscription)
        logger.info(f"New event subscriber. Total subscribers: {len(self._subscribers)}")
        return subscription

    def publish(self, event: DomainEvent) -> int:
        """
        Broadcast an event without blocking.

        Returns:
            Number of subscribers the event was delivered to (0 is not an error)
        """
        if self._closed:
            logger.warning(f"Event bus closed, dropping {type(event).__name__}")
            return 0

        delivered = 0
        for subscription in list(self._subscribers):
            try:
                subscription._offer(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Failed to deliver event to subscriber: {e}")

        logger.info(f"Published {type(event).__name__} to {delivered} subscriber(s)")
        return delivered

    def close(self) -> None:
        """Shut the bus down; every open subscription's recv() ends with EventBusClosed"""
        self._closed = True
        subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._offer(_CLOSED)
        logger.info(f"Event bus closed ({len(subscribers)} subscriber(s) released)")

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
            logger.info(f"Event subscriber removed. Total subscribers: {len(self._subscribers)}")

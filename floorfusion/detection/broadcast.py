"""
Fan-out of detection results to any number of asyncio consumers.

Each subscriber owns an ``asyncio.Queue``. Publishing never blocks: when a
bounded queue is full its oldest item is dropped. Subscribers only receive
results published after they subscribed.
"""

import asyncio
import logging
from typing import List, Optional

from floorfusion.fusion.types import FloorEstimate

logger = logging.getLogger(__name__)


class Subscription:
    """
    Async iterator over published estimates.

    Example:
        sub = session.subscribe()
        async for estimate in sub:
            print(estimate)
    """

    def __init__(self, broadcaster: "ResultBroadcaster", maxsize: int = 0):
        self._broadcaster = broadcaster
        self.queue: "asyncio.Queue[Optional[FloorEstimate]]" = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def _offer(self, estimate: Optional[FloorEstimate]) -> None:
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(estimate)

    async def get(self) -> FloorEstimate:
        """Wait for the next estimate; raises StopAsyncIteration once closed."""
        if self.closed and self.queue.empty():
            raise StopAsyncIteration
        estimate = await self.queue.get()
        if estimate is None:
            raise StopAsyncIteration
        return estimate

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._broadcaster.unsubscribe(self)
        self._offer(None)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> FloorEstimate:
        return await self.get()


class ResultBroadcaster:
    """Publish FloorEstimates to every open Subscription."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, maxsize: int = 0) -> Subscription:
        subscription = Subscription(self, maxsize=maxsize)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, estimate: FloorEstimate) -> None:
        for subscription in list(self._subscriptions):
            subscription._offer(estimate)
        logger.debug("Published %s to %d subscriber(s)", estimate, len(self._subscriptions))

    def close(self) -> None:
        """Close every subscription; their iterators stop after draining."""
        for subscription in list(self._subscriptions):
            subscription.close()

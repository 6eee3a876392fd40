"""In-process publish/subscribe for live chat snapshots.

Publishers only announce that a topic changed; subscribers re-read state and
push a fresh snapshot. A subscription therefore keeps the set of topics that
changed since it last looked, not every notification: repeats of a pending
topic coalesce, and the pending set can never outgrow the subscribed topics.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Set
from uuid import uuid4

logger = logging.getLogger(__name__)


def rooms_topic(user_id: str) -> str:
    """Topic for changes to any room the user participates in."""
    return f"rooms:{user_id}"


def room_topic(room_id: str) -> str:
    """Topic for changes to one room's messages or per-user state."""
    return f"room:{room_id}"


def presence_topic(user_id: str) -> str:
    """Topic for last-seen writes of a user."""
    return f"presence:{user_id}"


class Subscription:
    """A live interest in a set of topics, cancelled exactly once."""

    def __init__(self, hub: "SubscriptionHub", topics: Iterable[str]):
        self.id = uuid4()
        self.topics: Set[str] = set(topics)
        self._hub = hub
        # Insertion ordered, first changed topic is delivered first
        self._pending: Dict[str, None] = {}
        self._wakeup = asyncio.Event()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> List[str]:
        """Topics changed since the last `next_event`, oldest first."""
        return list(self._pending)

    def notify(self, topic: str) -> bool:
        """Mark a topic as changed. Returns False once cancelled."""
        if self._cancelled:
            return False
        self._pending.setdefault(topic, None)
        self._wakeup.set()
        return True

    async def next_event(self) -> Optional[str]:
        """Wait for the next changed topic; None once cancelled."""
        while not self._cancelled:
            if self._pending:
                topic = next(iter(self._pending))
                del self._pending[topic]
                return topic
            self._wakeup.clear()
            await self._wakeup.wait()
        return None

    def cancel(self) -> None:
        """Stop receiving notifications and wake any pending waiter."""
        if self._cancelled:
            return
        self._cancelled = True
        self._hub._remove(self)
        self._pending.clear()
        self._wakeup.set()


class SubscriptionHub:
    """Routes topic notifications to the subscriptions interested in them."""

    def __init__(self):
        self._subscribers: Dict[str, Set[Subscription]] = {}

    def subscribe(self, topics: Iterable[str]) -> Subscription:
        subscription = Subscription(self, topics)
        for topic in subscription.topics:
            self._subscribers.setdefault(topic, set()).add(subscription)
        return subscription

    def retarget(self, subscription: Subscription, topics: Iterable[str]) -> None:
        """Replace the topics of a live subscription."""
        if subscription.cancelled:
            return
        self._remove(subscription)
        subscription.topics = set(topics)
        for topic in subscription.topics:
            self._subscribers.setdefault(topic, set()).add(subscription)

    def publish(self, *topics: str) -> int:
        """Notify every subscriber of the given topics, each at most once."""
        targets: Set[Subscription] = set()
        for topic in topics:
            targets.update(self._subscribers.get(topic, ()))

        delivered = 0
        for subscription in targets:
            matched = next(t for t in topics if t in subscription.topics)
            if subscription.notify(matched):
                delivered += 1
        logger.debug("Published %s to %d subscriber(s)", topics, delivered)
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def _remove(self, subscription: Subscription) -> None:
        for topic in subscription.topics:
            subscribers = self._subscribers.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[topic]


hub = SubscriptionHub()

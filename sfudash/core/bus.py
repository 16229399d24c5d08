"""In-process, topic-scoped publish/subscribe bus.

The bus holds no durable state: it is a registry of subscriber callbacks
keyed by topic. Publishing invokes every callback registered for the topic
synchronously, in subscription order, on the publisher's call stack.

Guarantees:
  - A failing callback is logged and skipped; the remaining subscribers
    still receive the envelope and the publisher never sees the error.
  - No buffering and no replay: envelopes published while a topic has no
    subscribers are discarded.
  - The registry lock is held for the whole fan-out, so once
    :meth:`EventBus.unsubscribe` returns, the callback will not be invoked
    again, even when the publish runs on another thread.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("sfudash.bus")

FRONT_TOPIC = "front"

Callback = Callable[[Any], None]


@dataclass(frozen=True)
class Subscription:
    """Opaque handle returned by :meth:`EventBus.subscribe`."""

    topic: str
    token: int


class EventBus:
    """Topic-keyed fan-out of envelopes to registered callbacks."""

    def __init__(self) -> None:
        self._topics: dict[str, dict[int, Callback]] = {}
        self._tokens = itertools.count(1)
        # Re-entrant so callbacks may subscribe/unsubscribe during a publish.
        self._lock = threading.RLock()

    def subscribe(self, topic: str, callback: Callback) -> Subscription:
        """Register *callback* for every future publish on *topic*."""
        with self._lock:
            token = next(self._tokens)
            self._topics.setdefault(topic, {})[token] = callback
        logger.debug("Subscribed #%d to %s", token, topic, extra={"topic": topic})
        return Subscription(topic=topic, token=token)

    def unsubscribe(self, topic: str, subscription: Subscription) -> None:
        """Remove a subscription. Unknown or repeated handles are ignored."""
        with self._lock:
            callbacks = self._topics.get(topic)
            if callbacks is None or subscription.topic != topic:
                return
            if callbacks.pop(subscription.token, None) is None:
                return
            if not callbacks:
                del self._topics[topic]
        logger.debug(
            "Unsubscribed #%d from %s", subscription.token, topic, extra={"topic": topic}
        )

    def publish(self, topic: str, envelope: Any) -> int:
        """Deliver *envelope* to every current subscriber of *topic*.

        Returns the number of callbacks that completed without raising.
        """
        delivered = 0
        with self._lock:
            callbacks = list(self._topics.get(topic, {}).items())
            for token, callback in callbacks:
                try:
                    callback(envelope)
                except Exception:
                    logger.warning(
                        "Subscriber #%d on %s failed; continuing fan-out",
                        token,
                        topic,
                        exc_info=True,
                        extra={"topic": topic},
                    )
                    continue
                delivered += 1
        return delivered

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._topics.get(topic, {}))

    def clear(self) -> None:
        """Drop every subscription (used on shutdown and in tests)."""
        with self._lock:
            self._topics.clear()


# Process-wide bus shared by the webhook routes and the push stream.
bus = EventBus()

"""In-process event channel.

The core publishes what happened (a message was sent, an order moved, a
notification was written) after the owning transaction commits. Delivery to
clients (websockets, push, polling caches) belongs to whoever subscribes.
"""
import logging
from collections import defaultdict

logger = logging.getLogger(__name__)

MESSAGE_SENT = "message_sent"
ORDER_CREATED = "order_created"
ORDER_STATUS_CHANGED = "order_status_changed"
NOTIFICATION_CREATED = "notification_created"

ALL_TOPICS = "*"


class EventChannel:
    def __init__(self):
        self._subscribers = defaultdict(list)

    def subscribe(self, topic, callback):
        self._subscribers[topic].append(callback)

    def unsubscribe(self, topic, callback):
        if callback in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(callback)

    def clear(self):
        self._subscribers.clear()

    def publish(self, topic, payload):
        logger.debug("event_published topic=%s", topic)
        callbacks = list(self._subscribers.get(topic, [])) + list(self._subscribers.get(ALL_TOPICS, []))
        for callback in callbacks:
            try:
                callback(topic, payload)
            except Exception:
                # The write is already committed; one broken consumer must not fail it
                logger.exception("event_subscriber_failed topic=%s", topic)


channel = EventChannel()

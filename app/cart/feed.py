"""Catalog change feeds.

An event is ``{"product": {...}}`` for an insert/update or ``None`` for a
delete. Subscribers treat any event as "the catalog changed" and reload it
in full, so the payload is informational only. Handlers run one at a time
in the order events were published.
"""
import json
import logging
import threading

logger = logging.getLogger(__name__)


class Subscription:
    def __init__(self, closer):
        self._closer = closer
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._closer()


def _dispatch(handler, event):
    try:
        handler(event)
    except Exception:
        logger.exception("Catalog change handler failed")


class InMemoryChangeFeed:
    """Synchronous feed for a single process (dev mode and tests)."""

    def __init__(self):
        self._handlers = []
        self._lock = threading.Lock()

    def subscribe(self, handler):
        self._handlers.append(handler)

        def _close():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return Subscription(_close)

    def publish(self, event):
        with self._lock:
            for handler in list(self._handlers):
                _dispatch(handler, event)


class RedisChangeFeed:
    """Feed over a Redis pub/sub channel.

    Each subscription owns one listener thread, so its handler sees events
    strictly in arrival order.
    """

    def __init__(self, client, channel, poll_interval=0.2):
        self.client = client
        self.channel = channel
        self.poll_interval = poll_interval

    def publish(self, event):
        self.client.publish(self.channel, json.dumps(event))

    def subscribe(self, handler):
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)

        def _on_message(message):
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            try:
                event = json.loads(data) if data else None
            except (json.JSONDecodeError, TypeError):
                logger.warning("Ignoring malformed catalog event: %.80s", data)
                return
            _dispatch(handler, event)

        pubsub.subscribe(**{self.channel: _on_message})
        thread = pubsub.run_in_thread(sleep_time=self.poll_interval, daemon=True)

        def _close():
            thread.stop()
            pubsub.close()

        return Subscription(_close)

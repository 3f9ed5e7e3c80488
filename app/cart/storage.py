"""Cart persistence backends.

Carts are saved as a JSON list of line dicts per shopper session. Redis is
the production backend; ``InMemoryCartStorage`` stands in when Redis is not
configured, the same way the task queue degrades in development.
"""
import json
import logging
import threading

from redis.exceptions import RedisError

from app.cart.store import CartLine

logger = logging.getLogger(__name__)

KEY_PREFIX = "cart:"
LOCK_PREFIX = "cart-lock:"


def dump_lines(lines):
    return json.dumps([line.to_dict() for line in lines])


def parse_lines(raw):
    """Decode a stored cart, skipping entries that cannot be read."""
    if not raw:
        return []
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        items = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Discarding unreadable stored cart")
        return []
    if not isinstance(items, list):
        return []
    lines = []
    for item in items:
        if not isinstance(item, dict) or "id" not in item:
            continue
        try:
            lines.append(CartLine.from_dict(item))
        except TypeError:
            logger.warning("Skipping malformed cart line: %s", item.get("id"))
    return lines


class InMemoryCartStorage:
    """Process-local cart storage for development and tests."""

    def __init__(self):
        self._carts = {}
        self._locks = {}
        self._guard = threading.Lock()

    def load(self, session_id):
        return parse_lines(self._carts.get(session_id))

    def save(self, session_id, lines):
        self._carts[session_id] = dump_lines(lines)

    def session_ids(self):
        return list(self._carts)

    def lock(self, session_id):
        with self._guard:
            return self._locks.setdefault(session_id, threading.RLock())


class RedisCartStorage:
    def __init__(self, client, ttl_seconds=None, lock_timeout=10, lock_wait=5):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait

    def _key(self, session_id):
        return f"{KEY_PREFIX}{session_id}"

    def load(self, session_id):
        try:
            raw = self.client.get(self._key(session_id))
        except RedisError:
            logger.exception("Could not load cart %s", session_id)
            return []
        return parse_lines(raw)

    def lock(self, session_id):
        """Per-session lock shared by web workers and the cart sync job.

        Entering raises ``redis.exceptions.LockError`` when it cannot be
        acquired within ``lock_wait`` seconds.
        """
        return self.client.lock(
            f"{LOCK_PREFIX}{session_id}",
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_wait,
        )

    def save(self, session_id, lines):
        # Errors propagate; CartStore logs them and stays authoritative.
        self.client.set(self._key(session_id), dump_lines(lines), ex=self.ttl_seconds)

    def session_ids(self):
        ids = []
        for key in self.client.scan_iter(match=f"{KEY_PREFIX}*"):
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            ids.append(key[len(KEY_PREFIX):])
        return ids

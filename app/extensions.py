import logging
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import redis as _redis
from rq import Queue

from app.cart.feed import InMemoryChangeFeed, RedisChangeFeed
from app.cart.storage import InMemoryCartStorage, RedisCartStorage

logger = logging.getLogger(__name__)

db = SQLAlchemy()
migrate = Migrate()

# Initialized lazily in create_app
redis_client: _redis.Redis = None  # type: ignore
task_queue: Queue = None  # type: ignore
cart_storage = None
catalog_feed = None


class DummyQueue:
    """No-op queue for development without Redis."""

    def enqueue(self, *args, **kwargs):
        logger.warning("Redis not available — skipping job enqueue: %s", args[:1])
        return None


def _use_local_backends():
    global redis_client, task_queue, cart_storage, catalog_feed
    redis_client = None
    task_queue = DummyQueue()
    cart_storage = InMemoryCartStorage()
    catalog_feed = InMemoryChangeFeed()


def init_redis(app):
    global redis_client, task_queue, cart_storage, catalog_feed
    redis_url = app.config.get("REDIS_URL", "")
    if not redis_url:
        logger.warning("REDIS_URL not set — queue disabled, carts kept in memory (dev mode)")
        _use_local_backends()
        return

    try:
        redis_client = _redis.from_url(redis_url, decode_responses=False)
        redis_client.ping()
        task_queue = Queue("cart-sync", connection=redis_client)
        cart_storage = RedisCartStorage(
            redis_client, ttl_seconds=app.config["CART_TTL_SECONDS"]
        )
        catalog_feed = RedisChangeFeed(redis_client, app.config["CATALOG_CHANNEL"])
    except Exception as e:
        logger.warning("Redis connection failed (%s) — using in-memory backends", e)
        _use_local_backends()

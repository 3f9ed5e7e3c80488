"""Tests for cart persistence backends and catalog change feeds."""
import json
from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from app.cart.feed import InMemoryChangeFeed, RedisChangeFeed
from app.cart.storage import (
    InMemoryCartStorage,
    RedisCartStorage,
    dump_lines,
    parse_lines,
)
from app.cart.store import CartLine


def _lines():
    return [
        CartLine(id="7-18", product_id="7", price=50000, quantity=2,
                 selected_length="18", selected_density="200%"),
        CartLine(id="9", product_id="9", price=6500, in_stock=False),
    ]


def test_in_memory_storage_round_trip():
    storage = InMemoryCartStorage()
    storage.save("abc", _lines())
    assert storage.load("abc") == _lines()
    assert storage.load("missing") == []
    assert storage.session_ids() == ["abc"]


def test_parse_lines_skips_bad_entries():
    raw = json.dumps([{"id": "5", "price": 100}, {"price": 1}, "junk"])
    lines = parse_lines(raw)
    assert [l.id for l in lines] == ["5"]


def test_parse_lines_unreadable_payloads():
    assert parse_lines(None) == []
    assert parse_lines(b"not json") == []
    assert parse_lines('{"id": "5"}') == []


def test_redis_storage_uses_prefixed_key_and_ttl():
    client = MagicMock()
    storage = RedisCartStorage(client, ttl_seconds=3600)
    storage.save("abc", _lines())
    client.set.assert_called_once_with("cart:abc", dump_lines(_lines()), ex=3600)


def test_redis_storage_load_decodes_bytes():
    client = MagicMock()
    client.get.return_value = dump_lines(_lines()).encode("utf-8")
    assert RedisCartStorage(client).load("abc") == _lines()
    client.get.assert_called_once_with("cart:abc")


def test_redis_storage_load_failure_returns_empty_cart():
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("down")
    assert RedisCartStorage(client).load("abc") == []


def test_redis_storage_session_ids():
    client = MagicMock()
    client.scan_iter.return_value = [b"cart:one", "cart:two"]
    assert RedisCartStorage(client).session_ids() == ["one", "two"]
    client.scan_iter.assert_called_once_with(match="cart:*")


def test_in_memory_feed_delivers_in_order():
    feed = InMemoryChangeFeed()
    seen = []
    subscription = feed.subscribe(seen.append)
    feed.publish({"product": {"id": 1}})
    feed.publish(None)
    subscription.close()
    subscription.close()
    feed.publish({"product": {"id": 2}})
    assert seen == [{"product": {"id": 1}}, None]


def test_in_memory_feed_isolates_failing_handler():
    feed = InMemoryChangeFeed()
    seen = []
    feed.subscribe(MagicMock(side_effect=RuntimeError("boom")))
    feed.subscribe(seen.append)
    feed.publish(None)
    assert seen == [None]


def test_redis_feed_publishes_json():
    client = MagicMock()
    RedisChangeFeed(client, "catalog-changes").publish({"product": {"id": 3}})
    client.publish.assert_called_once_with(
        "catalog-changes", json.dumps({"product": {"id": 3}})
    )


def test_redis_feed_subscription_decodes_messages():
    client = MagicMock()
    pubsub = client.pubsub.return_value
    seen = []

    subscription = RedisChangeFeed(client, "catalog-changes").subscribe(seen.append)

    client.pubsub.assert_called_once_with(ignore_subscribe_messages=True)
    on_message = pubsub.subscribe.call_args.kwargs["catalog-changes"]
    on_message({"data": b'{"product": {"id": 4}}'})
    on_message({"data": "null"})
    on_message({"data": b"garbage"})
    assert seen == [{"product": {"id": 4}}, None]

    subscription.close()
    pubsub.run_in_thread.return_value.stop.assert_called_once()
    pubsub.close.assert_called_once()


def test_redis_storage_session_lock():
    client = MagicMock()
    storage = RedisCartStorage(client, lock_timeout=10, lock_wait=5)
    with storage.lock("abc"):
        pass
    client.lock.assert_called_once_with("cart-lock:abc", timeout=10, blocking_timeout=5)


def test_in_memory_storage_lock_is_per_session():
    storage = InMemoryCartStorage()
    assert storage.lock("a") is storage.lock("a")
    assert storage.lock("a") is not storage.lock("b")

"""Shopping cart: line identity, store, persistence, catalog reconciliation."""
from app.cart.store import CartLine, CartStore, base_id, build_line, cart_line_id
from app.cart.reconciliation import CatalogReconciler, reconcile_lines
from app.cart.feed import InMemoryChangeFeed, RedisChangeFeed
from app.cart.storage import InMemoryCartStorage, RedisCartStorage

__all__ = [
    "CartLine",
    "CartStore",
    "CatalogReconciler",
    "InMemoryCartStorage",
    "InMemoryChangeFeed",
    "RedisCartStorage",
    "RedisChangeFeed",
    "base_id",
    "build_line",
    "cart_line_id",
    "reconcile_lines",
]

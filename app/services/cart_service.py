"""Per-session cart wiring: storage + store + reconciliation.

Every path that writes a stored cart (shopper requests and the cart sync
job) goes through ``cart_session``, which holds the storage's per-session
lock from load to the last save.
"""
import logging
from contextlib import contextmanager

from app import extensions
from app.cart.reconciliation import CatalogReconciler
from app.cart.store import CartStore, build_line
from app.services import catalog_service

logger = logging.getLogger(__name__)


def open_cart(session_id, reconcile=True):
    """Load a session's cart and bring it in line with the current catalog.

    Loading is the process-start point for the cart, so it gets the initial
    reconciliation pass here. Callers that may save must hold the session
    lock; use ``cart_session``.
    """
    storage = extensions.cart_storage
    store = CartStore(
        storage.load(session_id),
        saver=lambda lines: storage.save(session_id, lines),
    )
    if reconcile and store.lines:
        CatalogReconciler(store, catalog_service.load_all_products).refresh()
    return store


@contextmanager
def cart_session(session_id, reconcile=True):
    """Open a session's cart under its lock; the lock is held until exit."""
    with extensions.cart_storage.lock(session_id):
        yield open_cart(session_id, reconcile)


def add_to_cart(session_id, product, selection):
    """Add one unit of ``product`` with ``selection``. Out-of-stock is refused."""
    if not product.in_stock:
        return None, None
    with cart_session(session_id) as store:
        line = store.add_or_increment(build_line(product, selection))
    return store, line


def sync_session(session_id, products):
    """Reconcile one stored cart against ``products``; returns the changes."""
    with cart_session(session_id, reconcile=False) as store:
        return CatalogReconciler(store, lambda: products).reconcile(products)


def cart_payload(store):
    return {
        "lines": [line.to_dict() for line in store.lines],
        "count": store.count,
        "total": store.total,
        "durable": store.durable,
    }

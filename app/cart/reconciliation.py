"""Keep cart lines in step with the live catalog.

Per line, against the freshly loaded catalog:

* product found, nothing differs  -> untouched
* stock flag differs               -> ``in_stock`` updated
* price differs                    -> ``price``/``original_price`` updated
* product gone                     -> forced out of stock, line kept

The target price is recomputed from the line's own selections, so a
variant line follows the variant's price. Every write is guarded by an
equality check, which makes a second pass over the same snapshot a no-op.
"""
import logging
from dataclasses import replace

from app.cart.store import base_id
from app.pricing.composition import compute_price

logger = logging.getLogger(__name__)

UNCHANGED = "unchanged"
STOCK_CHANGED = "stock"
PRICE_CHANGED = "price"
ORPHANED = "orphaned"


def match_product(line_id, products_by_id):
    """Exact id first, then the base id, mirroring ``CartStore.find``."""
    return products_by_id.get(str(line_id)) or products_by_id.get(base_id(line_id))


def reconcile_line(line, product):
    """Return ``(updated_line, transitions)`` without stamping the line."""
    if product is None:
        if not line.in_stock:
            return line, []
        return replace(line, in_stock=False), [ORPHANED]

    transitions = []
    updated = line
    if line.in_stock != product.in_stock:
        updated = replace(updated, in_stock=product.in_stock)
        transitions.append(STOCK_CHANGED)

    quote = compute_price(product, line.selection)
    if (quote.price, quote.original_price) != (line.price, line.original_price):
        updated = replace(
            updated, price=quote.price, original_price=quote.original_price
        )
        transitions.append(PRICE_CHANGED)
    return updated, transitions


def reconcile_lines(lines, products, stamp):
    """Reconcile ``lines`` against ``products``.

    ``stamp`` is called once per changed line for its ``last_updated``.
    Returns ``(new_lines, changes)`` where ``changes`` maps line id to the
    transitions applied.
    """
    products_by_id = {str(p.id): p for p in products}
    new_lines = []
    changes = {}
    for line in lines:
        updated, transitions = reconcile_line(
            line, match_product(line.id, products_by_id)
        )
        if transitions:
            updated = replace(updated, last_updated=stamp())
            changes[line.id] = transitions
        new_lines.append(updated)
    return new_lines, changes


class CatalogReconciler:
    """Standing process that re-syncs one cart whenever the catalog changes.

    ``load_all_products`` returns the full catalog; ``feed`` is any object
    with ``subscribe(handler) -> Subscription``. ``start`` subscribes and
    runs the initial pass; ``stop`` unsubscribes.
    """

    def __init__(self, store, load_all_products, feed=None):
        self.store = store
        self.load_all_products = load_all_products
        self.feed = feed
        self._subscription = None

    @property
    def running(self):
        return self._subscription is not None

    def start(self):
        if self.running:
            return
        if self.feed is not None:
            self._subscription = self.feed.subscribe(self.handle_event)
        self.refresh()

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def handle_event(self, event):
        self.refresh()

    def refresh(self):
        """Reload the catalog and reconcile. Load failures leave the cart as is."""
        try:
            products = self.load_all_products()
        except Exception:
            logger.exception("Catalog reload failed; cart left unchanged")
            return {}
        return self.reconcile(products)

    def reconcile(self, products):
        if not products:
            logger.warning("Empty catalog snapshot; skipping reconciliation")
            return {}
        changes = self.store.apply(
            lambda lines: reconcile_lines(lines, products, self.store.tick)
        )
        for line_id, transitions in changes.items():
            logger.info("Cart line %s reconciled: %s", line_id, ", ".join(transitions))
        return changes

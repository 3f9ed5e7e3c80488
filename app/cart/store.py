"""Shopping cart lines and the store that owns them.

A line is keyed by ``{product_id}-{length}`` when the product sells lengths,
otherwise by the bare product id, so re-selecting the same length lands on
the same line. Only the shopper (through this store) and the catalog
reconciler may mutate lines.
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass, fields, replace
from typing import Optional

from app.pricing.composition import Selection, compute_price, option_labels
from app.pricing.options import DEFAULT_SHIPPING_FEE

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    id: str
    product_id: str = ""
    name: str = ""
    price: int = 0
    original_price: Optional[int] = None
    quantity: int = 1
    in_stock: bool = True
    selected_length: str = ""
    selected_density: str = ""
    selected_lace_size: str = ""
    density_label: str = ""
    lace_size_label: str = ""
    image: str = ""
    lace_label: str = ""
    shipping_fee: int = DEFAULT_SHIPPING_FEE
    last_updated: int = 0

    @property
    def selection(self):
        return Selection(
            length=self.selected_length,
            density=self.selected_density,
            lace_size=self.selected_lace_size,
        )

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        line = cls(**values)
        line.id = str(line.id)
        line.product_id = str(line.product_id or base_id(line.id))
        for name in ("selected_length", "selected_density", "selected_lace_size",
                     "density_label", "lace_size_label", "name", "image",
                     "lace_label"):
            if getattr(line, name) is None:
                setattr(line, name, "")
        if line.in_stock is None:
            line.in_stock = True
        return line


def cart_line_id(product_id, length_value=""):
    if length_value:
        return f"{product_id}-{length_value}"
    return str(product_id)


def base_id(line_id):
    """Product id portion of a line id (text before the first ``-``)."""
    return str(line_id).split("-", 1)[0]


def build_line(product, selection=None):
    """A fresh quantity-1 line for ``product`` with ``selection`` priced in."""
    selection = selection or Selection()
    length = selection.length if product.has_length_options else ""
    quote = compute_price(product, selection)
    density_label, lace_size_label = option_labels(product, selection)
    name = product.name
    if length:
        name = f"{name} - {length}"
    return CartLine(
        id=cart_line_id(product.id, length),
        product_id=str(product.id),
        name=name,
        price=quote.price,
        original_price=quote.original_price,
        in_stock=product.in_stock,
        selected_length=length,
        selected_density=selection.density or "",
        selected_lace_size=selection.lace_size or "",
        density_label=density_label,
        lace_size_label=lace_size_label,
        image=product.images[0] if product.images else "",
        lace_label=product.lace_label or "",
        shipping_fee=product.shipping_fee or DEFAULT_SHIPPING_FEE,
    )


def _now_ms():
    return int(time.time() * 1000)


class CartStore:
    """In-memory cart, authoritative for the session.

    ``saver`` is called with the full line list after every mutation. A
    failing save is logged and leaves ``durable`` False; the mutation is
    kept either way.
    """

    def __init__(self, lines=None, saver=None, clock=None):
        self._lines = [replace(line) for line in (lines or [])]
        self._saver = saver
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self._last_stamp = max((l.last_updated for l in self._lines), default=0)
        self.durable = True

    # -- reads --------------------------------------------------------------

    @property
    def lines(self):
        with self._lock:
            return [replace(line) for line in self._lines]

    @property
    def count(self):
        with self._lock:
            return sum(line.quantity for line in self._lines)

    @property
    def total(self):
        with self._lock:
            return sum(line.line_total for line in self._lines)

    def get(self, line_id):
        with self._lock:
            for line in self._lines:
                if line.id == line_id:
                    return replace(line)
        return None

    def find(self, product_id):
        """Exact line id first, then any variant line of the same product."""
        wanted = str(product_id)
        with self._lock:
            for line in self._lines:
                if line.id == wanted:
                    return replace(line)
            for line in self._lines:
                if base_id(line.id) == wanted:
                    return replace(line)
        return None

    # -- mutations ----------------------------------------------------------

    def tick(self):
        """Strictly increasing millisecond stamp for ``last_updated``."""
        with self._lock:
            self._last_stamp = max(self._clock(), self._last_stamp + 1)
            return self._last_stamp

    def add_or_increment(self, line):
        with self._lock:
            for existing in self._lines:
                if existing.id == line.id:
                    existing.quantity += 1
                    existing.last_updated = self.tick()
                    result = replace(existing)
                    break
            else:
                new_line = CartLine.from_dict(line.to_dict())
                new_line.quantity = 1
                new_line.last_updated = self.tick()
                self._lines.append(new_line)
                result = replace(new_line)
            self._persist()
        return result

    def set_quantity(self, line_id, quantity):
        """Set a line's quantity; below 1 removes it. Out-of-stock lines are frozen."""
        with self._lock:
            for index, line in enumerate(self._lines):
                if line.id != line_id:
                    continue
                if not line.in_stock:
                    return replace(line)
                if quantity < 1:
                    del self._lines[index]
                    self._persist()
                    return None
                line.quantity = quantity
                line.last_updated = self.tick()
                self._persist()
                return replace(line)
        return None

    def remove(self, line_id):
        with self._lock:
            before = len(self._lines)
            self._lines = [line for line in self._lines if line.id != line_id]
            removed = len(self._lines) != before
            if removed:
                self._persist()
        return removed

    def clear(self):
        with self._lock:
            self._lines = []
            self._persist()

    def apply(self, transform):
        """Run ``transform(lines) -> (new_lines, changes)`` atomically.

        Used by the catalog reconciler. Persists only when ``changes`` is
        non-empty.
        """
        with self._lock:
            new_lines, changes = transform([replace(l) for l in self._lines])
            if changes:
                self._lines = new_lines
                self._persist()
            return changes

    def _persist(self):
        if self._saver is None:
            return
        try:
            self._saver([replace(line) for line in self._lines])
            self.durable = True
        except Exception:
            logger.exception("Cart save failed; keeping in-memory cart")
            self.durable = False

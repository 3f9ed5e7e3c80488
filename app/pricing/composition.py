"""Final price for a product + option selection.

Price = base (length or product) + lace add-on + density add-on. The
density add-on is resolved by an ordered chain of resolvers; the first one
that returns a number wins and the flat ``additional_price`` closes the
chain, so every selection prices without raising.
"""
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from app.pricing.identity import make_length_id, strip_length_suffix

# Payment gateway fee schedule used by the admin "customer pays" helper.
GATEWAY_PERCENTAGE_RATE = 0.015
GATEWAY_FLAT_FEE = 100
GATEWAY_FLAT_FEE_THRESHOLD = 2500
GATEWAY_FEE_CAP = 2000


@dataclass(frozen=True)
class Selection:
    length: str = ""
    density: str = ""
    lace_size: str = ""


@dataclass(frozen=True)
class PriceQuote:
    price: int
    original_price: Optional[int] = None

    @property
    def discount_percentage(self):
        return discount_percentage(self.price, self.original_price)

    def to_dict(self):
        data = {"price": self.price}
        if self.original_price is not None:
            data["original_price"] = self.original_price
            data["discount_percentage"] = self.discount_percentage
        return data


def resolve_selection(product, length="", density="", lace_size=""):
    """Fill unset dimensions with the shopper-facing defaults.

    A chosen length with its own ``lace_size`` pre-selects that lace;
    otherwise each dimension defaults to its base (first) option.
    """
    length = strip_length_suffix(length)
    if product.length_options and not length:
        length = product.length_options[0].value
    if product.lace_size_options and not lace_size:
        chosen = product.find_length(length)
        if chosen is not None and product.find_lace_size(chosen.lace_size):
            lace_size = chosen.lace_size
        else:
            lace_size = product.lace_size_options[0].value
    if product.density_options and not (density or "").strip():
        density = product.density_options[0].value
    return Selection(length=length, density=density or "", lace_size=lace_size or "")


def base_price(product, selection):
    """(price, original_price) before any add-on."""
    if product.has_length_options and selection.length:
        option = product.find_length(selection.length)
        if option is not None:
            return (
                option.price or product.price,
                option.original_price or product.original_price,
            )
    return product.price, product.original_price


def lace_add_on(product, selection):
    option = product.find_lace_size(selection.lace_size)
    return option.price_multiplier if option is not None else 0


# ---------------------------------------------------------------------------
# Density resolvers: (product, density, selection) -> int | None
# ---------------------------------------------------------------------------

def _base_density(product, density, selection):
    if density is product.density_options[0]:
        return 0
    return None


def _canonical_match(row, selected_length):
    return (row.length_id or "").lower() == make_length_id(selected_length).lower()


def _legacy_match(row, selected_length):
    # Rows saved before ids were canonical: raw value, bare id, or any
    # "<prefix>-<value>" id.
    sel = strip_length_suffix(selected_length).lower()
    row_id = (row.length_id or "").lower()
    row_value = strip_length_suffix(row.length_value or "").lower()
    return row_value == sel or row_id == sel or row_id.endswith(f"-{sel}")


def find_matrix_row(density, selected_length):
    """Return the price-matrix row for ``selected_length`` or ``None``."""
    for matches in (_canonical_match, _legacy_match):
        for row in density.prices:
            if matches(row, selected_length):
                return row
    return None


def _matrix_price(product, density, selection):
    if not density.prices or not selection.length:
        return None
    row = find_matrix_row(density, selection.length)
    if row is None:
        return None
    length = product.find_length(selection.length)
    base_length_price = (length.price if length else 0) or product.price
    # The matrix stores the absolute price for length + density.
    return row.price - base_length_price


def _flat_additional_price(product, density, selection):
    return density.additional_price or 0


DENSITY_RESOLVERS = (
    _base_density,
    _matrix_price,
    _flat_additional_price,
)


def density_add_on(product, selection):
    density = product.find_density(selection.density)
    if density is None:
        return 0
    for resolver in DENSITY_RESOLVERS:
        amount = resolver(product, density, selection)
        if amount is not None:
            return amount
    return 0


def compute_price(product, selection=None):
    """Return the ``PriceQuote`` for ``product`` with ``selection`` applied."""
    selection = selection or Selection()
    price, original = base_price(product, selection)
    add_ons = lace_add_on(product, selection) + density_add_on(product, selection)
    return PriceQuote(
        price=price + add_ons,
        original_price=original + add_ons if original else None,
    )


def discount_percentage(price, original_price):
    if not original_price or original_price <= price:
        return 0
    ratio = Decimal(original_price - price) / Decimal(original_price) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def customer_pays(amount):
    """Gross ``amount`` up so the merchant nets it after gateway fees."""
    if amount < GATEWAY_FLAT_FEE_THRESHOLD:
        return math.ceil(amount / (1 - GATEWAY_PERCENTAGE_RATE) + 0.01)

    gross = (amount + GATEWAY_FLAT_FEE) / (1 - GATEWAY_PERCENTAGE_RATE) + 0.01
    total_fee = gross * GATEWAY_PERCENTAGE_RATE + GATEWAY_FLAT_FEE
    if total_fee > GATEWAY_FEE_CAP:
        return amount + GATEWAY_FEE_CAP
    return math.ceil(gross)


def option_labels(product, selection):
    """(density label, lace size label) for the selection; "" when unset."""
    density = product.find_density(selection.density)
    lace = product.find_lace_size(selection.lace_size)
    return (
        density.label if density else (selection.density or "").strip(),
        lace.label if lace else (selection.lace_size or ""),
    )


def full_product_name(product, selection):
    """Display name with the chosen options appended, as used at checkout."""
    parts = [product.name]
    if product.has_length_options and selection.length:
        parts.append(selection.length)
    if product.density_options and selection.density:
        parts.append(selection.density)
    if product.lace_size_options and selection.lace_size:
        parts.append(option_labels(product, selection)[1])
    return " - ".join(parts)

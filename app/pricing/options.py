"""Option model for configurable hair products.

Stored records keep the three option dimensions as JSON arrays. Older
records were written by the storefront's JS admin, so the loader accepts
camelCase keys, JSON-encoded strings and bare-string densities alongside
the current snake_case shape. Everything is coerced once here; pricing and
cart code downstream trust the typed objects.
"""
import json
import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional

from app.pricing.identity import make_length_id, strip_length_suffix

logger = logging.getLogger(__name__)

DEFAULT_RATING = 4.5
DEFAULT_LACE_LABEL = "Lace size"
DEFAULT_SHIPPING_FEE = 2500
DEFAULT_CATEGORY = "Wigs"


@dataclass
class LengthOption:
    value: str
    label: str = ""
    price: int = 0
    original_price: Optional[int] = None
    lace_size: str = ""
    id: str = ""

    def __post_init__(self):
        self.value = strip_length_suffix(self.value)
        if not self.id:
            self.id = make_length_id(self.value)

    def to_record(self):
        return {
            "id": self.id,
            "value": self.value,
            "label": self.label,
            "price": self.price,
            "original_price": self.original_price,
            "lace_size": self.lace_size,
        }


@dataclass
class LaceSizeOption:
    value: str
    label: str = ""
    # Flat amount added to the price, not a ratio.
    price_multiplier: int = 0

    def to_record(self):
        return {
            "value": self.value,
            "label": self.label,
            "price_multiplier": self.price_multiplier,
        }


@dataclass
class PriceMatrixRow:
    length_id: str
    length_value: str
    price: int

    def to_record(self):
        return {
            "length_id": self.length_id,
            "length_value": self.length_value,
            "price": self.price,
        }


@dataclass
class DensityOption:
    value: str
    label: str = ""
    additional_price: int = 0
    prices: List[PriceMatrixRow] = field(default_factory=list)

    def to_record(self):
        return {
            "value": self.value,
            "label": self.label,
            "additional_price": self.additional_price,
            "prices": [row.to_record() for row in self.prices],
        }


@dataclass
class CatalogProduct:
    id: int
    name: str = ""
    price: int = 0
    original_price: Optional[int] = None
    in_stock: bool = True
    rating: float = DEFAULT_RATING
    category: str = DEFAULT_CATEGORY
    description: str = ""
    lace_label: str = DEFAULT_LACE_LABEL
    shipping_fee: int = DEFAULT_SHIPPING_FEE
    images: List[str] = field(default_factory=list)
    length_options: List[LengthOption] = field(default_factory=list)
    lace_size_options: List[LaceSizeOption] = field(default_factory=list)
    density_options: List[DensityOption] = field(default_factory=list)

    @property
    def has_length_options(self):
        return bool(self.length_options)

    def find_length(self, value):
        if not value:
            return None
        wanted = strip_length_suffix(value)
        for option in self.length_options:
            if option.value == wanted:
                return option
        return None

    def find_lace_size(self, value):
        if not value:
            return None
        for option in self.lace_size_options:
            if option.value == value:
                return option
        return None

    def find_density(self, value):
        if not value or not value.strip():
            return None
        for option in self.density_options:
            if option.value == value:
                return option
        return None

    def to_record(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "original_price": self.original_price,
            "in_stock": self.in_stock,
            "rating": self.rating,
            "category": self.category,
            "description": self.description,
            "lace_label": self.lace_label,
            "shipping_fee": self.shipping_fee,
            "images": list(self.images),
            "length_options": [o.to_record() for o in self.length_options],
            "lace_size_options": [o.to_record() for o in self.lace_size_options],
            "density_options": [o.to_record() for o in self.density_options],
        }


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def to_amount(value):
    """Coerce a stored or typed price ("25,000", 25000.0, None) to an int.

    Anything unreadable, including NaN and infinity, becomes 0 so that
    validation rejects it as a missing price.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if not isinstance(value, float):
        cleaned = re.sub(r"[^\d.\-]", "", str(value))
        try:
            value = float(cleaned)
        except ValueError:
            return 0
    if not math.isfinite(value):
        return 0
    return int(round(value))


def to_optional_amount(value):
    amount = to_amount(value)
    return amount if amount else None


def parse_json_list(raw):
    """Return a list from a JSON column that may hold a list, a string or null."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Ignoring malformed option column: %.80s", raw)
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _pick(item, *keys, default=None):
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return default


def to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def parse_length_options(raw):
    options = []
    for item in parse_json_list(raw):
        if isinstance(item, str):
            item = {"value": item}
        if not isinstance(item, dict):
            continue
        value = strip_length_suffix(_pick(item, "value", default=""))
        options.append(
            LengthOption(
                value=value,
                label=_pick(item, "label", default="") or value,
                price=to_amount(_pick(item, "price")),
                original_price=to_optional_amount(
                    _pick(item, "original_price", "originalPrice")
                ),
                lace_size=_pick(item, "lace_size", "laceSize", default="") or "",
                id=_pick(item, "id", default="") or make_length_id(value),
            )
        )
    return options


def parse_lace_size_options(raw):
    options = []
    for item in parse_json_list(raw):
        if isinstance(item, str):
            item = {"value": item}
        if not isinstance(item, dict):
            continue
        value = str(_pick(item, "value", default="")).strip()
        if not value:
            continue
        options.append(
            LaceSizeOption(
                value=value,
                label=_pick(item, "label", default="") or value,
                price_multiplier=to_amount(
                    _pick(item, "price_multiplier", "priceMultiplier")
                ),
            )
        )
    return options


def parse_density_options(raw):
    options = []
    for item in parse_json_list(raw):
        if isinstance(item, str):
            options.append(DensityOption(value=item, label=item))
            continue
        if not isinstance(item, dict):
            continue
        rows = []
        for row in _pick(item, "prices", default=[]) or []:
            if not isinstance(row, dict):
                continue
            rows.append(
                PriceMatrixRow(
                    length_id=_pick(row, "length_id", "lengthId", default="") or "",
                    length_value=_pick(row, "length_value", "lengthValue", default="") or "",
                    price=to_amount(_pick(row, "price")),
                )
            )
        value = _pick(item, "value", default="") or ""
        options.append(
            DensityOption(
                value=value,
                label=_pick(item, "label", default="") or value,
                additional_price=to_amount(
                    _pick(item, "additional_price", "additionalPrice")
                ),
                prices=rows,
            )
        )
    return options


def load_product(record):
    """Build a ``CatalogProduct`` from a stored record or admin payload."""
    lengths = parse_length_options(
        _pick(record, "length_options", "lengthOptions")
    )
    price = to_amount(_pick(record, "price"))
    original_price = to_optional_amount(
        _pick(record, "original_price", "originalPrice")
    )
    # The first length is the base variant and drives the product price.
    if lengths:
        price = lengths[0].price or price
        original_price = lengths[0].original_price or original_price

    rating = _pick(record, "rating")
    try:
        rating = float(rating) if rating is not None else DEFAULT_RATING
    except (TypeError, ValueError):
        rating = DEFAULT_RATING

    images = [
        img for img in parse_json_list(_pick(record, "images"))
        if isinstance(img, str) and img.strip()
    ]

    return CatalogProduct(
        id=int(_pick(record, "id", default=0) or 0),
        name=_pick(record, "name", default="") or "",
        price=price,
        original_price=original_price,
        in_stock=to_bool(_pick(record, "in_stock", "inStock", default=True)),
        rating=rating,
        category=(_pick(record, "category", default="") or DEFAULT_CATEGORY).strip(),
        description=_pick(record, "description", default="") or "",
        lace_label=_pick(record, "lace_label", "laceLabel", default="") or DEFAULT_LACE_LABEL,
        shipping_fee=to_amount(_pick(record, "shipping_fee", "shippingFee"))
        or DEFAULT_SHIPPING_FEE,
        images=images,
        length_options=lengths,
        lace_size_options=parse_lace_size_options(
            _pick(record, "lace_size_options", "laceSizeOptions")
        ),
        density_options=parse_density_options(
            _pick(record, "density_options", "densityOptions")
        ),
    )


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------

def rebuild_price_matrix(density, lengths):
    """Return a fresh matrix with exactly one row per current length.

    Prices already entered for a surviving length id are carried over;
    new lengths start at their own base price.
    """
    existing = {row.length_id: row.price for row in density.prices if row.length_id}
    return [
        PriceMatrixRow(
            length_id=length.id,
            length_value=length.value,
            price=existing.get(length.id, length.price),
        )
        for length in lengths
    ]


def prepare_for_save(product, length_options_enabled=True):
    """Normalize a product immediately before it is written to the catalog.

    Run ``validate_for_save`` first; this function coerces, it does not
    reject.
    """
    if length_options_enabled:
        lengths = []
        for option in product.length_options:
            value = strip_length_suffix(option.value)
            if not value or option.price <= 0:
                continue
            lengths.append(
                replace(
                    option,
                    value=value,
                    id=make_length_id(value),
                    label=option.label or f"{value} inches",
                )
            )
    else:
        lengths = []

    laces = [replace(o) for o in product.lace_size_options if o.value.strip()]
    if laces:
        laces[0].price_multiplier = 0

    densities = []
    for option in product.density_options:
        if not option.value or not option.value.strip():
            continue
        densities.append(
            replace(
                option,
                label=option.label or option.value,
                prices=rebuild_price_matrix(option, lengths),
            )
        )
    if densities:
        densities[0].additional_price = 0

    price, original_price = product.price, product.original_price
    if lengths:
        price = lengths[0].price
        original_price = lengths[0].original_price

    return replace(
        product,
        price=price,
        original_price=original_price,
        length_options=lengths,
        lace_size_options=laces,
        density_options=densities,
        lace_label=(product.lace_label or DEFAULT_LACE_LABEL) if laces else "",
        category=(product.category or DEFAULT_CATEGORY).strip(),
        shipping_fee=product.shipping_fee or DEFAULT_SHIPPING_FEE,
    )


# ---------------------------------------------------------------------------
# Admin editing
# ---------------------------------------------------------------------------

def _auto_length_labels(value):
    if not value:
        return {""}
    return {"", value, f"{value}inches", f"{value} inches"}


def rename_length(lengths, densities, index, raw_value):
    """Change a length's value and keep every id that depends on it in step.

    Returns new ``(lengths, densities)`` lists. Matrix rows that pointed at
    the old id are re-keyed to the new one before the matrix is rebuilt, so
    an admin-entered price follows the length it was entered for.
    """
    old = lengths[index]
    value = re.sub(r"[^0-9]", "", strip_length_suffix(raw_value))
    new_id = make_length_id(value)

    label = old.label
    if label in _auto_length_labels(old.value):
        label = f"{value} inches" if value else ""

    new_lengths = list(lengths)
    new_lengths[index] = replace(old, value=value, id=new_id, label=label)

    new_densities = []
    for density in densities:
        rows = [
            replace(row, length_id=new_id, length_value=value)
            if row.length_id == old.id else row
            for row in density.prices
        ]
        rekeyed = replace(density, prices=rows)
        new_densities.append(
            replace(rekeyed, prices=rebuild_price_matrix(rekeyed, new_lengths))
        )
    return new_lengths, new_densities


def remove_length(lengths, densities, index):
    if len(lengths) <= 1:
        return list(lengths), list(densities)
    new_lengths = [o for i, o in enumerate(lengths) if i != index]
    new_densities = [
        replace(d, prices=rebuild_price_matrix(d, new_lengths)) for d in densities
    ]
    return new_lengths, new_densities


def remove_density(densities, index):
    """Remove a density; dropping the base promotes the next one at zero cost."""
    if index == 0 and len(densities) > 1:
        updated = [replace(o) for o in densities[1:]]
        updated[0].additional_price = 0
        return updated
    if index > 0:
        return [o for i, o in enumerate(densities) if i != index]
    return list(densities)


def rename_density(densities, index, new_value):
    """Change a density's value, regenerating its label if it was auto-made."""
    current = densities[index]
    auto_label = f"{current.value.replace('%', '')}% Density"
    label = current.label
    if not label or label == auto_label:
        label = f"{new_value.replace('%', '')}% Density" if new_value else ""
    updated = list(densities)
    updated[index] = replace(current, value=new_value, label=label)
    return updated

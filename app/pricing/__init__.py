"""Variant pricing: option identity, option model, price composition, validation."""
from app.pricing.identity import make_length_id, strip_length_suffix
from app.pricing.options import (
    CatalogProduct,
    DensityOption,
    LaceSizeOption,
    LengthOption,
    PriceMatrixRow,
    load_product,
    prepare_for_save,
    rebuild_price_matrix,
)
from app.pricing.composition import (
    PriceQuote,
    Selection,
    compute_price,
    customer_pays,
    discount_percentage,
)
from app.pricing.validation import (
    ProductValidationError,
    find_duplicates,
    validate_for_save,
)

__all__ = [
    "CatalogProduct",
    "DensityOption",
    "LaceSizeOption",
    "LengthOption",
    "PriceMatrixRow",
    "PriceQuote",
    "ProductValidationError",
    "Selection",
    "compute_price",
    "customer_pays",
    "discount_percentage",
    "find_duplicates",
    "load_product",
    "make_length_id",
    "prepare_for_save",
    "rebuild_price_matrix",
    "strip_length_suffix",
    "validate_for_save",
]

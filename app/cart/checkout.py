"""Read-only snapshots handed to the checkout/payment component."""
from app.pricing.composition import (
    compute_price,
    discount_percentage,
    full_product_name,
    option_labels,
)
from app.pricing.options import DEFAULT_SHIPPING_FEE


def _item(product_id, name, price, original_price, quantity, options):
    item = {
        "product_id": str(product_id),
        "name": name,
        "price": price,
        "original_price": original_price,
        "quantity": quantity,
        "line_total": price * quantity,
        "options": options,
    }
    discount = discount_percentage(price, original_price)
    if discount > 0:
        item["discount"] = discount
    return item


def _options(length, density, density_label, lace_size, lace_size_label, lace_label):
    return {
        "length": length,
        "density": density,
        "density_label": density_label,
        "lace_size": lace_size,
        "lace_size_label": lace_size_label,
        "lace_label": lace_label,
    }


def checkout_snapshot(lines, shipping_fee=DEFAULT_SHIPPING_FEE):
    """Cart checkout payload. Out-of-stock lines are excluded from payment."""
    items = [
        _item(
            line.product_id,
            line.name,
            line.price,
            line.original_price,
            line.quantity,
            _options(
                line.selected_length,
                line.selected_density,
                line.density_label or line.selected_density,
                line.selected_lace_size,
                line.lace_size_label or line.selected_lace_size,
                line.lace_label,
            ),
        )
        for line in lines
        if line.in_stock
    ]
    subtotal = sum(item["line_total"] for item in items)
    return {
        "items": items,
        "subtotal": subtotal,
        "shipping_fee": shipping_fee,
        "total": subtotal + shipping_fee,
        "excluded": [line.id for line in lines if not line.in_stock],
    }


def buy_now_item(product, selection, quantity=1):
    """Single-product checkout for "buy now", skipping the cart."""
    quote = compute_price(product, selection)
    density_label, lace_size_label = option_labels(product, selection)
    item = _item(
        product.id,
        full_product_name(product, selection),
        quote.price,
        quote.original_price,
        max(quantity, 1),
        _options(
            selection.length,
            selection.density,
            density_label,
            selection.lace_size,
            lace_size_label,
            product.lace_label if product.lace_size_options else "",
        ),
    )
    item["shipping_fee"] = product.shipping_fee or DEFAULT_SHIPPING_FEE
    return item

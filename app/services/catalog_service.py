"""Catalog load/save contract over the ``products`` table.

Every write publishes a catalog change event and enqueues a re-sync of
persisted carts; readers never patch carts incrementally, they reload the
whole catalog through ``load_all_products``.
"""
import logging
from datetime import datetime, timezone

from rq import Retry

from app import extensions
from app.extensions import db
from app.models.audit_log import AuditLog
from app.models.product import Product
from app.pricing.options import load_product, prepare_for_save, to_bool
from app.pricing.validation import validate_for_save

logger = logging.getLogger(__name__)


def load_all_products():
    """Full catalog snapshot, newest first."""
    rows = Product.query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return [row.to_catalog_product() for row in rows]


def get_product(product_id):
    row = db.session.get(Product, product_id)
    return row.to_catalog_product() if row else None


def _length_options_enabled(payload, product):
    enabled = payload.get("length_options_enabled")
    if enabled is None:
        return bool(product.length_options)
    return to_bool(enabled)


def save_product(payload, admin_id, product_id=None):
    """Validate, normalize and write a product from the admin editor.

    Raises ``ProductValidationError`` before anything is written. Returns
    the saved ``CatalogProduct``, or None when ``product_id`` does not exist.
    """
    product = load_product({**payload, "id": product_id or 0})
    enabled = _length_options_enabled(payload, product)
    validate_for_save(product, enabled)
    prepared = prepare_for_save(product, enabled)

    if product_id is not None:
        row = db.session.get(Product, product_id)
        if not row:
            return None
        action = "UPDATE_PRODUCT"
    else:
        row = Product()
        db.session.add(row)
        action = "CREATE_PRODUCT"

    row.apply_record(prepared.to_record())
    row.updated_at = datetime.now(timezone.utc)
    db.session.flush()  # get row.id

    record_audit(
        admin_id,
        action,
        row.id,
        {
            "name": row.name,
            "price": row.price,
            "lengths": [o["value"] for o in row.length_options or []],
        },
    )
    db.session.commit()

    saved = row.to_catalog_product()
    notify_catalog_changed(saved.to_record())
    return saved


def set_stock(product_id, in_stock, admin_id):
    row = db.session.get(Product, product_id)
    if not row:
        return None
    row.in_stock = bool(in_stock)
    row.updated_at = datetime.now(timezone.utc)
    record_audit(admin_id, "SET_STOCK", row.id, {"in_stock": row.in_stock})
    db.session.commit()
    notify_catalog_changed(row.to_record())
    return row.to_catalog_product()


def update_price(product_id, new_price, admin_id):
    """Change the base price. With length options the base length moves too."""
    row = db.session.get(Product, product_id)
    if not row:
        return None
    old_price = row.price
    lengths = [dict(o) for o in row.length_options or []]
    if lengths:
        lengths[0]["price"] = new_price
        row.length_options = lengths
    row.price = new_price
    row.updated_at = datetime.now(timezone.utc)
    record_audit(
        admin_id, "EDIT_PRICE", row.id,
        {"old_price": old_price, "new_price": new_price},
    )
    db.session.commit()
    notify_catalog_changed(row.to_record())
    return row.to_catalog_product()


def delete_product(product_id, admin_id):
    row = db.session.get(Product, product_id)
    if not row:
        return False
    record_audit(
        admin_id, "DELETE_PRODUCT", None, {"product_id": row.id, "name": row.name}
    )
    db.session.delete(row)
    db.session.commit()
    notify_catalog_changed(None)
    return True


def record_audit(admin_id, action, product_id, payload):
    """Stage an audit entry in the current session; the caller commits."""
    if action not in AuditLog.ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")
    db.session.add(
        AuditLog(
            admin_id=str(admin_id),
            action=action,
            product_id=product_id,
            payload=payload,
        )
    )


def notify_catalog_changed(record):
    """Publish a change event and queue a re-sync of stored carts.

    The catalog write has already committed; a failure here only delays
    cart updates until the next event or sync run.
    """
    event = {"product": record} if record else None
    try:
        extensions.catalog_feed.publish(event)
    except Exception:
        logger.exception("Failed to publish catalog change event")

    try:
        extensions.task_queue.enqueue(
            "app.workers.cart_sync.sync_persisted_carts",
            job_timeout=300,
            retry=Retry(max=2, interval=[10, 60]),
        )
    except Exception:
        logger.exception("Failed to enqueue cart sync job")


def get_stats():
    """Product counts by stock state for the ``stats`` command."""
    rows = (
        db.session.query(Product.in_stock, db.func.count(Product.id))
        .group_by(Product.in_stock)
        .all()
    )
    return {("in stock" if in_stock else "out of stock"): n for in_stock, n in rows}

"""Shopper-facing JSON endpoints: catalog, price quotes, cart, checkout."""
import uuid
from flask import abort, current_app, jsonify, request, session
from redis.exceptions import LockError
from app.blueprints.shop import shop_bp
from app.cart.checkout import buy_now_item, checkout_snapshot
from app.pricing.composition import compute_price, full_product_name, resolve_selection
from app.services import cart_service, catalog_service

SESSION_KEY = "cart_session"


def _session_id():
    """Stable cart key for this browser session."""
    if SESSION_KEY not in session:
        session[SESSION_KEY] = uuid.uuid4().hex
        session.permanent = True
    return session[SESSION_KEY]


def _selection_from(source, product):
    return resolve_selection(
        product,
        length=source.get("length", "") or "",
        density=source.get("density", "") or "",
        lace_size=source.get("lace_size", "") or "",
    )


def _product_or_404(product_id):
    product = catalog_service.get_product(product_id)
    if product is None:
        abort(404)
    return product


@shop_bp.route("/products")
def list_products():
    """Catalog with each product's default price."""
    products = catalog_service.load_all_products()
    return jsonify([
        {
            **p.to_record(),
            "quote": compute_price(p, resolve_selection(p)).to_dict(),
        }
        for p in products
    ])


@shop_bp.route("/products/<int:product_id>")
def product_detail(product_id):
    product = _product_or_404(product_id)
    return jsonify(product.to_record())


@shop_bp.route("/products/<int:product_id>/price")
def price_quote(product_id):
    """Price for a selection, e.g. ``?length=18&density=200%&lace_size=13x4``."""
    product = _product_or_404(product_id)
    selection = _selection_from(request.args, product)
    return jsonify({
        "selection": {
            "length": selection.length,
            "density": selection.density,
            "lace_size": selection.lace_size,
        },
        "name": full_product_name(product, selection),
        **compute_price(product, selection).to_dict(),
    })


@shop_bp.route("/cart")
def get_cart():
    with cart_service.cart_session(_session_id()) as store:
        return jsonify(cart_service.cart_payload(store))


@shop_bp.route("/cart/find/<product_id>")
def find_in_cart(product_id):
    store = cart_service.open_cart(_session_id(), reconcile=False)
    line = store.find(product_id)
    if line is None:
        abort(404)
    return jsonify(line.to_dict())


@shop_bp.route("/cart/items", methods=["POST"])
def add_item():
    data = request.get_json(silent=True) or {}
    try:
        product_id = int(data.get("product_id"))
    except (TypeError, ValueError):
        return {"error": "product_id is required"}, 400

    product = _product_or_404(product_id)
    store, line = cart_service.add_to_cart(
        _session_id(), product, _selection_from(data, product)
    )
    if line is None:
        return {"error": "Product is out of stock"}, 409
    return {"line": line.to_dict(), **cart_service.cart_payload(store)}, 201


@shop_bp.route("/cart/items/<line_id>", methods=["PATCH"])
def update_item(line_id):
    data = request.get_json(silent=True) or {}
    try:
        quantity = int(data.get("quantity"))
    except (TypeError, ValueError):
        return {"error": "quantity must be an integer"}, 400

    with cart_service.cart_session(_session_id()) as store:
        if store.get(line_id) is None:
            abort(404)
        store.set_quantity(line_id, quantity)
        return jsonify(cart_service.cart_payload(store))


@shop_bp.route("/cart/items/<line_id>", methods=["DELETE"])
def remove_item(line_id):
    with cart_service.cart_session(_session_id(), reconcile=False) as store:
        if not store.remove(line_id):
            abort(404)
        return jsonify(cart_service.cart_payload(store))


@shop_bp.route("/cart", methods=["DELETE"])
def clear_cart():
    with cart_service.cart_session(_session_id(), reconcile=False) as store:
        store.clear()
        return jsonify(cart_service.cart_payload(store))


@shop_bp.route("/checkout")
def checkout():
    """Snapshot consumed by the payment handoff."""
    with cart_service.cart_session(_session_id()) as store:
        lines = store.lines
    return jsonify(
        checkout_snapshot(lines, current_app.config["DEFAULT_SHIPPING_FEE"])
    )


@shop_bp.route("/checkout/buy-now", methods=["POST"])
def buy_now():
    data = request.get_json(silent=True) or {}
    try:
        product_id = int(data.get("product_id"))
        quantity = int(data.get("quantity", 1))
    except (TypeError, ValueError):
        return {"error": "product_id and quantity must be integers"}, 400

    product = _product_or_404(product_id)
    if not product.in_stock:
        return {"error": "Product is out of stock"}, 409
    return jsonify(buy_now_item(product, _selection_from(data, product), quantity))


@shop_bp.errorhandler(LockError)
def cart_busy(error):
    return {"error": "Cart is busy, please retry"}, 503

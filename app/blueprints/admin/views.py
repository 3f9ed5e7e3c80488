"""Admin product editor endpoints.

Security: every request must carry ``X-Admin-Token`` matching
ADMIN_API_TOKEN. ``X-Admin-Id`` names the editor in the audit log.
"""
import hmac
import logging
from flask import abort, current_app, g, jsonify, request
from app.blueprints.admin import admin_bp
from app.pricing.composition import customer_pays
from app.pricing.options import load_product
from app.pricing.validation import ProductValidationError, duplicate_report
from app.services import catalog_service

logger = logging.getLogger(__name__)


@admin_bp.before_request
def require_admin_token():
    expected = current_app.config["ADMIN_API_TOKEN"]
    token = request.headers.get("X-Admin-Token", "")
    if not expected or not hmac.compare_digest(token, expected):
        logger.warning("Rejected admin request to %s", request.path)
        abort(403)
    g.admin_id = request.headers.get("X-Admin-Id", "admin")


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400)
    return data


def _validation_response(error):
    return {"error": "validation_failed", **error.to_dict()}, 422


@admin_bp.route("/products", methods=["POST"])
def create_product():
    try:
        product = catalog_service.save_product(_json_body(), g.admin_id)
    except ProductValidationError as e:
        return _validation_response(e)
    return product.to_record(), 201


@admin_bp.route("/products/<int:product_id>", methods=["PUT"])
def update_product(product_id):
    try:
        product = catalog_service.save_product(
            _json_body(), g.admin_id, product_id=product_id
        )
    except ProductValidationError as e:
        return _validation_response(e)
    if product is None:
        abort(404)
    return product.to_record()


@admin_bp.route("/products/<int:product_id>/stock", methods=["POST"])
def set_stock(product_id):
    data = _json_body()
    if "in_stock" not in data:
        return {"error": "in_stock is required"}, 400
    product = catalog_service.set_stock(product_id, data["in_stock"], g.admin_id)
    if product is None:
        abort(404)
    return product.to_record()


@admin_bp.route("/products/<int:product_id>/price", methods=["POST"])
def edit_price(product_id):
    data = _json_body()
    try:
        price = int(data.get("price"))
    except (TypeError, ValueError):
        return {"error": "price must be an integer"}, 400
    if price <= 0:
        return {"error": "price must be positive"}, 400
    product = catalog_service.update_price(product_id, price, g.admin_id)
    if product is None:
        abort(404)
    return product.to_record()


@admin_bp.route("/products/<int:product_id>", methods=["DELETE"])
def delete_product(product_id):
    if not catalog_service.delete_product(product_id, g.admin_id):
        abort(404)
    return "", 204


@admin_bp.route("/products/duplicates", methods=["POST"])
def check_duplicates():
    """Advisory duplicate check for the editor; nothing is saved."""
    report = duplicate_report(load_product(_json_body()))
    return jsonify({dim: sorted(indices) for dim, indices in report.items()})


@admin_bp.route("/fee-calculator")
def fee_calculator():
    amount = request.args.get("amount", type=int)
    if amount is None or amount < 0:
        return {"error": "amount must be a non-negative integer"}, 400
    return {"amount": amount, "customer_pays": customer_pays(amount)}

from flask import Blueprint

shop_bp = Blueprint("shop", __name__)

from app.blueprints.shop import views  # noqa: F401, E402

"""Tests for the catalog models."""
from app.models.audit_log import AuditLog
from app.models.product import Product
from app.pricing.options import prepare_for_save

from conftest import wig_record


def test_product_defaults(app, db):
    with app.app_context():
        p = Product(name="Edge Gel", price=6500)
        db.session.add(p)
        db.session.flush()
        assert p.in_stock is True
        assert p.category == "Wigs"
        assert p.shipping_fee == 2500
        assert p.created_at is not None


def test_product_record_round_trip(app, db, wig):
    with app.app_context():
        prepared = prepare_for_save(wig)
        p = Product()
        p.apply_record(prepared.to_record())
        db.session.add(p)
        db.session.commit()

        loaded = db.session.get(Product, p.id).to_catalog_product()
        assert loaded.id == p.id
        assert [o.id for o in loaded.length_options] == ["length-14", "length-18"]
        assert loaded.density_options[1].prices[1].price == 45000
        assert loaded.price == 25000
        assert loaded.original_price == 30000


def test_legacy_json_is_normalized_on_load(app, db):
    with app.app_context():
        p = Product(
            name="Old import",
            price=1000,
            length_options=[{"value": "16 Inches", "price": 20000}],
            density_options=["180%"],
        )
        db.session.add(p)
        db.session.commit()
        product = p.to_catalog_product()
        assert product.length_options[0].id == "length-16"
        assert product.density_options[0].label == "180%"
        assert product.price == 20000


def test_audit_log_records_admin(app, db):
    with app.app_context():
        p = Product(**{k: v for k, v in wig_record().items()
                       if k in ("name", "price", "in_stock")})
        db.session.add(p)
        db.session.flush()
        db.session.add(AuditLog(admin_id="tester", action="SET_STOCK",
                                product_id=p.id, payload={"in_stock": False}))
        db.session.commit()
        entry = AuditLog.query.filter_by(product_id=p.id).one()
        assert entry.action in AuditLog.ACTIONS
        assert entry.payload == {"in_stock": False}

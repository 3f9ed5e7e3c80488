import pytest
from app import create_app
from app import extensions
from app.cart.feed import InMemoryChangeFeed
from app.cart.storage import InMemoryCartStorage
from app.extensions import db as _db


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Per-test database: tables emptied afterwards."""
    with app.app_context():
        yield _db
        _db.session.rollback()
        for table in reversed(_db.metadata.sorted_tables):
            _db.session.execute(table.delete())
        _db.session.commit()


@pytest.fixture(autouse=True)
def local_backends(app):
    """Fresh in-memory cart storage and change feed for every test."""
    extensions.cart_storage = InMemoryCartStorage()
    extensions.catalog_feed = InMemoryChangeFeed()
    yield


@pytest.fixture
def admin_headers(app):
    return {
        "X-Admin-Token": app.config["ADMIN_API_TOKEN"],
        "X-Admin-Id": "tester",
    }


def wig_record(**overrides):
    """Stored record for a frontal wig with all three option dimensions."""
    record = {
        "id": 7,
        "name": "Bone Straight Frontal",
        "price": 0,
        "in_stock": True,
        "images": ["https://cdn.example.com/bone-straight.jpg"],
        "lace_label": "Lace size",
        "length_options": [
            {"value": "14", "label": "14 inches", "price": 25000, "original_price": 30000},
            {"value": "18", "label": "18 inches", "price": 30000, "original_price": 36000},
        ],
        "lace_size_options": [
            {"value": "4x4", "label": "4x4 Closure", "price_multiplier": 0},
            {"value": "13x4", "label": "13x4 Frontal", "price_multiplier": 5000},
        ],
        "density_options": [
            {"value": "180%", "label": "180% Density", "additional_price": 0, "prices": []},
            {
                "value": "200%",
                "label": "200% Density",
                "additional_price": 8000,
                "prices": [
                    {"length_id": "length-14", "length_value": "14", "price": 35000},
                    {"length_id": "length-18", "length_value": "18", "price": 45000},
                ],
            },
            {"value": "250%", "label": "250% Density", "additional_price": 12000, "prices": []},
        ],
    }
    record.update(overrides)
    return record


@pytest.fixture
def wig():
    from app.pricing.options import load_product

    return load_product(wig_record())

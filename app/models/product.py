from datetime import datetime, timezone
from app.extensions import db
from app.pricing.options import load_product


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    category = db.Column(db.String(100), nullable=False, default="Wigs")
    price = db.Column(db.Integer, nullable=False, default=0)  # whole naira
    original_price = db.Column(db.Integer)
    in_stock = db.Column(db.Boolean, nullable=False, default=True, index=True)
    rating = db.Column(db.Float, nullable=False, default=4.5)
    lace_label = db.Column(db.String(100), default="")
    shipping_fee = db.Column(db.Integer, nullable=False, default=2500)
    images = db.Column(db.JSON, default=list)
    length_options = db.Column(db.JSON, default=list)
    lace_size_options = db.Column(db.JSON, default=list)
    density_options = db.Column(db.JSON, default=list)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    RECORD_FIELDS = (
        "name",
        "description",
        "category",
        "price",
        "original_price",
        "in_stock",
        "rating",
        "lace_label",
        "shipping_fee",
        "images",
        "length_options",
        "lace_size_options",
        "density_options",
    )

    def to_record(self):
        record = {field: getattr(self, field) for field in self.RECORD_FIELDS}
        record["id"] = self.id
        return record

    def apply_record(self, record):
        """Copy a prepared record (see ``prepare_for_save``) onto the row."""
        for field in self.RECORD_FIELDS:
            setattr(self, field, record[field])

    def to_catalog_product(self):
        return load_product(self.to_record())

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"

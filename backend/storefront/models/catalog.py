from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog entry.

    Prices are stored in cents. Products are never hard-deleted: historical
    orders keep pointing at them, so removal only clears is_active.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        db.Index("ix_products_active_price", "is_active", "base_price_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(100), nullable=False, index=True)

    base_price_cents = db.Column(db.Integer, nullable=False)

    # JSON array of image URLs
    images = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship(
        "Variant",
        back_populates="product",
        order_by="Variant.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} active={self.is_active}>"

    def find_variant(self, variant_key: str) -> "Variant | None":
        for variant in self.variants:
            if variant.variant_key == variant_key:
                return variant
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "base_price": str(from_cents(self.base_price_cents)),
            "variants": [v.to_dict() for v in self.variants],
            "images": list(self.images or []),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Variant(db.Model):
    """
    Purchasable SKU within a product.

    variant_key is the caller-facing variant identifier, unique within its
    product. SKU is unique across the whole catalog. inventory never drops
    below zero; the CHECK constraint backs up the conditional decrement in
    catalog_service.reserve().
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "variant_key", name="uq_variants_product_key"),
        db.UniqueConstraint("sku", name="uq_variants_sku"),
        db.CheckConstraint("inventory >= 0", name="ck_variants_inventory_nonnegative"),
        db.CheckConstraint("price_cents >= 0", name="ck_variants_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    variant_key = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    inventory = db.Column(db.Integer, nullable=False, default=0)

    # str -> str mapping such as {"color": "red", "size": "M"}; compared as a dict
    attributes = db.Column(db.JSON, nullable=False, default=dict)

    # Display order within the product
    position = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<Variant id={self.id} key={self.variant_key!r} sku={self.sku!r} inventory={self.inventory}>"

    def to_dict(self) -> dict:
        return {
            "id": self.variant_key,
            "name": self.name,
            "sku": self.sku,
            "price": str(from_cents(self.price_cents)),
            "inventory": self.inventory,
            "attributes": dict(self.attributes or {}),
        }

from __future__ import annotations

from ..extensions import db
from ..money import from_cents, line_total
from ..time_utils import to_utc_z


class Cart(db.Model):
    """
    Mutable pre-purchase aggregate for one guest token.

    total_cents is a cache: cart_service recomputes it from the items on every
    mutation and never adjusts it incrementally. At most one promo is applied
    at a time (applied_promo_code + applied_discount_cents).
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("guest_token", name="uq_carts_guest_token"),
        db.Index("ix_carts_expires_at", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    guest_token = db.Column(db.String(64), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)

    applied_promo_code = db.Column(db.String(50), nullable=True)
    applied_discount_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "CartItem",
        back_populates="cart",
        order_by="CartItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Cart id={self.id} token={self.guest_token!r} items={len(self.items)}>"

    @property
    def total_amount(self):
        return from_cents(self.total_cents)

    @property
    def applied_promotion(self) -> dict | None:
        if self.applied_promo_code is None:
            return None
        return {
            "code": self.applied_promo_code,
            "discount_amount": str(from_cents(self.applied_discount_cents or 0)),
        }

    def find_item(self, product_id: int, variant_key: str) -> "CartItem | None":
        for item in self.items:
            if item.product_id == product_id and item.variant_key == variant_key:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "guest_token": self.guest_token,
            "items": [item.to_dict() for item in self.items],
            "total_amount": str(self.total_amount),
            "applied_promo": self.applied_promotion,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class CartItem(db.Model):
    """Line item; unit_price_cents is captured when the line is first added."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", "variant_key", name="uq_cart_items_line"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    variant_key = db.Column(db.String(100), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cart = db.relationship("Cart", back_populates="items")
    product = db.relationship("Product")

    @property
    def unit_price(self):
        return from_cents(self.unit_price_cents)

    @property
    def line_total(self):
        return line_total(self.quantity, self.unit_price)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_key,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "item_total": str(self.line_total),
        }

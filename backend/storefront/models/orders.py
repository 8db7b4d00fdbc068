from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_CONFIRMED = "confirmed"
ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_SHIPPED = "shipped"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_CONFIRMED,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
)

SHIPPING_ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
)


class Order(db.Model):
    """
    Immutable purchase record.

    Items are frozen copies of catalog data, so later catalog edits never
    change a historical order. Only status moves after creation.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "ORD-1760870400000-K3Z9QX"
    order_number = db.Column(db.String(64), nullable=False)
    guest_token = db.Column(db.String(64), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    promo_code = db.Column(db.String(50), nullable=True)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)

    # Shipping address (immutable sub-record)
    ship_first_name = db.Column(db.String(100), nullable=False)
    ship_last_name = db.Column(db.String(100), nullable=False)
    ship_email = db.Column(db.String(200), nullable=False)
    ship_phone = db.Column(db.String(20), nullable=False)
    ship_address = db.Column(db.String(500), nullable=False)
    ship_city = db.Column(db.String(100), nullable=False)
    ship_state = db.Column(db.String(100), nullable=False)
    ship_zip_code = db.Column(db.String(20), nullable=False)
    ship_country = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status} total_cents={self.total_cents}>"

    @property
    def shipping_address(self) -> dict:
        return {field: getattr(self, f"ship_{field}") for field in SHIPPING_ADDRESS_FIELDS}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "guest_token": self.guest_token,
            "items": [item.to_dict() for item in self.items],
            "subtotal": str(from_cents(self.subtotal_cents)),
            "discount_amount": str(from_cents(self.discount_cents)),
            "promo_code": self.promo_code,
            "total_amount": str(from_cents(self.total_cents)),
            "status": self.status,
            "shipping_address": self.shipping_address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Frozen copy of one cart line at checkout."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Plain references, not foreign keys into live catalog state
    product_id = db.Column(db.Integer, nullable=False)
    variant_key = db.Column(db.String(100), nullable=False)

    product_name = db.Column(db.String(200), nullable=False)
    variant_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_key,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price": str(from_cents(self.unit_price_cents)),
            "total_price": str(from_cents(self.line_total_cents)),
        }

from __future__ import annotations

from ..extensions import db
from ..money import PROMO_TYPE_PERCENTAGE, bps_to_percent, from_cents
from ..time_utils import to_utc_z


class Promo(db.Model):
    """
    Promo code discount rule.

    discount_value holds basis points for percentage promos and cents for
    fixed promos. used_count only moves through the atomic increment in
    promotions_service.consume(); cart apply/remove never touch it.
    """
    __tablename__ = "promos"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_promos_code"),
        db.Index("ix_promos_window", "valid_from", "valid_until"),
        db.CheckConstraint("valid_from < valid_until", name="ck_promos_window"),
        db.CheckConstraint("used_count >= 0", name="ck_promos_used_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)

    promo_type = db.Column(db.String(16), nullable=False)  # percentage, fixed
    discount_value = db.Column(db.Integer, nullable=False, default=0)  # bps for percentage, cents for fixed

    minimum_order_cents = db.Column(db.Integer, nullable=True)
    max_discount_cents = db.Column(db.Integer, nullable=True)  # percentage only

    valid_from = db.Column(db.DateTime(timezone=True), nullable=False)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=False)

    usage_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def value(self):
        """Human-facing value: percent for percentage promos, amount for fixed ones."""
        if self.promo_type == PROMO_TYPE_PERCENTAGE:
            return bps_to_percent(self.discount_value)
        return from_cents(self.discount_value)

    @property
    def minimum_order_amount(self):
        return from_cents(self.minimum_order_cents)

    @property
    def max_discount_amount(self):
        return from_cents(self.max_discount_cents)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.promo_type,
            "value": str(self.value),
            "minimum_order_amount": str(self.minimum_order_amount) if self.minimum_order_cents is not None else None,
            "max_discount_amount": str(self.max_discount_amount) if self.max_discount_cents is not None else None,
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

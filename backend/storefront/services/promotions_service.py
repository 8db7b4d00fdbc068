"""
Promotion engine: promo code administration, validation and consumption.

Applying a promo to a cart is provisional; consume() is the only thing that
moves used_count, and it runs once per finalized order.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_

from ..errors import (
    ConflictError,
    FloorViolation,
    PromoRejectedError,
    PROMO_EXPIRED,
    PROMO_LIMIT_EXCEEDED,
    PROMO_MINIMUM_NOT_MET,
    PROMO_NOT_FOUND,
)
from ..extensions import db
from ..models import Promo
from ..money import PROMO_TYPE_PERCENTAGE, compute_discount, percent_to_bps, to_cents
from ..time_utils import utcnow
from .concurrency import adjust

logger = logging.getLogger(__name__)


def create_promo(data: dict) -> Promo:
    code = data["code"].upper()
    if db.session.query(Promo.id).filter_by(code=code).first():
        raise ConflictError("Promo code already exists.", details={"code": code})

    if data["type"] == PROMO_TYPE_PERCENTAGE:
        discount_value = percent_to_bps(data["value"])
        max_discount = data.get("max_discount_amount")
    else:
        discount_value = to_cents(data["value"])
        # A cap only means something for percentage promos
        max_discount = None

    promo = Promo(
        code=code,
        name=data["name"],
        promo_type=data["type"],
        discount_value=discount_value,
        minimum_order_cents=to_cents(data["minimum_order_amount"]) if data.get("minimum_order_amount") is not None else None,
        max_discount_cents=to_cents(max_discount) if max_discount is not None else None,
        valid_from=data["valid_from"],
        valid_until=data["valid_until"],
        usage_limit=data.get("usage_limit"),
        used_count=0,
        is_active=data.get("is_active", True),
    )
    db.session.add(promo)
    db.session.commit()
    logger.info("Created promo code=%s type=%s", promo.code, promo.promo_type)
    return promo


def list_promos() -> list[Promo]:
    return (
        db.session.query(Promo)
        .filter(Promo.is_active.is_(True))
        .order_by(Promo.created_at.desc(), Promo.id.desc())
        .all()
    )


def find_promo(code: str | None) -> Promo | None:
    """Active promo by code (case-insensitive), or None."""
    if not code:
        return None
    return (
        db.session.query(Promo)
        .filter(Promo.code == code.strip().upper(), Promo.is_active.is_(True))
        .first()
    )


def validate(promo: Promo | None, cart_total: Decimal, now: datetime | None = None) -> None:
    """
    Raise PromoRejectedError unless promo can apply to a cart with cart_total.

    Checks run in a fixed order and the first failure wins: missing/inactive,
    outside the validity window, usage limit reached, minimum order not met.
    """
    now = now or utcnow()

    if promo is None or not promo.is_active:
        raise PromoRejectedError(PROMO_NOT_FOUND, "Invalid promo code")

    if now < promo.valid_from or now > promo.valid_until:
        raise PromoRejectedError(
            PROMO_EXPIRED,
            "Promo code has expired or is not yet valid",
            details={"code": promo.code},
        )

    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        raise PromoRejectedError(
            PROMO_LIMIT_EXCEEDED,
            "Promo code usage limit exceeded",
            details={"code": promo.code, "usage_limit": promo.usage_limit},
        )

    if promo.minimum_order_cents is not None and to_cents(cart_total) < promo.minimum_order_cents:
        raise PromoRejectedError(
            PROMO_MINIMUM_NOT_MET,
            f"Minimum order amount of ${promo.minimum_order_amount} required",
            details={"code": promo.code, "minimum_order_amount": str(promo.minimum_order_amount)},
        )


def compute_for_cart(promo: Promo, cart_total: Decimal) -> Decimal:
    return compute_discount(
        cart_total,
        promo.promo_type,
        promo.value,
        promo.max_discount_amount if promo.max_discount_cents is not None else None,
    )


def consume(code: str) -> int:
    """
    Record one use of the promo and return the new used_count.

    The increment is a single conditional UPDATE that also enforces the usage
    limit, so two concurrent checkouts cannot both slip past a limit of one.
    The caller owns the commit.
    """
    promo = db.session.query(Promo).filter_by(code=code.upper()).first()
    if promo is None:
        raise PromoRejectedError(PROMO_NOT_FOUND, "Invalid promo code", details={"code": code})

    try:
        used = adjust(
            Promo,
            promo.id,
            "used_count",
            1,
            floor=0,
            extra_criteria=(or_(Promo.usage_limit.is_(None), Promo.used_count < Promo.usage_limit),),
        )
    except FloorViolation as exc:
        raise PromoRejectedError(
            PROMO_LIMIT_EXCEEDED,
            "Promo code usage limit exceeded",
            details={"code": promo.code, "usage_limit": promo.usage_limit},
        ) from exc

    logger.info("Consumed promo code=%s (used_count=%d)", promo.code, used)
    return used

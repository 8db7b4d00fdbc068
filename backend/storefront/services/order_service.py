"""
Order Service - one-shot conversion of a cart into an immutable order.

Checkout is a validate-then-commit sequence:

  pass 1 (read only)  re-resolve every line against the live catalog and check
                      inventory; the first failure aborts with nothing touched.
  pass 2 (mutations)  consume the promo, insert the order, reserve inventory
                      line by line, delete the cart.

Pass 2 runs inside one database transaction, so a failure there (a concurrent
checkout drained a variant after pass 1, or a limited promo ran out) rolls the
whole unit back. reserve() and consume() each re-check their floor at the
moment of mutation instead of trusting pass 1.
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from decimal import Decimal

from ..errors import (
    EmptyCartError,
    InsufficientInventoryError,
    InvalidStatusError,
    NotFoundError,
    StorefrontError,
)
from ..extensions import db
from ..models import Cart, Order, OrderItem, Product, Variant
from ..models.orders import ORDER_STATUS_PENDING, ORDER_STATUSES
from ..money import line_total, round2, sum_amounts, to_cents
from ..time_utils import utcnow
from . import cart_service, catalog_service, promotions_service
from .concurrency import guest_token_lock, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """ORD-<epoch millis>-<6 random base36 chars>."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(6))
    return f"ORD-{millis}-{suffix}"


@dataclass(frozen=True)
class _ValidatedLine:
    product: Product
    variant: Variant
    quantity: int
    unit_price: Decimal

    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.unit_price)


def _validate_lines(cart: Cart) -> list[_ValidatedLine]:
    """Pass 1: resolve every line and check live inventory. No writes."""
    lines = []
    for item in cart.items:
        product = db.session.get(Product, item.product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": item.product_id})
        variant = product.find_variant(item.variant_key)
        if variant is None:
            raise NotFoundError(
                f"Variant not found for product {product.name}",
                details={"product_id": product.id, "variant_id": item.variant_key},
            )
        if not catalog_service.check_available(variant, item.quantity):
            raise InsufficientInventoryError(
                f"Insufficient inventory for {product.name} - {variant.name}",
                details={
                    "product_id": product.id,
                    "variant_id": item.variant_key,
                    "requested_quantity": item.quantity,
                    "available": variant.inventory,
                },
            )
        # Cart-snapshotted price, not a fresh catalog read
        lines.append(_ValidatedLine(product, variant, item.quantity, item.unit_price))
    return lines


def create_order(guest_token: str, shipping_address: dict) -> Order:
    """
    Convert the guest's cart into a pending order and reserve its inventory.

    Raises:
        EmptyCartError: No cart for the token, or the cart has no items
        NotFoundError: A line's product or variant no longer exists
        InsufficientInventoryError: A line exceeds live inventory
        PromoRejectedError: The applied promo ran out of uses meanwhile
    """
    def _op():
        try:
            cart = lock_for_update(db.session.query(Cart).filter_by(guest_token=guest_token)).first()
            if cart is None or cart.expires_at <= utcnow() or not cart.items:
                raise EmptyCartError("Cart is empty")

            lines = _validate_lines(cart)
            subtotal = sum_amounts(line.total for line in lines)

            # Discount captured at apply time is carried forward, never above the subtotal
            promo_code = cart.applied_promo_code
            discount = cart_service.applied_discount(cart, subtotal)
            total = round2(subtotal - discount)

            logger.info(
                "Checkout validated token=%s lines=%d subtotal=%s discount=%s",
                guest_token, len(lines), subtotal, discount,
            )

            if promo_code:
                promotions_service.consume(promo_code)

            order = Order(
                order_number=generate_order_number(),
                guest_token=guest_token,
                subtotal_cents=to_cents(subtotal),
                discount_cents=to_cents(discount),
                promo_code=promo_code,
                total_cents=to_cents(total),
                status=ORDER_STATUS_PENDING,
                **{f"ship_{field}": value for field, value in shipping_address.items()},
            )
            order.items = [
                OrderItem(
                    product_id=line.product.id,
                    variant_key=line.variant.variant_key,
                    product_name=line.product.name,
                    variant_name=line.variant.name,
                    quantity=line.quantity,
                    unit_price_cents=to_cents(line.unit_price),
                    line_total_cents=to_cents(line.total),
                )
                for line in lines
            ]
            db.session.add(order)
            db.session.flush()

            for line in lines:
                catalog_service.reserve(line.product, line.variant.variant_key, line.quantity)

            db.session.delete(cart)
            db.session.commit()
        except StorefrontError:
            db.session.rollback()
            raise

        logger.info("Order %s created for token=%s total=%s", order.order_number, guest_token, total)
        return order

    with guest_token_lock(guest_token):
        return run_with_retry(_op)


def get_order(order_number: str) -> Order:
    order = db.session.query(Order).filter_by(order_number=order_number).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def list_orders_by_guest_token(guest_token: str) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(guest_token=guest_token)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_orders(*, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
    if status is not None and status not in ORDER_STATUSES:
        raise InvalidStatusError("Invalid order status", details={"allowed": list(ORDER_STATUSES)})

    q = db.session.query(Order)
    if status:
        q = q.filter(Order.status == status)

    total = q.count()
    orders = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "orders": [o.to_dict() for o in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def update_status(order_number: str, new_status: str) -> Order:
    """
    Overwrite an order's status.

    Any known status is accepted from any current status; only membership in
    the status set is enforced.
    """
    if new_status not in ORDER_STATUSES:
        raise InvalidStatusError("Invalid order status", details={"allowed": list(ORDER_STATUSES)})

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_number=order_number)).first()
        if order is None:
            raise NotFoundError("Order not found")
        previous = order.status
        order.status = new_status
        order.updated_at = utcnow()
        db.session.commit()
        logger.info("Order %s status %s -> %s", order.order_number, previous, new_status)
        return order

    return run_with_retry(_op)

"""
Cart Service - mutable pre-purchase aggregate keyed by guest token.

INVARIANTS:
- total_cents == sum(quantity * unit_price_cents) after every mutation; the
  total is recomputed from the lines, never adjusted incrementally.
- A line's unit price is captured when the line is first added and is not
  re-read from the catalog afterwards. Quantities are re-validated against
  live inventory on every mutation.
- At most one promo is applied; applying another replaces it.
- Mutations for one guest token are serialized (guest_token_lock) and the cart
  row carries a version_id, so concurrent writers cannot lose updates.
- An expired cart is treated as absent by every operation.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from flask import current_app

from ..errors import EmptyCartError, InsufficientInventoryError, NotFoundError, StorefrontError
from ..extensions import db
from ..models import Cart, CartItem
from ..money import ZERO, from_cents, line_total, round2, sum_amounts, to_cents
from ..time_utils import expiry_from, utcnow
from . import catalog_service, promotions_service
from .concurrency import guest_token_lock, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

DEFAULT_CART_TTL_DAYS = 7


def generate_guest_token() -> str:
    return str(uuid.uuid4())


def _ttl_days() -> int:
    return current_app.config.get("CART_TTL_DAYS", DEFAULT_CART_TTL_DAYS)


def _touch(cart: Cart) -> None:
    """Recompute the cached total and push the expiry out from now."""
    now = utcnow()
    cart.total_cents = to_cents(sum_amounts(item.line_total for item in cart.items))
    cart.updated_at = now
    cart.expires_at = expiry_from(now, _ttl_days())


def _new_cart(guest_token: str) -> Cart:
    now = utcnow()
    cart = Cart(
        guest_token=guest_token,
        total_cents=0,
        created_at=now,
        updated_at=now,
        expires_at=expiry_from(now, _ttl_days()),
    )
    db.session.add(cart)
    return cart


def _missing(missing_exc):
    if missing_exc is EmptyCartError:
        return EmptyCartError("Cart is empty")
    return missing_exc("Cart not found")


def _load_cart(
    guest_token: str,
    *,
    for_update: bool = False,
    create: bool = False,
    missing_exc=NotFoundError,
) -> Cart:
    q = db.session.query(Cart).filter(Cart.guest_token == guest_token)
    if for_update:
        q = lock_for_update(q)
    cart = q.first()

    if cart is not None and cart.expires_at <= utcnow():
        if not create:
            raise _missing(missing_exc)
        # Expired but not yet purged: make room for a fresh cart under the same token
        db.session.delete(cart)
        db.session.flush()
        cart = None

    if cart is None:
        if not create:
            raise _missing(missing_exc)
        cart = _new_cart(guest_token)
    return cart


def _mutate(guest_token: str, mutation, *, create: bool = False, missing_exc=NotFoundError) -> Cart:
    """Run mutation(cart) under the token lock, recompute, persist."""
    def _op():
        try:
            cart = _load_cart(guest_token, for_update=True, create=create, missing_exc=missing_exc)
            mutation(cart)
            _touch(cart)
            db.session.commit()
            return cart
        except StorefrontError:
            db.session.rollback()
            raise

    with guest_token_lock(guest_token):
        return run_with_retry(_op)


def create_cart(guest_token: str | None = None) -> Cart:
    """Create an empty cart. A fresh token is generated unless one is given."""
    guest_token = guest_token or generate_guest_token()
    cart = _mutate(guest_token, lambda cart: None, create=True)
    logger.info("Created cart token=%s", guest_token)
    return cart


def get_cart(guest_token: str) -> Cart:
    return _load_cart(guest_token)


def add_item(guest_token: str, product_id: int, variant_key: str, quantity: int) -> Cart:
    """
    Add quantity of a variant, merging into an existing line for the same
    (product, variant). The merged quantity is checked against live inventory
    before anything changes. Creates the cart on first interaction.
    """
    product = catalog_service.find_active_product(product_id)
    variant = catalog_service.find_variant(product, variant_key)
    if not catalog_service.check_available(variant, quantity):
        raise InsufficientInventoryError(
            "Insufficient inventory",
            details={"product_id": product_id, "variant_id": variant_key, "available": variant.inventory},
        )

    def _add(cart: Cart) -> None:
        existing = cart.find_item(product_id, variant_key)
        if existing is not None:
            new_quantity = existing.quantity + quantity
            if not catalog_service.check_available(variant, new_quantity):
                raise InsufficientInventoryError(
                    "Insufficient inventory for requested quantity",
                    details={
                        "product_id": product_id,
                        "variant_id": variant_key,
                        "requested_quantity": new_quantity,
                        "available": variant.inventory,
                    },
                )
            existing.quantity = new_quantity
        else:
            cart.items.append(
                CartItem(
                    product_id=product.id,
                    variant_key=variant_key,
                    quantity=quantity,
                    unit_price_cents=variant.price_cents,
                )
            )

    return _mutate(guest_token, _add, create=True)


def _require_item(cart: Cart, product_id: int, variant_key: str) -> CartItem:
    item = cart.find_item(product_id, variant_key)
    if item is None:
        raise NotFoundError(
            "Item not found in cart",
            details={"product_id": product_id, "variant_id": variant_key},
        )
    return item


def update_item_quantity(guest_token: str, product_id: int, variant_key: str, quantity: int) -> Cart:
    """Set a line's absolute quantity; the add-time unit price is kept."""
    def _update(cart: Cart) -> None:
        item = _require_item(cart, product_id, variant_key)
        product = catalog_service.get_product(product_id)
        variant = product.find_variant(variant_key)
        if variant is None or not catalog_service.check_available(variant, quantity):
            raise InsufficientInventoryError(
                "Insufficient inventory",
                details={
                    "product_id": product_id,
                    "variant_id": variant_key,
                    "requested_quantity": quantity,
                    "available": variant.inventory if variant is not None else 0,
                },
            )
        item.quantity = quantity

    return _mutate(guest_token, _update)


def remove_item(guest_token: str, product_id: int, variant_key: str) -> Cart:
    def _remove(cart: Cart) -> None:
        cart.items.remove(_require_item(cart, product_id, variant_key))

    return _mutate(guest_token, _remove)


def clear_cart(guest_token: str) -> Cart:
    def _clear(cart: Cart) -> None:
        cart.items.clear()

    return _mutate(guest_token, _clear)


def _priced_promo(cart: Cart, code: str):
    if not cart.items:
        raise EmptyCartError("Cart is empty")
    promo = promotions_service.find_promo(code)
    subtotal = cart.total_amount
    promotions_service.validate(promo, subtotal)
    discount = promotions_service.compute_for_cart(promo, subtotal)
    return promo, subtotal, discount


def _promo_summary(cart: Cart, promo, subtotal, discount) -> dict:
    return {
        "cart": cart.to_dict(),
        "applied_promo": {
            "code": promo.code,
            "name": promo.name,
            "discount_amount": str(discount),
        },
        "subtotal": str(subtotal),
        "discount_amount": str(discount),
        "final_total": str(round2(subtotal - discount)),
    }


def preview_promo(guest_token: str, code: str) -> dict:
    """Validate a code against the cart without applying it."""
    cart = _load_cart(guest_token, missing_exc=EmptyCartError)
    promo, subtotal, discount = _priced_promo(cart, code)
    return {
        "promo": {
            "code": promo.code,
            "name": promo.name,
            "type": promo.promo_type,
            "value": str(promo.value),
        },
        "subtotal": str(subtotal),
        "discount_amount": str(discount),
        "final_total": str(round2(subtotal - discount)),
    }


def apply_promo(guest_token: str, code: str) -> dict:
    """
    Validate the code against the current cart total and store the computed
    discount on the cart, replacing any promo applied before. used_count is
    not touched here.
    """
    applied = {}

    def _apply(cart: Cart) -> None:
        promo, subtotal, discount = _priced_promo(cart, code)
        cart.applied_promo_code = promo.code
        cart.applied_discount_cents = to_cents(discount)
        applied.update(promo=promo, subtotal=subtotal, discount=discount)

    cart = _mutate(guest_token, _apply, missing_exc=EmptyCartError)
    logger.info("Applied promo code=%s to cart token=%s", applied["promo"].code, guest_token)
    return _promo_summary(cart, applied["promo"], applied["subtotal"], applied["discount"])


def applied_discount(cart: Cart, subtotal) -> Decimal:
    """
    Discount stored when the promo was applied, limited to subtotal.

    The amount is not re-priced against the current lines; it only shrinks when
    lines were removed after applying, so a total never drops below zero.
    """
    if not cart.applied_promo_code:
        return ZERO
    return min(from_cents(cart.applied_discount_cents or 0), subtotal)


def remove_promo(guest_token: str) -> Cart:
    """Clear the applied promo; a no-op when none is applied."""
    def _remove(cart: Cart) -> None:
        cart.applied_promo_code = None
        cart.applied_discount_cents = None

    return _mutate(guest_token, _remove)


def view_cart(guest_token: str) -> dict:
    """Cart with each line enriched from the catalog and the total recomputed."""
    cart = _load_cart(guest_token)

    items = []
    totals = []
    for item in cart.items:
        product = item.product
        variant = product.find_variant(item.variant_key) if product is not None else None
        item_total = line_total(item.quantity, item.unit_price)
        totals.append(item_total)
        items.append({
            **item.to_dict(),
            "product": {
                "id": product.id,
                "name": product.name,
                "images": list(product.images or []),
            } if product is not None else None,
            "variant": variant.to_dict() if variant is not None else None,
            "item_total": str(item_total),
        })

    total = sum_amounts(totals) if totals else ZERO
    discount = applied_discount(cart, total)
    return {
        **cart.to_dict(),
        "items": items,
        "total_amount": str(total),
        "discount_amount": str(discount),
        "final_total": str(round2(total - discount)),
    }


def purge_expired_carts(now=None) -> int:
    """Delete carts whose expiry has passed; returns how many were removed."""
    now = now or utcnow()
    expired = db.session.query(Cart).filter(Cart.expires_at <= now).all()
    for cart in expired:
        db.session.delete(cart)
    db.session.commit()
    if expired:
        logger.info("Purged %d expired carts", len(expired))
    return len(expired)

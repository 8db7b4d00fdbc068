# Overview: Fixed-precision money helpers shared by catalog, cart, promo and order code.
"""
Money helpers.

Amounts travel through the service layer as Decimal and are stored as integer
cents. Every value returned to a caller or persisted passes through round2(),
so repeated additions never accumulate float drift.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

PROMO_TYPE_PERCENTAGE = "percentage"
PROMO_TYPE_FIXED = "fixed"
PROMO_TYPES = (PROMO_TYPE_PERCENTAGE, PROMO_TYPE_FIXED)


def to_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # str() keeps the shortest repr, avoiding binary expansion noise
        return Decimal(str(amount))
    try:
        return Decimal(amount)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"not a monetary amount: {amount!r}") from exc


def round2(amount) -> Decimal:
    """Round to the cent, half-up."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount) -> int:
    return int(round2(amount) * 100)


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return round2(Decimal(cents) / 100)


def percent_to_bps(value) -> int:
    return int((to_decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def bps_to_percent(bps: int) -> Decimal:
    return round2(Decimal(bps) / 100)


def line_total(quantity: int, unit_price) -> Decimal:
    return round2(Decimal(quantity) * to_decimal(unit_price))


def sum_amounts(amounts) -> Decimal:
    total = ZERO
    for amount in amounts:
        total += to_decimal(amount)
    return round2(total)


def compute_discount(base, promo_type: str, value, cap=None) -> Decimal:
    """
    Discount for a base amount.

    percentage: base * value / 100, clamped to cap when the cap is set and exceeded.
    fixed: min(value, base), so a fixed discount never drives a total negative.
    """
    base = to_decimal(base)
    value = to_decimal(value)

    if promo_type == PROMO_TYPE_PERCENTAGE:
        discount = base * value / HUNDRED
        if cap is not None and discount > to_decimal(cap):
            discount = to_decimal(cap)
    elif promo_type == PROMO_TYPE_FIXED:
        discount = min(value, base)
    else:
        raise ValueError(f"unknown promo type: {promo_type!r}")

    return round2(discount)

# backend/storefront/services/catalog_service.py
"""
Catalog Service

Products, variants and inventory counters.

INVARIANTS:
- SKUs are unique across every variant; variant ids are unique within a product.
- Variant inventory never goes below zero. reserve() enforces this at the
  moment of decrement with a conditional UPDATE, independent of any earlier
  availability check.
- Products are soft-deleted only (is_active=False); inactive products stay
  resolvable by id for historical order rendering but are hidden from browsing
  and from new cart additions.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, or_

from ..errors import ConflictError, FloorViolation, InsufficientInventoryError, NotFoundError
from ..extensions import db
from ..models import Product, Variant
from ..money import to_cents
from .concurrency import adjust

logger = logging.getLogger(__name__)


def _ensure_skus_available(skus: list[str], *, exclude_product_id: int | None = None) -> None:
    q = db.session.query(Variant.sku).filter(Variant.sku.in_(skus))
    if exclude_product_id is not None:
        q = q.filter(Variant.product_id != exclude_product_id)
    taken = sorted(row[0] for row in q.all())
    if taken:
        raise ConflictError("SKU already exists.", details={"skus": taken})


def _build_variants(variant_specs: list[dict]) -> list[Variant]:
    return [
        Variant(
            variant_key=spec["variant_key"],
            name=spec["name"],
            sku=spec["sku"],
            price_cents=to_cents(spec["price"]),
            inventory=spec["inventory"],
            attributes=dict(spec.get("attributes") or {}),
            position=position,
        )
        for position, spec in enumerate(variant_specs)
    ]


def create_product(*, patch: dict) -> Product:
    """
    Create a product with its variants from a validated patch.

    Raises:
        ConflictError: If any variant SKU already exists in the catalog
    """
    _ensure_skus_available([v["sku"] for v in patch["variants"]])

    product = Product(
        name=patch["name"],
        description=patch["description"],
        category=patch["category"],
        base_price_cents=to_cents(patch["base_price"]),
        images=list(patch.get("images") or []),
        is_active=patch.get("is_active", True),
    )
    product.variants = _build_variants(patch["variants"])

    db.session.add(product)
    db.session.commit()
    logger.info("Created product id=%s name=%r variants=%d", product.id, product.name, len(product.variants))
    return product


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Apply a partial patch. A "variants" key replaces the whole variant list;
    inventory counts in it become the new absolute counts.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    if "variants" in patch:
        _ensure_skus_available([v["sku"] for v in patch["variants"]], exclude_product_id=product.id)
        product.variants.clear()
        # Flush the orphan deletes before re-inserting rows that reuse keys and SKUs
        db.session.flush()
        product.variants.extend(_build_variants(patch["variants"]))

    for key in ("name", "description", "category", "is_active"):
        if key in patch:
            setattr(product, key, patch[key])
    if "base_price" in patch:
        product.base_price_cents = to_cents(patch["base_price"])
    if "images" in patch:
        product.images = list(patch["images"])

    db.session.commit()
    logger.info("Updated product id=%s fields=%s", product.id, ",".join(sorted(patch.keys())))
    return product


def deactivate(product_id: int) -> Product:
    """Soft-delete a product."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    if product.is_active:
        product.is_active = False
        db.session.commit()
        logger.info("Deactivated product id=%s", product.id)
    return product


def get_product(product_id: int) -> Product:
    """Any product by id, active or not."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def find_active_product(product_id: int) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.is_active.is_(True))
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def find_variant(product: Product, variant_key: str) -> Variant:
    variant = product.find_variant(variant_key)
    if variant is None:
        raise NotFoundError(
            "Product variant not found",
            details={"product_id": product.id, "variant_id": variant_key},
        )
    return variant


def check_available(variant: Variant, quantity: int) -> bool:
    return variant.inventory >= quantity


def reserve(product: Product, variant_key: str, quantity: int) -> int:
    """
    Decrement a variant's inventory by quantity and return the new count.

    The decrement is one conditional UPDATE, so the floor is checked at the
    moment of mutation rather than trusting an earlier read. The caller owns
    the commit.

    Raises:
        NotFoundError: If the variant does not exist on the product
        InsufficientInventoryError: If inventory would go negative
    """
    variant = find_variant(product, variant_key)
    try:
        remaining = adjust(Variant, variant.id, "inventory", -quantity, floor=0)
    except FloorViolation as exc:
        raise InsufficientInventoryError(
            f"Insufficient inventory for {product.name} - {variant.name}",
            details={
                "product_id": product.id,
                "variant_id": variant_key,
                "requested_quantity": quantity,
                "available": exc.details["current"],
            },
        ) from exc
    logger.info(
        "Reserved %d of product=%s variant=%s (remaining=%d)",
        quantity, product.id, variant_key, remaining,
    )
    return remaining


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """
    Browse active products with optional filters and pagination.

    search is a case-insensitive substring match on name and description.
    Price filters apply to the base price.
    """
    q = db.session.query(Product).filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip().lower()}%"
        q = q.filter(or_(func.lower(Product.name).like(pattern), func.lower(Product.description).like(pattern)))
    if min_price is not None:
        q = q.filter(Product.base_price_cents >= to_cents(min_price))
    if max_price is not None:
        q = q.filter(Product.base_price_cents <= to_cents(max_price))

    total = q.count()
    pages = (total + limit - 1) // limit

    products = (
        q.order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "products": [p.to_dict() for p in products],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
        },
    }


def list_categories() -> list[dict]:
    rows = (
        db.session.query(Product.category, func.count(Product.id))
        .filter(Product.is_active.is_(True))
        .group_by(Product.category)
        .order_by(Product.category.asc())
        .all()
    )
    return [{"name": name, "product_count": count} for name, count in rows]

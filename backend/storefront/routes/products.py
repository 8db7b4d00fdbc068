# Overview: Flask API routes for catalog operations; parses input and returns JSON envelopes.

"""
Product catalog routes.

Browsing (list, detail, categories) only sees active products. DELETE is a
soft delete.
"""
from flask import Blueprint, request, current_app

from ..responses import ok
from ..services import catalog_service
from ..errors import NotFoundError
from ..validation import validate_product_payload, parse_pagination, parse_optional_amount

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - category: exact category match
    - search: case-insensitive substring of name or description
    - min_price / max_price: bounds on base price
    - page (default 1), limit (default 10, max 100)
    """
    page, limit = parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    result = catalog_service.list_products(
        category=request.args.get("category") or None,
        search=request.args.get("search") or None,
        min_price=parse_optional_amount(request.args, "min_price"),
        max_price=parse_optional_amount(request.args, "max_price"),
        page=page,
        limit=limit,
    )
    return ok(result)


@products_bp.get("/categories")
def list_categories():
    return ok(catalog_service.list_categories())


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    product = catalog_service.get_product(product_id)
    if not product.is_active:
        raise NotFoundError("Product not found")
    return ok(product.to_dict())


@products_bp.post("")
def create_product():
    payload = request.get_json(silent=True) or {}
    patch = validate_product_payload(payload, partial=False)
    product = catalog_service.create_product(patch=patch)
    return ok(product.to_dict(), 201)


@products_bp.put("/<int:product_id>")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_product_payload(payload, partial=True)
    product = catalog_service.update_product(product_id=product_id, patch=patch)
    return ok(product.to_dict())


@products_bp.delete("/<int:product_id>")
def delete_product(product_id: int):
    catalog_service.deactivate(product_id)
    return ok(message="Product deleted successfully")

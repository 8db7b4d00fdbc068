# Overview: Flask API routes for checkout and order administration.

from flask import Blueprint, request, current_app

from ..errors import ValidationError
from ..responses import ok
from ..services import order_service
from ..validation import validate_guest_token, validate_shipping_address, parse_pagination

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/<guest_token>")
def create_order(guest_token: str):
    """Checkout: converts the guest's cart into a pending order."""
    validate_guest_token(guest_token)
    shipping_address = validate_shipping_address(request.get_json(silent=True) or {})
    order = order_service.create_order(guest_token, shipping_address)
    return ok(order.to_dict(), 201)


@orders_bp.get("")
def list_orders():
    """
    Query params:
    - status: one of the order statuses
    - page (default 1), limit (default 10, max 100)
    """
    page, limit = parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    result = order_service.list_orders(status=request.args.get("status") or None, page=page, limit=limit)
    return ok(result)


@orders_bp.get("/guest/<guest_token>")
def list_guest_orders(guest_token: str):
    validate_guest_token(guest_token)
    orders = order_service.list_orders_by_guest_token(guest_token)
    return ok([o.to_dict() for o in orders])


@orders_bp.get("/<order_number>")
def get_order(order_number: str):
    return ok(order_service.get_order(order_number).to_dict())


@orders_bp.put("/<order_number>/status")
def update_order_status(order_number: str):
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if not isinstance(status, str):
        raise ValidationError("status required")
    order = order_service.update_status(order_number, status)
    return ok(order.to_dict())

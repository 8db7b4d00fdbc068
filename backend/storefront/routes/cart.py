# Overview: Flask API routes for guest carts; parses input and returns JSON envelopes.

from flask import Blueprint, request

from ..responses import ok
from ..services import cart_service
from ..validation import validate_guest_token, validate_cart_item_payload, validate_quantity_payload

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.post("")
def create_cart():
    cart = cart_service.create_cart()
    return ok({"guest_token": cart.guest_token, "cart": cart.to_dict()}, 201)


@cart_bp.get("/<guest_token>")
def get_cart(guest_token: str):
    validate_guest_token(guest_token)
    return ok(cart_service.view_cart(guest_token))


@cart_bp.post("/<guest_token>/items")
def add_item(guest_token: str):
    """Adds a line (merging with an existing one); creates the cart if needed."""
    validate_guest_token(guest_token)
    data = validate_cart_item_payload(request.get_json(silent=True) or {})
    cart = cart_service.add_item(guest_token, data["product_id"], data["variant_id"], data["quantity"])
    return ok(cart.to_dict())


@cart_bp.put("/<guest_token>/items/<int:product_id>/<variant_id>")
def update_item(guest_token: str, product_id: int, variant_id: str):
    validate_guest_token(guest_token)
    quantity = validate_quantity_payload(request.get_json(silent=True) or {})
    cart = cart_service.update_item_quantity(guest_token, product_id, variant_id, quantity)
    return ok(cart.to_dict())


@cart_bp.delete("/<guest_token>/items/<int:product_id>/<variant_id>")
def remove_item(guest_token: str, product_id: int, variant_id: str):
    validate_guest_token(guest_token)
    cart = cart_service.remove_item(guest_token, product_id, variant_id)
    return ok(cart.to_dict())


@cart_bp.delete("/<guest_token>/clear")
def clear_cart(guest_token: str):
    validate_guest_token(guest_token)
    cart = cart_service.clear_cart(guest_token)
    return ok(cart.to_dict())

# Overview: Flask API routes for promo codes; admin CRUD plus cart validate/apply/remove.

from flask import Blueprint, request

from ..responses import ok
from ..services import cart_service, promotions_service
from ..validation import validate_guest_token, validate_promo_payload, validate_promo_code_payload

promos_bp = Blueprint("promos", __name__, url_prefix="/api/promos")


@promos_bp.post("")
def create_promo():
    data = validate_promo_payload(request.get_json(silent=True) or {})
    promo = promotions_service.create_promo(data)
    return ok(promo.to_dict(), 201)


@promos_bp.get("")
def list_promos():
    return ok([p.to_dict() for p in promotions_service.list_promos()])


@promos_bp.post("/<guest_token>/validate")
def validate_promo(guest_token: str):
    """Dry run: price the code against the cart without applying it."""
    validate_guest_token(guest_token)
    code = validate_promo_code_payload(request.get_json(silent=True) or {})
    return ok(cart_service.preview_promo(guest_token, code))


@promos_bp.post("/<guest_token>/apply")
def apply_promo(guest_token: str):
    validate_guest_token(guest_token)
    code = validate_promo_code_payload(request.get_json(silent=True) or {})
    return ok(cart_service.apply_promo(guest_token, code))


@promos_bp.delete("/<guest_token>/remove")
def remove_promo(guest_token: str):
    validate_guest_token(guest_token)
    cart = cart_service.remove_promo(guest_token)
    return ok(cart.to_dict())

# storefront/cart/routes.py
from flask import g, request

from ..services import cart_service
from ..utils.api import json_body, ok
from ..utils.decorators import current_user, login_required
from . import bp

@bp.get("")
def get_cart():
    """Guests get an empty cart; their cart lives client-side."""
    user = current_user(optional=True)
    if not user:
        return ok({"items": [], "subtotalCents": 0, "itemCount": 0})
    return ok(cart_service.load_cart(user).as_api())

@bp.post("")
@login_required
def add_item():
    """Body: { "productId": int, "quantity": int } (merges into an existing line)"""
    data = json_body()
    cart = cart_service.add_item(g.user, data.get("productId"), data.get("quantity", 1))
    return ok(cart.as_api())

@bp.put("")
@login_required
def update_item():
    """Body: { "productId": int, "quantity": int } (quantity <= 0 removes the line)"""
    data = json_body()
    cart = cart_service.set_quantity(g.user, data.get("productId"), data.get("quantity"))
    return ok(cart.as_api())

@bp.delete("")
@login_required
def remove_items():
    """?productId=... removes one line; without it the whole cart is cleared."""
    cart = cart_service.remove_item(g.user, request.args.get("productId"))
    return ok(cart.as_api())

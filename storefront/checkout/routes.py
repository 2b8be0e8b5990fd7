# storefront/checkout/routes.py
from ..services.checkout_service import create_checkout
from ..utils.api import json_body, ok
from ..utils.decorators import current_user
from . import bp

@bp.post("")
def checkout():
    """
    Body:
      items            -> [{productId, quantity}]
      shippingAddress  -> {fullName, addressLine1, addressLine2?, city, state, postalCode, country?, phone?, email?}
      email            -> required for guests
      couponCode       -> optional
      shippingRateId   -> optional; cheapest applicable rate when omitted
    Guests may check out; a bearer token links the order to the account.
    """
    user = current_user(optional=True)
    order, session = create_checkout(json_body(), user=user)
    return ok({
        "sessionId": session.id,
        "url": session.url,
        "orderNumber": order.order_number,
        "totals": {
            "subtotalCents": order.subtotal_cents,
            "discountCents": order.discount_cents,
            "shippingCents": order.shipping_cents,
            "totalCents": order.total_cents,
        },
    })

# storefront/coupon/routes.py
from flask import current_app

from ..errors import ValidationError
from ..services.coupon_service import CouponError, evaluate_coupon
from ..utils.api import json_body, ok, err, require_cents
from . import bp

@bp.post("/validate")
def validate_coupon():
    """
    Body: { "code": "SAVE10", "subtotalCents": 5000 }
    200 -> { valid, coupon: {id, code, discountType, discountValue, description}, discountCents }
    400 -> { error }
    """
    data = json_body()
    code = data.get("code")
    code = code.strip() if isinstance(code, str) else ""
    if not code:
        return err("Coupon code required", 400)
    subtotal = require_cents(data.get("subtotalCents") or 0, "subtotalCents")

    try:
        quote = evaluate_coupon(code, subtotal)
    except CouponError as e:
        current_app.logger.info("Coupon %s rejected: %s", code.upper(), e.reason)
        return err(e.message, 400)
    except ValidationError as e:
        return err(e.message, 400)

    return ok(quote.as_api())

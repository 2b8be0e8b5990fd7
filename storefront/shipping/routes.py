# storefront/shipping/routes.py
from ..services.shipping_service import select_rates
from ..utils.api import json_body, ok, require_cents
from . import bp

@bp.post("/rates")
def shipping_rates():
    """Body: { "subtotalCents": int } -> { rates: [...] }, never empty."""
    data = json_body()
    subtotal = require_cents(data.get("subtotalCents") or 0, "subtotalCents")
    return ok({"rates": select_rates(subtotal)})

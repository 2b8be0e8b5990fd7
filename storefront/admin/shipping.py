# storefront/admin/shipping.py
from ..model import ShippingRate
from ..services import shipping_service
from ..utils.api import json_body, ok
from ..utils.decorators import admin_required
from . import bp

@bp.get("/shipping")
@admin_required
def list_rates():
    rates = ShippingRate.query.order_by(
        ShippingRate.min_order_cents.asc(), ShippingRate.display_order.asc(), ShippingRate.id.asc()
    ).all()
    return ok({"rates": [r.as_api() for r in rates]})

@bp.post("/shipping")
@admin_required
def create_rate():
    return ok(shipping_service.create_rate(json_body()).as_api(), status=201)

@bp.put("/shipping/<int:rate_id>")
@admin_required
def update_rate(rate_id: int):
    return ok(shipping_service.update_rate(rate_id, json_body()).as_api())

@bp.delete("/shipping/<int:rate_id>")
@admin_required
def delete_rate(rate_id: int):
    shipping_service.delete_rate(rate_id)
    return ok({"success": True})

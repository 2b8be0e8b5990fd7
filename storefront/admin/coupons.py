# storefront/admin/coupons.py
from flask import request

from ..model import Coupon
from ..services import coupon_service
from ..utils.api import json_body, ok, parse_bool
from ..utils.decorators import admin_required
from . import bp

@bp.get("/coupons")
@admin_required
def list_coupons():
    q = Coupon.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Coupon.is_active.is_(parse_bool(active)))
    items = q.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
    return ok({"coupons": [c.as_api() for c in items]})

@bp.post("/coupons")
@admin_required
def create_coupon():
    c = coupon_service.create_coupon(json_body())
    return ok(c.as_api(), status=201)

@bp.put("/coupons/<int:coupon_id>")
@admin_required
def update_coupon(coupon_id: int):
    c = coupon_service.update_coupon(coupon_id, json_body())
    return ok(c.as_api())

@bp.delete("/coupons/<int:coupon_id>")
@admin_required
def delete_coupon(coupon_id: int):
    coupon_service.delete_coupon(coupon_id)
    return ok({"success": True})

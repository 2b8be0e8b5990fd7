# storefront/admin/orders.py
from flask import g, request
from sqlalchemy import or_

from ..errors import NotFoundError
from ..extensions import db
from ..model import Order
from ..services.order_service import refund_order, update_order
from ..utils.api import json_body, ok, paginate
from ..utils.decorators import admin_required
from . import bp

@bp.get("/orders")
@admin_required
def list_orders():
    """
    Query params:
      - page, per_page
      - search        -> order number or email substring
      - status        -> pending|confirmed|...|refunded
      - paymentStatus -> pending|paid|failed|refunded|partially_refunded
    """
    q = Order.query
    search = (request.args.get("search") or "").strip()
    status = request.args.get("status")
    payment_status = request.args.get("paymentStatus")

    if search:
        like = f"%{search}%"
        q = q.filter(or_(Order.order_number.ilike(like), Order.email.ilike(like)))
    if status:
        q = q.filter(Order.status == status)
    if payment_status:
        q = q.filter(Order.payment_status == payment_status)

    page = paginate(q.order_by(Order.created_at.desc()), request.args.get("page"), request.args.get("per_page"))
    return ok({"meta": page["meta"], "orders": [o.as_admin_api() for o in page["items"]]})

@bp.get("/orders/<int:order_id>")
@admin_required
def get_order(order_id: int):
    o = db.session.get(Order, order_id)
    if not o:
        raise NotFoundError("Order not found")
    return ok(o.as_admin_api())

@bp.put("/orders/<int:order_id>")
@admin_required
def change_order(order_id: int):
    """Body: { status?, note?, shippingCarrier?, trackingNumber?, trackingUrl?, adminNotes? }"""
    o = update_order(order_id, json_body(), actor=g.user)
    return ok(o.as_admin_api())

@bp.post("/orders/refund")
@admin_required
def refund():
    """Body: { orderId, amount? (cents, defaults to the order total), reason? }"""
    data = json_body()
    result = refund_order(data.get("orderId"), data.get("amount"), data.get("reason"), actor=g.user)
    return ok(result.as_api())

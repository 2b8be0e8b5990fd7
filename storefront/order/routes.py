# storefront/order/routes.py
from flask import g, request

from ..errors import NotFoundError
from ..model import Order
from ..services.order_service import track_order
from ..utils.api import ok, paginate
from ..utils.decorators import login_required
from . import bp

@bp.get("/track")
def track():
    """Query params: orderNumber, email"""
    order = track_order(request.args.get("orderNumber") or "", request.args.get("email") or "")
    return ok({
        "order_number": order.order_number,
        "status": order.status,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "shipped_at": order.shipped_at.isoformat() if order.shipped_at else None,
        "delivered_at": order.delivered_at.isoformat() if order.delivered_at else None,
        "tracking_number": order.tracking_number,
        "tracking_url": order.tracking_url,
        "items": [{"product_name": i.product_name, "quantity": i.quantity} for i in order.items],
    })

@bp.get("")
@login_required
def my_orders():
    q = Order.query.filter(Order.user_id == g.user.id).order_by(Order.created_at.desc())
    page = paginate(q, request.args.get("page"), request.args.get("per_page"))
    return ok({"meta": page["meta"], "orders": [o.as_api() for o in page["items"]]})

@bp.get("/<int:order_id>")
@login_required
def my_order(order_id: int):
    o = Order.query.filter_by(id=order_id, user_id=g.user.id).first()
    if not o:
        raise NotFoundError("Order not found")
    data = o.as_api()
    data["history"] = [h.as_api() for h in o.history]
    return ok(data)

# storefront/admin/customers.py
from flask import request
from sqlalchemy import case, func, or_

from ..extensions import db
from ..model import Order, User
from ..utils.api import ok, paginate
from ..utils.decorators import admin_required
from . import bp

@bp.get("/customers")
@admin_required
def list_customers():
    """Customers with order count and lifetime spend (paid orders only)."""
    search = (request.args.get("search") or "").strip()
    q = User.query.filter(User.role == "customer")
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.email.ilike(like), User.name.ilike(like)))
    page = paginate(q.order_by(User.created_at.desc(), User.id.desc()),
                    request.args.get("page"), request.args.get("per_page"))

    ids = [u.id for u in page["items"]]
    stats = {}
    if ids:
        rows = (
            db.session.query(
                Order.user_id,
                func.count(Order.id),
                func.coalesce(
                    func.sum(case((Order.payment_status.in_(("paid", "partially_refunded")), Order.total_cents), else_=0)),
                    0,
                ),
            )
            .filter(Order.user_id.in_(ids))
            .group_by(Order.user_id)
            .all()
        )
        stats = {uid: (count, int(spent or 0)) for uid, count, spent in rows}

    customers = []
    for u in page["items"]:
        count, spent = stats.get(u.id, (0, 0))
        customers.append({**u.as_dict(), "order_count": count, "total_spent_cents": spent})
    return ok({"meta": page["meta"], "customers": customers})

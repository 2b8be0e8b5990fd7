# storefront/admin/reports.py
from datetime import timedelta

import pandas as pd
from flask import current_app, request

from ..extensions import db
from ..model import Order, OrderItem, Product, User
from ..utils.api import ok, parse_int, utcnow
from ..utils.decorators import admin_required
from . import bp

PAID_STATES = ("paid", "partially_refunded")

def _orders_frame(since):
    rows = (
        db.session.query(Order.id, Order.status, Order.payment_status, Order.total_cents, Order.created_at)
        .filter(Order.created_at >= since)
        .all()
    )
    return pd.DataFrame([tuple(r) for r in rows], columns=["id", "status", "payment_status", "total_cents", "created_at"])

def _daily_revenue(paid, since, days):
    index = pd.date_range(pd.Timestamp(since), periods=days + 1, freq="D")
    if paid.empty:
        series = pd.Series(0, index=index)
    else:
        series = (
            paid.assign(day=pd.to_datetime(paid["created_at"]).dt.normalize())
            .groupby("day")["total_cents"].sum()
            .reindex(index, fill_value=0)
        )
    return [{"date": d.strftime("%Y-%m-%d"), "revenue_cents": int(v)} for d, v in series.items()]

def _top_products(order_ids, limit=5):
    if not order_ids:
        return []
    rows = (
        db.session.query(OrderItem.product_id, OrderItem.product_name, OrderItem.quantity, OrderItem.total_cents)
        .filter(OrderItem.order_id.in_(order_ids))
        .all()
    )
    df = pd.DataFrame([tuple(r) for r in rows], columns=["product_id", "name", "quantity", "total_cents"])
    top = (
        df.groupby(["product_id", "name"], dropna=False)
        .agg(quantity=("quantity", "sum"), revenue_cents=("total_cents", "sum"))
        .sort_values(["quantity", "revenue_cents"], ascending=False)
        .head(limit)
        .reset_index()
    )
    return [
        {
            "product_id": None if pd.isna(r.product_id) else int(r.product_id),
            "name": r.name,
            "quantity": int(r.quantity),
            "revenue_cents": int(r.revenue_cents),
        }
        for r in top.itertuples(index=False)
    ]

@bp.get("/analytics")
@admin_required
def analytics():
    """
    Store dashboard for the trailing window.
    Query params:
      - range -> days to look back (default 30, max 365)
    """
    days = min(max(parse_int(request.args.get("range"), 30), 1), 365)
    now = utcnow()
    since = (now - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)

    orders = _orders_frame(since)
    paid = orders[orders["payment_status"].isin(PAID_STATES)]

    revenue = int(paid["total_cents"].sum()) if not paid.empty else 0
    paid_count = len(paid)
    by_status = {str(k): int(v) for k, v in orders["status"].value_counts().items()}

    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    low_stock = (
        Product.query.filter(
            Product.is_active.is_(True),
            Product.track_inventory.is_(True),
            Product.stock_quantity <= threshold,
        )
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .all()
    )
    new_customers = User.query.filter(User.role == "customer", User.created_at >= since).count()

    return ok({
        "range_days": days,
        "totals": {
            "orders": len(orders),
            "paid_orders": paid_count,
            "revenue_cents": revenue,
            "average_order_value_cents": round(revenue / paid_count) if paid_count else 0,
            "new_customers": new_customers,
        },
        "orders_by_status": by_status,
        "daily_revenue": _daily_revenue(paid, since, days),
        "top_products": _top_products([int(i) for i in paid["id"]]),
        "low_stock": [
            {"id": p.id, "name": p.name, "sku": p.sku, "stock_quantity": p.stock_quantity}
            for p in low_stock
        ],
    })

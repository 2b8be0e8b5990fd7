from ..utils.api import utcnow
from ..extensions import db

ORDER_STATUSES = (
    "pending",
    "confirmed",
    "processing",
    "printing",
    "quality_check",
    "ready_to_ship",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
)
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded", "partially_refunded")

# no further status mutation once reached
TERMINAL_STATUSES = ("refunded",)


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), unique=True, nullable=False, index=True)  # e.g. "26048213"
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    email = db.Column(db.String(255), index=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    stripe_checkout_session_id = db.Column(db.String(255), unique=True, index=True)
    stripe_payment_intent_id = db.Column(db.String(255), index=True)

    # Money snapshot (cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    coupon_code = db.Column(db.String(64), index=True)

    shipping_method = db.Column(db.String(120))
    shipping_carrier = db.Column(db.String(64))
    tracking_number = db.Column(db.String(120))
    tracking_url = db.Column(db.String(1024))

    # Address snapshot copied at checkout, never a live reference
    shipping_address = db.Column(db.JSON)

    notes = db.Column(db.Text)
    admin_notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )
    history = db.relationship(
        "OrderStatusHistory",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderStatusHistory.id.asc()",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def customer_name(self):
        return (self.shipping_address or {}).get("fullName")

    def append_note(self, line: str):
        self.notes = f"{self.notes}\n\n{line}" if self.notes else line

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "email": self.email,
            "status": self.status,
            "payment_status": self.payment_status,
            "money": {
                "subtotal_cents": self.subtotal_cents,
                "discount_cents": self.discount_cents,
                "shipping_cents": self.shipping_cents,
                "tax_cents": self.tax_cents,
                "total_cents": self.total_cents,
            },
            "coupon_code": self.coupon_code,
            "shipping": {
                "method": self.shipping_method,
                "carrier": self.shipping_carrier,
                "tracking_number": self.tracking_number,
                "tracking_url": self.tracking_url,
                "address": self.shipping_address,
            },
            "notes": self.notes,
            "items": [i.as_api() for i in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "shipped_at": self.shipped_at.isoformat() if self.shipped_at else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
        }

    def as_admin_api(self):
        data = self.as_api()
        data["admin_notes"] = self.admin_notes
        data["user_id"] = self.user_id
        data["stripe_payment_intent_id"] = self.stripe_payment_intent_id
        data["history"] = [h.as_api() for h in self.history]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64))
    product_image = db.Column(db.String(1024))

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "product_image": self.product_image,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }


class OrderStatusHistory(db.Model):
    """Append-only; rows are never updated or deleted."""
    __tablename__ = "order_status_history"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)
    note = db.Column(db.Text)
    changed_by = db.Column(db.String(64))  # user id, or "stripe" for webhook-driven changes
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def as_api(self):
        return {
            "status": self.status,
            "note": self.note,
            "changed_by": self.changed_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

# storefront/model/shipping.py
from ..extensions import db
from sqlalchemy.sql import func

class ShippingRate(db.Model):
    __tablename__ = "shipping_rate"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255))
    carrier = db.Column(db.String(64))

    rate_cents = db.Column(db.Integer, nullable=False, default=0)
    # inclusive band; None = unbounded on that side
    min_order_cents = db.Column(db.Integer, nullable=True)
    max_order_cents = db.Column(db.Integer, nullable=True)

    estimated_days_min = db.Column(db.Integer)
    estimated_days_max = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True, index=True)
    display_order = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "carrier": self.carrier,
            "rate_cents": self.rate_cents,
            "min_order_cents": self.min_order_cents,
            "max_order_cents": self.max_order_cents,
            "estimated_days_min": self.estimated_days_min,
            "estimated_days_max": self.estimated_days_max,
            "is_active": self.is_active,
            "display_order": self.display_order,
        }

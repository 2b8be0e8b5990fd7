# storefront/model/cart.py
from sqlalchemy.sql import func
from ..extensions import db

class CartItem(db.Model):
    """Server-side mirror of a signed-in customer's cart line."""
    __tablename__ = "cart_item"
    __table_args__ = (db.UniqueConstraint("user_id", "product_id", name="uq_cart_item_user_product"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    product = db.relationship("Product", lazy="joined")

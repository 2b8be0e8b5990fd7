# storefront/model/product.py
from ..extensions import db
from sqlalchemy.sql import func

class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    sku = db.Column(db.String(64), unique=True, index=True)
    description = db.Column(db.Text)
    short_description = db.Column(db.String(512))

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    compare_at_price_cents = db.Column(db.Integer)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    track_inventory = db.Column(db.Boolean, default=True)
    allow_backorder = db.Column(db.Boolean, default=False)

    # [{"url": ..., "alt": ..., "is_primary": bool}]
    images = db.Column(db.JSON, default=list)

    is_active = db.Column(db.Boolean, default=True, index=True)
    is_featured = db.Column(db.Boolean, default=False)
    badge = db.Column(db.String(64))

    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def primary_image(self):
        imgs = self.images or []
        for img in imgs:
            if img.get("is_primary"):
                return img.get("url")
        return imgs[0].get("url") if imgs else None

    def in_stock(self, quantity: int = 1) -> bool:
        if not self.track_inventory or self.allow_backorder:
            return True
        return int(self.stock_quantity or 0) >= quantity

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "sku": self.sku,
            "description": self.description,
            "short_description": self.short_description,
            "price_cents": self.price_cents,
            "compare_at_price_cents": self.compare_at_price_cents,
            "stock_quantity": self.stock_quantity,
            "track_inventory": self.track_inventory,
            "allow_backorder": self.allow_backorder,
            "images": self.images or [],
            "is_active": self.is_active,
            "is_featured": self.is_featured,
            "badge": self.badge,
            "category": self.category.as_dict() if self.category else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

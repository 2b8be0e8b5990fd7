# storefront/admin/catalog.py
import re
from io import BytesIO

import pandas as pd
from flask import request, send_file
from sqlalchemy import or_, desc
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..model import Category, Product
from ..utils.api import json_body, ok, paginate, parse_bool, parse_opt_int, require_cents
from ..utils.decorators import admin_required
from . import bp

# ---------- helpers ----------
def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")

def _product_fields(data: dict, partial=False) -> dict:
    fields = {}
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if len(name) < 2:
            raise ValidationError("Product name is required")
        fields["name"] = name
    if "slug" in data or not partial:
        slug = slugify(data.get("slug") or fields.get("name"))
        if len(slug) < 2:
            raise ValidationError("Slug is required")
        fields["slug"] = slug
    if not partial or "priceCents" in data:
        fields["price_cents"] = require_cents(data.get("priceCents"), "priceCents")
    if "compareAtPriceCents" in data:
        fields["compare_at_price_cents"] = require_cents(data.get("compareAtPriceCents"), "compareAtPriceCents", allow_none=True)
    if not partial or "stockQuantity" in data:
        stock = parse_opt_int(data.get("stockQuantity")) or 0
        if stock < 0:
            raise ValidationError("stockQuantity must be >= 0")
        fields["stock_quantity"] = stock
    for key, attr in (("description", "description"), ("shortDescription", "short_description"),
                      ("sku", "sku"), ("badge", "badge")):
        if key in data:
            fields[attr] = data.get(key) or None
    for key, attr, default in (("trackInventory", "track_inventory", True), ("allowBackorder", "allow_backorder", False),
                               ("isActive", "is_active", True), ("isFeatured", "is_featured", False)):
        if not partial or key in data:
            fields[attr] = parse_bool(data.get(key), default=default)
    if "categoryId" in data:
        cid = parse_opt_int(data.get("categoryId"))
        if cid is not None and not db.session.get(Category, cid):
            raise ValidationError("Unknown categoryId")
        fields["category_id"] = cid
    if "images" in data:
        images = data.get("images") or []
        if not isinstance(images, list) or any(not isinstance(i, dict) or not i.get("url") for i in images):
            raise ValidationError("images must be a list of {url, alt?, isPrimary?}")
        fields["images"] = [
            {"url": i["url"], "alt": i.get("alt"), "is_primary": bool(i.get("isPrimary"))} for i in images
        ]
    return fields

def _commit_unique(what: str):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"{what} with this slug/sku already exists")

# ---------- products ----------
@bp.get("/products")
@admin_required
def list_products():
    q = (request.args.get("q") or "").strip()
    query = Product.query
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if request.args.get("active") is not None:
        query = query.filter(Product.is_active.is_(parse_bool(request.args.get("active"))))
    page = paginate(query.order_by(desc(Product.id)), request.args.get("page"), request.args.get("per_page"))
    return ok({"meta": page["meta"], "products": [p.as_api() for p in page["items"]]})

@bp.post("/products")
@admin_required
def create_product():
    p = Product(**_product_fields(json_body()))
    db.session.add(p)
    _commit_unique("Product")
    return ok(p.as_api(), status=201)

@bp.put("/products/<int:pid>")
@admin_required
def update_product(pid):
    p = db.session.get(Product, pid)
    if not p:
        raise NotFoundError("Product not found")
    for k, v in _product_fields(json_body(), partial=True).items():
        setattr(p, k, v)
    _commit_unique("Product")
    return ok(p.as_api())

@bp.delete("/products/<int:pid>")
@admin_required
def delete_product(pid):
    """Soft delete: order items keep pointing at the row."""
    p = db.session.get(Product, pid)
    if not p:
        raise NotFoundError("Product not found")
    p.is_active = False
    db.session.commit()
    return ok({"success": True})

@bp.get("/products/export")
@admin_required
def export_products():
    """Export the catalogue as an Excel file."""
    rows = [{
        "ID": p.id,
        "Name": p.name,
        "Slug": p.slug,
        "SKU": p.sku,
        "Price (cents)": p.price_cents,
        "Stock": p.stock_quantity,
        "Track Inventory": p.track_inventory,
        "Active": p.is_active,
        "Category": p.category.name if p.category else None,
    } for p in Product.query.order_by(Product.id.asc()).all()]
    df = pd.DataFrame(rows, columns=["ID", "Name", "Slug", "SKU", "Price (cents)", "Stock",
                                     "Track Inventory", "Active", "Category"])

    output = BytesIO()
    df.to_excel(output, index=False)
    output.seek(0)
    return send_file(
        output,
        as_attachment=True,
        download_name="products_export.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

IMPORT_COLUMNS = ["Name", "Slug", "SKU", "Price (cents)", "Stock"]

@bp.post("/products/import")
@admin_required
def import_products():
    """
    Import products from an uploaded .xlsx file (same columns as the export).
    Rows whose slug already exists update that product.
    """
    file = request.files.get("file")
    if not file or not file.filename:
        raise ValidationError("No file uploaded")
    if not file.filename.endswith(".xlsx"):
        raise ValidationError("Only .xlsx files are allowed")

    df = pd.read_excel(file)
    missing = [c for c in IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    df = df.astype(object).where(pd.notnull(df), None)

    created = updated = 0
    try:
        for _, row in df.iterrows():
            fields = _product_fields({
                "name": str(row["Name"] or ""),
                "slug": row["Slug"],
                "sku": str(row["SKU"]) if row["SKU"] is not None else None,
                "priceCents": int(row["Price (cents)"]) if row["Price (cents)"] is not None else None,
                "stockQuantity": int(row["Stock"]) if row["Stock"] is not None else 0,
                "trackInventory": row.get("Track Inventory"),
                "isActive": row.get("Active"),
            })
            p = Product.query.filter_by(slug=fields["slug"]).first()
            if p:
                for k, v in fields.items():
                    setattr(p, k, v)
                updated += 1
            else:
                db.session.add(Product(**fields))
                created += 1
    except ValidationError as e:
        db.session.rollback()
        raise ValidationError(f"Row {created + updated + 2}: {e.message}")
    _commit_unique("Product")
    return ok({"created": created, "updated": updated})

# ---------- categories ----------
def _category_fields(data: dict, partial=False) -> dict:
    fields = {}
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if len(name) < 2:
            raise ValidationError("Category name is required")
        fields["name"] = name
    if "slug" in data or not partial:
        slug = slugify(data.get("slug") or fields.get("name"))
        if len(slug) < 2:
            raise ValidationError("Slug is required")
        fields["slug"] = slug
    if "description" in data:
        fields["description"] = data.get("description") or None
    if "imageUrl" in data:
        fields["image_url"] = data.get("imageUrl") or None
    if "displayOrder" in data:
        fields["display_order"] = parse_opt_int(data.get("displayOrder")) or 0
    if not partial or "isActive" in data:
        fields["is_active"] = parse_bool(data.get("isActive"), default=True)
    return fields

@bp.get("/categories")
@admin_required
def list_categories():
    items = Category.query.order_by(Category.display_order.asc(), Category.name.asc()).all()
    return ok({"categories": [c.as_dict() for c in items]})

@bp.post("/categories")
@admin_required
def create_category():
    fields = _category_fields(json_body())
    if Category.query.filter(Category.name.ilike(fields["name"])).first():
        raise ConflictError("category name already exists")
    c = Category(**fields)
    db.session.add(c)
    _commit_unique("Category")
    return ok({"category": c.as_dict()}, status=201)

@bp.put("/categories/<int:cid>")
@admin_required
def update_category(cid):
    c = db.session.get(Category, cid)
    if not c:
        raise NotFoundError("Category not found")
    fields = _category_fields(json_body(), partial=True)
    if "name" in fields:
        exists = Category.query.filter(Category.name.ilike(fields["name"]), Category.id != c.id).first()
        if exists:
            raise ConflictError("category name already exists")
    for k, v in fields.items():
        setattr(c, k, v)
    _commit_unique("Category")
    return ok({"category": c.as_dict()})

@bp.delete("/categories/<int:cid>")
@admin_required
def delete_category(cid):
    if Product.query.filter_by(category_id=cid).first():
        raise ConflictError("cannot delete: category has products")
    c = db.session.get(Category, cid)
    if not c:
        raise NotFoundError("Category not found")
    db.session.delete(c)
    db.session.commit()
    return ok({"success": True})

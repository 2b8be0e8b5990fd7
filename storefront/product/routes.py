from flask import request
from sqlalchemy import or_, desc, asc

from ..errors import NotFoundError
from ..model import Category, Product
from ..utils.api import ok, paginate, parse_bool, parse_opt_int
from . import bp

# ---------- helpers ----------
def _sort_products(query, sort):
    sort = (sort or "").strip()
    mapping = {
        "newest": desc(Product.created_at),
        "name": asc(Product.name), "-name": desc(Product.name),
        "price": asc(Product.price_cents), "-price": desc(Product.price_cents),
        "price_asc": asc(Product.price_cents), "price_desc": desc(Product.price_cents),
    }
    col = mapping.get(sort, desc(Product.id))  # default newest first (id desc)
    return query.order_by(col)

# ---------- routes ----------
# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      q         -> substring match on name/description/sku
      category  -> category slug
      min_price -> cents
      max_price -> cents
      in_stock  -> bool (only products that can be bought now)
      featured  -> bool
      sort      -> newest, name, -name, price, -price
      page, per_page (cap 100)
    """
    q = (request.args.get("q") or "").strip()
    category_slug = (request.args.get("category") or "").strip()
    min_price = parse_opt_int(request.args.get("min_price"))
    max_price = parse_opt_int(request.args.get("max_price"))

    query = Product.query.filter(Product.is_active.is_(True))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like), Product.sku.ilike(like)))
    if category_slug:
        query = query.join(Category).filter(Category.slug == category_slug)
    if min_price is not None:
        query = query.filter(Product.price_cents >= min_price)
    if max_price is not None:
        query = query.filter(Product.price_cents <= max_price)
    if parse_bool(request.args.get("in_stock")):
        query = query.filter(or_(
            Product.track_inventory.is_(False),
            Product.allow_backorder.is_(True),
            Product.stock_quantity > 0,
        ))
    if parse_bool(request.args.get("featured")):
        query = query.filter(Product.is_featured.is_(True))

    page = paginate(_sort_products(query, request.args.get("sort")),
                    request.args.get("page"), request.args.get("per_page"))
    return ok({"meta": page["meta"], "products": [p.as_api() for p in page["items"]]})

# GET /api/products/<slug>
@bp.get("/<slug>")
def get_product(slug):
    p = Product.query.filter_by(slug=slug, is_active=True).first()
    if not p:
        raise NotFoundError("Product not found")
    return ok(p.as_api())

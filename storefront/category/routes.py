# --- category/routes.py ---
from ..errors import NotFoundError
from ..model import Category
from ..utils.api import ok
from . import bp

@bp.get("")
def list_categories():
    items = (
        Category.query.filter(Category.is_active.is_(True))
        .order_by(Category.display_order.asc(), Category.name.asc())
        .all()
    )
    return ok({"categories": [c.as_dict() for c in items]})

@bp.get("/<slug>")
def get_category(slug):
    c = Category.query.filter_by(slug=slug, is_active=True).first()
    if not c:
        raise NotFoundError("Category not found")
    return ok({"category": c.as_dict()})

# storefront/services/cart_service.py
"""Read/write-through mirror of a signed-in customer's cart."""
from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..model import CartItem, Product
from .cart_store import CartLine, CartStore
from ..utils.api import parse_int


def load_cart(user) -> CartStore:
    rows = (
        CartItem.query.filter_by(user_id=user.id)
        .order_by(CartItem.id.asc())
        .all()
    )
    store = CartStore()
    for row in rows:
        p = row.product
        # inactive products drop out of the cart view
        if not p or not p.is_active or row.quantity <= 0:
            continue
        store.add(CartLine(
            product_id=str(p.id),
            name=p.name,
            unit_price_cents=p.price_cents,
            quantity=row.quantity,
            image=p.primary_image(),
        ))
    return store


def _product_or_404(product_id) -> Product:
    pid = parse_int(product_id, None)
    if pid is None:
        raise ValidationError("productId is required")
    product = db.session.get(Product, pid)
    if not product or not product.is_active:
        raise NotFoundError("product not found or inactive")
    return product


def _row(user, product_id):
    return CartItem.query.filter_by(user_id=user.id, product_id=product_id).first()


def add_item(user, product_id, quantity) -> CartStore:
    qty = parse_int(quantity, 1)
    if qty < 1:
        raise ValidationError("quantity must be >= 1")
    product = _product_or_404(product_id)
    row = _row(user, product.id)
    if row:
        row.quantity += qty
    else:
        db.session.add(CartItem(user_id=user.id, product_id=product.id, quantity=qty))
    db.session.commit()
    return load_cart(user)


def set_quantity(user, product_id, quantity) -> CartStore:
    pid = parse_int(product_id, None)
    if pid is None:
        raise ValidationError("productId is required")
    qty = parse_int(quantity, 0)
    row = _row(user, pid)
    if qty <= 0:
        if row:
            db.session.delete(row)
    elif row:
        row.quantity = qty
    else:
        product = _product_or_404(pid)
        db.session.add(CartItem(user_id=user.id, product_id=product.id, quantity=qty))
    db.session.commit()
    return load_cart(user)


def remove_item(user, product_id=None) -> CartStore:
    q = CartItem.query.filter_by(user_id=user.id)
    if product_id is not None:
        q = q.filter_by(product_id=parse_int(product_id, -1))
    q.delete(synchronize_session=False)
    db.session.commit()
    return load_cart(user)

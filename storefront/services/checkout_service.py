# storefront/services/checkout_service.py
from __future__ import annotations
import random
import re

from flask import current_app

from ..extensions import db
from ..errors import UpstreamError, ValidationError
from ..model import Order, OrderItem, OrderStatusHistory, Product
from ..utils.api import parse_int, utcnow
from . import payments
from .coupon_service import evaluate_coupon
from .shipping_service import resolve_rate

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# field -> minimum length
_ADDRESS_RULES = {
    "fullName": 2,
    "addressLine1": 5,
    "city": 2,
    "state": 2,
    "postalCode": 5,
}
_ADDRESS_OPTIONAL = ("addressLine2", "phone", "email")


def generate_order_number() -> str:
    # two-digit year + six random digits, retried until unused
    for _ in range(10):
        candidate = f"{utcnow():%y}{random.randint(0, 999999):06d}"
        if not Order.query.filter_by(order_number=candidate).first():
            return candidate
    raise UpstreamError("Could not allocate an order number")


def normalize_address(raw) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("shippingAddress is required")
    address = {}
    for field, min_len in _ADDRESS_RULES.items():
        value = str(raw.get(field) or "").strip()
        if len(value) < min_len:
            raise ValidationError(f"shippingAddress.{field} is required")
        address[field] = value
    address["country"] = str(raw.get("country") or "US").strip().upper()
    for field in _ADDRESS_OPTIONAL:
        if raw.get(field):
            address[field] = str(raw[field]).strip()
    return address


def _merge_items(raw_items) -> dict[int, int]:
    if not raw_items or not isinstance(raw_items, list):
        raise ValidationError("Cart is empty")
    merged: dict[int, int] = {}
    for entry in raw_items:
        if not isinstance(entry, dict):
            raise ValidationError("Invalid cart item")
        pid = parse_int(entry.get("productId"), None)
        qty = parse_int(entry.get("quantity"), 0)
        if pid is None:
            raise ValidationError("productId is required for each item")
        if qty < 1:
            raise ValidationError("quantity must be >= 1")
        merged[pid] = merged.get(pid, 0) + qty
    return merged


def create_checkout(data: dict, user=None):
    """
    Price the cart from the catalogue, write a pending order and open a Stripe
    Checkout Session for it. Returns (order, session).
    """
    quantities = _merge_items(data.get("items"))
    address = normalize_address(data.get("shippingAddress"))

    email = data.get("email") or address.get("email") or (user.email if user else "") or ""
    email = email.strip().lower() if isinstance(email, str) else ""
    if not _EMAIL_RE.match(email):
        raise ValidationError("A valid email address is required")

    products = (
        Product.query
        .filter(Product.id.in_(quantities.keys()), Product.is_active.is_(True))
        .all()
    )
    if len(products) != len(quantities):
        raise ValidationError("Some products are unavailable")
    products.sort(key=lambda p: p.id)

    for p in products:
        if not p.in_stock(quantities[p.id]):
            raise ValidationError(f"{p.name} is out of stock")

    subtotal = sum(p.price_cents * quantities[p.id] for p in products)

    discount = 0
    coupon_code = data.get("couponCode") or None
    if coupon_code is not None and not isinstance(coupon_code, str):
        raise ValidationError("couponCode must be a string")
    coupon_code = (coupon_code or "").strip().upper() or None
    if coupon_code:
        quote = evaluate_coupon(coupon_code, subtotal)
        discount = quote.discount_cents
        coupon_code = quote.coupon.code

    rate = resolve_rate(data.get("shippingRateId"), subtotal)
    shipping = int(rate["price_cents"] or 0)

    order = Order(
        order_number=generate_order_number(),
        user_id=user.id if user else None,
        email=email,
        status="pending",
        payment_status="pending",
        subtotal_cents=subtotal,
        discount_cents=discount,
        shipping_cents=shipping,
        tax_cents=0,
        total_cents=subtotal - discount + shipping,
        coupon_code=coupon_code,
        shipping_method=rate["name"],
        shipping_address=address,
    )
    db.session.add(order)
    db.session.flush()

    currency = current_app.config.get("CURRENCY", "usd")
    line_items = []
    for p in products:
        qty = quantities[p.id]
        image = p.primary_image()
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=p.id,
            product_name=p.name,
            product_sku=p.sku,
            product_image=image,
            quantity=qty,
            unit_price_cents=p.price_cents,
            total_cents=p.price_cents * qty,
        ))
        product_data = {"name": p.name, "images": [image] if image else []}
        if p.short_description:
            product_data["description"] = p.short_description
        line_items.append({
            "price_data": {"currency": currency, "product_data": product_data, "unit_amount": p.price_cents},
            "quantity": qty,
        })
    if shipping > 0:
        line_items.append({
            "price_data": {
                "currency": currency,
                "product_data": {"name": "Shipping", "description": rate["name"]},
                "unit_amount": shipping,
            },
            "quantity": 1,
        })
    db.session.add(OrderStatusHistory(order_id=order.id, status="pending", note="Order created at checkout",
                                      changed_by=str(user.id) if user else None))

    try:
        session = payments.create_checkout_session(order, line_items, discount)
    except UpstreamError:
        db.session.rollback()
        raise

    order.stripe_checkout_session_id = session.id
    db.session.commit()
    current_app.logger.info("Checkout opened for order %s (%s)", order.order_number, session.id)
    return order, session

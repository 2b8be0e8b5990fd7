"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.extensions import db
from storefront.model import Coupon, Order, OrderItem, Product, ShippingRate, User

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "JWT_SECRET_KEY": "test-jwt-secret-key-with-enough-length-0123456789",
        "STRIPE_SECRET_KEY": "sk_test_123",
        "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "RESEND_API_KEY": "",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email, role):
    u = User(email=email, name=email.split("@")[0], role=role,
             password_hash=generate_password_hash("password123"))
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return _make_user("admin@example.com", "admin")


@pytest.fixture
def customer(app):
    return _make_user("jane@example.com", "customer")


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(identity=str(admin.id))}"}


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {create_access_token(identity=str(customer.id))}"}


@pytest.fixture
def make_product(app):
    def factory(name="Desk Lamp", price_cents=2500, stock=10, **kw):
        slug = kw.pop("slug", name.lower().replace(" ", "-"))
        p = Product(name=name, slug=slug, price_cents=price_cents, stock_quantity=stock, **kw)
        db.session.add(p)
        db.session.commit()
        return p
    return factory


@pytest.fixture
def make_coupon(app):
    def factory(code="SAVE10", discount_type="percentage", value="10", **kw):
        c = Coupon(code=code, discount_type=discount_type, discount_value=Decimal(value), **kw)
        db.session.add(c)
        db.session.commit()
        return c
    return factory


@pytest.fixture
def make_rate(app):
    def factory(name, rate_cents, min_order_cents=None, max_order_cents=None, **kw):
        r = ShippingRate(name=name, rate_cents=rate_cents, min_order_cents=min_order_cents,
                         max_order_cents=max_order_cents, **kw)
        db.session.add(r)
        db.session.commit()
        return r
    return factory


@pytest.fixture
def make_order(app):
    def factory(items, status="pending", payment_status="pending", coupon_code=None,
                session_id="cs_test_1", payment_intent=None, discount_cents=0, shipping_cents=0,
                email="jane@example.com", order_number="26000001"):
        subtotal = sum(p.price_cents * qty for p, qty in items)
        o = Order(
            order_number=order_number,
            email=email,
            status=status,
            payment_status=payment_status,
            stripe_checkout_session_id=session_id,
            stripe_payment_intent_id=payment_intent,
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            shipping_cents=shipping_cents,
            total_cents=subtotal - discount_cents + shipping_cents,
            coupon_code=coupon_code,
            shipping_address={"fullName": "Jane Doe", "addressLine1": "1 Main Street",
                              "city": "Springfield", "state": "IL", "postalCode": "62701",
                              "country": "US"},
        )
        db.session.add(o)
        db.session.flush()
        for p, qty in items:
            db.session.add(OrderItem(order_id=o.id, product_id=p.id, product_name=p.name,
                                     quantity=qty, unit_price_cents=p.price_cents,
                                     total_cents=p.price_cents * qty))
        db.session.commit()
        return o
    return factory


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook payloads."""
    timestamp = int(timestamp or time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


def stripe_event(event_type, obj, event_id="evt_test_1") -> dict:
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}


def event_payload(event_type, obj, event_id="evt_test_1") -> str:
    return json.dumps(stripe_event(event_type, obj, event_id))

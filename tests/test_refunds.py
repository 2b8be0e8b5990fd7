from types import SimpleNamespace

import pytest

from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.model import Order, OrderStatusHistory
from storefront.services import payments
from storefront.services.order_service import refund_order


@pytest.fixture
def refunds(monkeypatch):
    calls = []

    def fake_refund(payment_intent_id, amount_cents, reason=None):
        calls.append((payment_intent_id, amount_cents, reason))
        return SimpleNamespace(id=f"re_{len(calls)}", status="succeeded")

    monkeypatch.setattr(payments, "create_refund", fake_refund)
    return calls


@pytest.fixture
def paid_order(make_product, make_order):
    lamp = make_product("Lamp", 5000)
    return make_order([(lamp, 1)], status="confirmed", payment_status="paid", payment_intent="pi_paid")


def test_full_refund_by_default(paid_order, refunds):
    result = refund_order(paid_order.id)

    assert refunds == [("pi_paid", 5000, None)]
    assert result.is_full_refund
    assert result.order.status == "refunded"
    assert result.order.payment_status == "refunded"
    assert "Refund processed: $50.00" in result.order.notes

    history = OrderStatusHistory.query.filter_by(order_id=paid_order.id).one()
    assert "re_1" in history.note


def test_partial_refund_keeps_status(paid_order, refunds):
    result = refund_order(paid_order.id, amount=1500, reason="requested_by_customer")

    assert refunds == [("pi_paid", 1500, "requested_by_customer")]
    assert not result.is_full_refund
    assert result.order.status == "confirmed"
    assert result.order.payment_status == "partially_refunded"


def test_amount_at_or_above_total_is_full(paid_order, refunds):
    result = refund_order(paid_order.id, amount=5000)
    assert result.order.payment_status == "refunded"


def test_second_partial_refund_allowed(paid_order, refunds):
    refund_order(paid_order.id, amount=1000)
    result = refund_order(paid_order.id, amount=1000)
    assert result.order.payment_status == "partially_refunded"
    assert len(refunds) == 2


def test_refund_after_full_refund_rejected(paid_order, refunds):
    refund_order(paid_order.id)
    with pytest.raises(ConflictError):
        refund_order(paid_order.id)
    assert len(refunds) == 1


def test_unpaid_order_rejected(make_product, make_order, refunds):
    lamp = make_product("Lamp", 5000)
    order = make_order([(lamp, 1)])
    with pytest.raises(ConflictError):
        refund_order(order.id)
    assert refunds == []


def test_missing_payment_intent_rejected(make_product, make_order, refunds):
    lamp = make_product("Lamp", 5000)
    order = make_order([(lamp, 1)], status="confirmed", payment_status="paid")
    with pytest.raises(ConflictError):
        refund_order(order.id)


def test_missing_and_unknown_order(app, refunds):
    with pytest.raises(ValidationError):
        refund_order(None)
    with pytest.raises(NotFoundError):
        refund_order(9999)


def test_negative_amount_rejected(paid_order, refunds):
    with pytest.raises(ValidationError):
        refund_order(paid_order.id, amount=-5)
    assert refunds == []


class TestRefundEndpoint:
    url = "/api/admin/orders/refund"

    def test_requires_login(self, client, paid_order):
        r = client.post(self.url, json={"orderId": paid_order.id})
        assert r.status_code == 401

    def test_requires_admin(self, client, paid_order, customer_headers):
        r = client.post(self.url, json={"orderId": paid_order.id}, headers=customer_headers)
        assert r.status_code == 403

    def test_full_refund(self, client, paid_order, admin_headers, refunds):
        r = client.post(self.url, json={"orderId": paid_order.id}, headers=admin_headers)
        assert r.status_code == 200
        body = r.get_json()
        assert body["success"] is True
        assert body["refund"] == {"id": "re_1", "amount": 5000, "status": "succeeded"}
        assert body["order"] == {"status": "refunded", "paymentStatus": "refunded"}

    def test_partial_refund(self, client, paid_order, admin_headers, refunds):
        r = client.post(self.url, json={"orderId": paid_order.id, "amount": 2000}, headers=admin_headers)
        assert r.status_code == 200
        assert r.get_json()["order"]["paymentStatus"] == "partially_refunded"

    def test_second_full_refund_rejected(self, client, paid_order, admin_headers, refunds):
        client.post(self.url, json={"orderId": paid_order.id}, headers=admin_headers)
        r = client.post(self.url, json={"orderId": paid_order.id}, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json() == {"error": "Order already refunded"}

    def test_missing_order_id(self, client, admin_headers, refunds):
        r = client.post(self.url, json={}, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json()["error"] == "Order ID required"

    def test_unknown_order(self, client, admin_headers, refunds):
        r = client.post(self.url, json={"orderId": 424242}, headers=admin_headers)
        assert r.status_code == 404

    def test_processor_failure(self, client, paid_order, admin_headers, monkeypatch):
        from storefront.errors import UpstreamError

        def failing(*args, **kwargs):
            raise UpstreamError("Charge has already been refunded")

        monkeypatch.setattr(payments, "create_refund", failing)
        r = client.post(self.url, json={"orderId": paid_order.id}, headers=admin_headers)
        assert r.status_code == 500
        assert r.get_json() == {"error": "Charge has already been refunded"}
        db.session.rollback()
        assert db.session.get(Order, paid_order.id).payment_status == "paid"

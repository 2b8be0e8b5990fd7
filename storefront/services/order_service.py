# storefront/services/order_service.py
"""
Order lifecycle: payment-processor events, admin refunds and admin status updates.

Webhook-driven changes go through TRANSITIONS, keyed by the order's current
payment_status and the event type. The write is a compare-and-set on
payment_status, so a redelivered (or concurrently delivered) event finds no
row to update and its side effects are skipped.
"""
from __future__ import annotations
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..model import CartItem, Order, OrderStatusHistory, Product
from ..model.order import ORDER_STATUSES, TERMINAL_STATUSES
from ..utils.api import require_cents, utcnow
from ..utils.money import format_price
from . import email as mailer
from . import payments
from .coupon_service import record_coupon_use

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"
HANDLED_EVENTS = (CHECKOUT_COMPLETED, PAYMENT_FAILED, CHARGE_REFUNDED)

# side-effect commands
DECREMENT_STOCK = "decrement_stock"
INCREMENT_COUPON = "increment_coupon"
CLEAR_CART = "clear_cart"
SEND_CONFIRMATION = "send_confirmation"

WEBHOOK_ACTOR = "stripe"


@dataclass(frozen=True)
class Transition:
    status: str | None           # None keeps the current order status
    payment_status: str | None   # None is decided from the refund amounts on the charge
    effects: tuple = ()


_CONFIRM = Transition("confirmed", "paid", (DECREMENT_STOCK, INCREMENT_COUPON, CLEAR_CART, SEND_CONFIRMATION))
_REFUNDED = Transition("refunded", None)

TRANSITIONS = {
    ("pending", CHECKOUT_COMPLETED): _CONFIRM,
    ("failed", CHECKOUT_COMPLETED): _CONFIRM,
    ("pending", PAYMENT_FAILED): Transition(None, "failed"),
    ("paid", CHARGE_REFUNDED): _REFUNDED,
    ("partially_refunded", CHARGE_REFUNDED): _REFUNDED,
}


def _find_order_for_event(event_type: str, obj: dict) -> Order | None:
    order = None
    if event_type == CHECKOUT_COMPLETED and obj.get("id"):
        order = Order.query.filter_by(stripe_checkout_session_id=obj["id"]).first()
    elif event_type == PAYMENT_FAILED and obj.get("id"):
        order = Order.query.filter_by(stripe_payment_intent_id=obj["id"]).first()
    elif event_type == CHARGE_REFUNDED and obj.get("payment_intent"):
        order = Order.query.filter_by(stripe_payment_intent_id=obj["payment_intent"]).first()
    if order:
        return order

    order_id = (obj.get("metadata") or {}).get("order_id")
    try:
        return db.session.get(Order, int(order_id)) if order_id else None
    except (TypeError, ValueError):
        return None


def _refund_payment_status(charge: dict) -> str:
    return "refunded" if charge.get("amount_refunded") == charge.get("amount") else "partially_refunded"


def _decrement_stock(order: Order):
    # lock in product id order so concurrent orders cannot deadlock
    for item in sorted(order.items, key=lambda i: i.product_id or 0):
        if not item.product_id:
            continue
        product = (
            db.session.query(Product)
            .filter(Product.id == item.product_id)
            .with_for_update()
            .first()
        )
        if not product or not product.track_inventory:
            continue
        remaining = int(product.stock_quantity or 0) - int(item.quantity)
        if remaining < 0:
            current_app.logger.warning(
                "Stock for product %s went below zero on order %s; clamping to 0",
                product.id, order.order_number,
            )
            remaining = 0
        product.stock_quantity = remaining


def _increment_coupon(order: Order):
    if order.coupon_code and not record_coupon_use(order.coupon_code):
        current_app.logger.warning(
            "Coupon %s not counted for order %s (missing or at its usage limit)",
            order.coupon_code, order.order_number,
        )


def _clear_cart(order: Order):
    if order.user_id:
        CartItem.query.filter_by(user_id=order.user_id).delete(synchronize_session=False)


def _send_confirmation(order: Order):
    try:
        sent, error = mailer.send_order_confirmation_email(order)
    except Exception:
        current_app.logger.exception("Order confirmation email crashed for %s", order.order_number)
        return
    if not sent:
        current_app.logger.warning("Order confirmation email not sent for %s: %s", order.order_number, error)


# effects that must commit together with the status change
_TRANSACTIONAL_EFFECTS = {
    DECREMENT_STOCK: _decrement_stock,
    INCREMENT_COUPON: _increment_coupon,
    CLEAR_CART: _clear_cart,
}
# best-effort effects, run after commit
_AFTER_COMMIT_EFFECTS = {
    SEND_CONFIRMATION: _send_confirmation,
}


def handle_payment_event(event: dict) -> str:
    """
    Apply a verified payment event. Returns a short outcome string:
    "applied", "duplicate", "ignored" or "order_not_found".
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    log = current_app.logger

    if event_type not in HANDLED_EVENTS:
        log.info("Ignoring Stripe event %s (%s)", event.get("id"), event_type)
        return "ignored"

    order = _find_order_for_event(event_type, obj)
    if not order:
        log.warning("Stripe event %s (%s): no matching order", event.get("id"), event_type)
        return "order_not_found"

    if order.is_terminal:
        log.info("Order %s is %s; ignoring %s", order.order_number, order.status, event_type)
        return "ignored"

    transition = TRANSITIONS.get((order.payment_status, event_type))
    if not transition:
        log.info(
            "No transition for order %s from payment_status=%s on %s",
            order.order_number, order.payment_status, event_type,
        )
        return "ignored"

    previous_status = order.status
    expected_payment_status = order.payment_status
    values = {
        Order.payment_status: transition.payment_status or _refund_payment_status(obj),
        Order.updated_at: utcnow(),
    }
    if transition.status:
        values[Order.status] = transition.status
    if event_type == CHECKOUT_COMPLETED and obj.get("payment_intent"):
        values[Order.stripe_payment_intent_id] = obj["payment_intent"]

    won = (
        db.session.query(Order)
        .filter(
            Order.id == order.id,
            Order.payment_status == expected_payment_status,
            Order.status.notin_(TERMINAL_STATUSES),
        )
        .update(values, synchronize_session=False)
    )
    if not won:
        db.session.rollback()
        log.info("Order %s already moved past %s; skipping duplicate %s",
                 order.order_number, expected_payment_status, event_type)
        return "duplicate"

    try:
        if transition.status and transition.status != previous_status:
            db.session.add(OrderStatusHistory(
                order_id=order.id,
                status=transition.status,
                note=f"Stripe event {event_type}",
                changed_by=WEBHOOK_ACTOR,
            ))
        for effect in transition.effects:
            handler = _TRANSACTIONAL_EFFECTS.get(effect)
            if handler:
                handler(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(order)
    for effect in transition.effects:
        handler = _AFTER_COMMIT_EFFECTS.get(effect)
        if handler:
            handler(order)

    log.info("Order %s: %s -> status=%s payment_status=%s",
             order.order_number, event_type, order.status, order.payment_status)
    return "applied"


# ---- refunds ----------------------------------------------------------------

@dataclass(frozen=True)
class RefundResult:
    order: Order
    refund_id: str
    refund_amount_cents: int
    refund_status: str | None
    is_full_refund: bool

    def as_api(self):
        return {
            "success": True,
            "refund": {
                "id": self.refund_id,
                "amount": self.refund_amount_cents,
                "status": self.refund_status,
            },
            "order": {
                "status": self.order.status,
                "paymentStatus": self.order.payment_status,
            },
        }


REFUND_REASON_LABELS = {
    "requested_by_customer": "Customer request",
    "duplicate": "Duplicate order",
    "fraudulent": "Fraudulent",
}


def refund_order(order_id, amount=None, reason: str | None = None, actor=None) -> RefundResult:
    if not order_id:
        raise ValidationError("Order ID required")

    order = db.session.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError("Order not found")
    if order.status == "refunded":
        raise ConflictError("Order already refunded")
    if order.payment_status not in ("paid", "partially_refunded"):
        raise ConflictError("Order has not been paid")
    if not order.stripe_payment_intent_id:
        raise ConflictError("No payment found for this order")

    refund_amount = order.total_cents if amount in (None, "", 0) else require_cents(amount, "amount")
    if refund_amount <= 0:
        raise ValidationError("amount must be > 0")

    refund = payments.create_refund(order.stripe_payment_intent_id, refund_amount, reason)

    is_full_refund = refund_amount >= order.total_cents
    order.payment_status = "refunded" if is_full_refund else "partially_refunded"
    if is_full_refund:
        order.status = "refunded"
    order.append_note(f"Refund processed: {format_price(refund_amount)} on {utcnow().isoformat()}")
    db.session.add(OrderStatusHistory(
        order_id=order.id,
        status=order.status,
        note=f"Refund of {format_price(refund_amount)} processed. Stripe Refund ID: {refund.id}",
        changed_by=str(actor.id) if actor else None,
    ))
    db.session.commit()

    current_app.logger.info("Refunded %s on order %s (%s)",
                            format_price(refund_amount), order.order_number, refund.id)

    try:
        sent, error = mailer.send_refund_notification_email(
            order, refund_amount, is_full_refund, REFUND_REASON_LABELS.get(reason)
        )
        if not sent:
            current_app.logger.warning("Refund email not sent for %s: %s", order.order_number, error)
    except Exception:
        current_app.logger.exception("Refund email crashed for %s", order.order_number)

    return RefundResult(
        order=order,
        refund_id=refund.id,
        refund_amount_cents=refund_amount,
        refund_status=getattr(refund, "status", None),
        is_full_refund=is_full_refund,
    )


# ---- admin updates & lookups -------------------------------------------------

_TRACKING_FIELDS = {
    "shippingCarrier": "shipping_carrier",
    "trackingNumber": "tracking_number",
    "trackingUrl": "tracking_url",
}


def update_order(order_id: int, data: dict, actor=None) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    status = (data.get("status") or "").strip() or None
    touches_state = status is not None or any(k in data for k in _TRACKING_FIELDS)
    if order.is_terminal and touches_state:
        raise ConflictError("Refunded orders cannot be modified")

    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        if status == "refunded":
            raise ValidationError("Use the refund endpoint to refund an order")
        if status != order.status:
            order.status = status
            if status == "shipped":
                order.shipped_at = utcnow()
            elif status == "delivered":
                order.delivered_at = utcnow()
            db.session.add(OrderStatusHistory(
                order_id=order.id,
                status=status,
                note=data.get("note") or None,
                changed_by=str(actor.id) if actor else None,
            ))

    for key, attr in _TRACKING_FIELDS.items():
        if key in data:
            setattr(order, attr, data.get(key) or None)
    if "adminNotes" in data:
        order.admin_notes = data.get("adminNotes") or None

    db.session.commit()

    if status == "shipped":
        try:
            sent, error = mailer.send_shipping_notification_email(order)
            if not sent:
                current_app.logger.warning("Shipping email not sent for %s: %s", order.order_number, error)
        except Exception:
            current_app.logger.exception("Shipping email crashed for %s", order.order_number)
    return order


def track_order(order_number: str, email: str) -> Order:
    if not order_number or not email:
        raise ValidationError("Order number and email are required")
    order = (
        Order.query
        .filter(Order.order_number == order_number.strip())
        .filter(func.lower(Order.email) == email.strip().lower())
        .first()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order

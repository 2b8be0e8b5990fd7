# storefront/services/payments.py
"""Thin wrapper around the Stripe client so the rest of the app never imports stripe directly."""
from __future__ import annotations
import json

import stripe
from flask import current_app

from ..errors import UpstreamError

REFUND_REASONS = ("duplicate", "fraudulent", "requested_by_customer")


class WebhookVerificationError(Exception):
    pass


def _api_key() -> str:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise UpstreamError("Payment processor is not configured")
    return key


def verify_webhook(payload: bytes, sig_header: str | None) -> dict:
    """Verify the Stripe-Signature header and return the decoded event."""
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise WebhookVerificationError("Webhook secret is not configured")
    if not sig_header:
        raise WebhookVerificationError("Missing Stripe-Signature header")

    body = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
    try:
        stripe.WebhookSignature.verify_header(body, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE)
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(str(e)) from e
    try:
        return json.loads(body)
    except ValueError as e:
        raise WebhookVerificationError("Invalid payload") from e


def create_checkout_session(order, line_items: list[dict], discount_cents: int = 0):
    key = _api_key()
    currency = current_app.config.get("CURRENCY", "usd")
    app_url = current_app.config.get("APP_URL", "").rstrip("/")
    params = dict(
        mode="payment",
        payment_method_types=["card"],
        line_items=line_items,
        success_url=f"{app_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{app_url}/cart",
        customer_email=order.email,
        metadata={"order_id": str(order.id), "order_number": order.order_number},
        # failed-payment events arrive on the PaymentIntent, not the session
        payment_intent_data={"metadata": {"order_id": str(order.id)}},
        billing_address_collection="required",
        api_key=key,
    )
    try:
        if discount_cents > 0:
            # one-off coupon so the hosted page shows the same total we stored
            coupon = stripe.Coupon.create(
                amount_off=discount_cents,
                currency=currency,
                duration="once",
                name=order.coupon_code or "Discount",
                api_key=key,
            )
            params["discounts"] = [{"coupon": coupon.id}]
        return stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        current_app.logger.error("Stripe checkout session failed for order %s: %s", order.order_number, e)
        raise UpstreamError(e.user_message or "Payment processor error") from e


def create_refund(payment_intent_id: str, amount_cents: int, reason: str | None = None):
    if reason not in REFUND_REASONS:
        reason = "requested_by_customer"
    try:
        return stripe.Refund.create(
            payment_intent=payment_intent_id,
            amount=amount_cents,
            reason=reason,
            api_key=_api_key(),
        )
    except stripe.StripeError as e:
        current_app.logger.error("Stripe refund failed for %s: %s", payment_intent_id, e)
        raise UpstreamError(e.user_message or str(e)) from e

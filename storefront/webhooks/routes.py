# storefront/webhooks/routes.py
from flask import current_app, request

from ..services import payments
from ..services.order_service import handle_payment_event
from ..utils.api import ok, err
from . import bp

@bp.post("/stripe")
def stripe_webhook():
    payload = request.get_data()
    signature = request.headers.get("Stripe-Signature")

    try:
        event = payments.verify_webhook(payload, signature)
    except payments.WebhookVerificationError as e:
        current_app.logger.error("Webhook signature verification failed: %s", e)
        return err("Invalid signature", 400)

    try:
        outcome = handle_payment_event(event)
    except Exception:
        current_app.logger.exception("Webhook handler error for event %s", event.get("id"))
        return err("Webhook handler failed", 500)

    current_app.logger.debug("Stripe event %s handled: %s", event.get("id"), outcome)
    return ok({"received": True})

# storefront/services/email.py
"""
Transactional e-mail through Resend.

Every sender returns ``(ok, error)`` and never raises: mail is a best-effort
side effect and must not fail the request that triggered it.
"""
from __future__ import annotations
from typing import Dict, Optional, Tuple

import resend
from flask import current_app

from ..utils.money import format_price


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    api_key = (current_app.config.get("RESEND_API_KEY") or "").strip()
    if not api_key:
        current_app.logger.warning("Resend API key not configured, skipping email to %s", to)
        return False, "Resend API key is not configured."
    if not to:
        return False, "Missing recipient"

    payload: Dict[str, object] = {
        "from": current_app.config["EMAIL_FROM"],
        "to": [to],
        "subject": subject,
        "html": html,
        "text": text or html,
    }

    previous_api_key = getattr(resend, "api_key", None)
    resend.api_key = api_key
    try:
        response = resend.Emails.send(payload)
    except Exception as exc:
        current_app.logger.error("Resend email error for %s: %s", to, exc)
        return False, str(exc)
    finally:
        resend.api_key = previous_api_key

    if not isinstance(response, dict) or not response.get("id"):
        current_app.logger.error("Resend returned an unexpected response: %s", response)
        return False, str(response)
    return True, None


def _item_lines(order) -> str:
    return "\n".join(
        f"- {i.product_name} x{i.quantity} ({format_price(i.total_cents)})" for i in order.items
    )


def send_order_confirmation_email(order):
    name = order.customer_name or "there"
    text = (
        f"Hi {name},\n\n"
        f"Thanks for your order #{order.order_number}.\n\n"
        f"{_item_lines(order)}\n\n"
        f"Subtotal: {format_price(order.subtotal_cents)}\n"
        f"Discount: -{format_price(order.discount_cents)}\n"
        f"Shipping: {format_price(order.shipping_cents)}\n"
        f"Total: {format_price(order.total_cents)}\n"
    )
    html = "<pre>" + text + "</pre>"
    return send_email(order.email, f"Order Confirmed - #{order.order_number}", html, text)


def send_shipping_notification_email(order):
    text = f"Your order #{order.order_number} has shipped."
    if order.shipping_carrier:
        text += f"\nCarrier: {order.shipping_carrier}"
    if order.tracking_number:
        text += f"\nTracking number: {order.tracking_number}"
    if order.tracking_url:
        text += f"\nTrack it here: {order.tracking_url}"
    return send_email(order.email, f"Your Order Has Shipped - #{order.order_number}", "<pre>" + text + "</pre>", text)


def send_refund_notification_email(order, refund_amount_cents: int, is_full_refund: bool, reason: str | None = None):
    kind = "full" if is_full_refund else "partial"
    text = (
        f"A {kind} refund of {format_price(refund_amount_cents)} for order #{order.order_number} "
        f"(total {format_price(order.total_cents)}) has been processed."
    )
    if reason:
        text += f"\nReason: {reason}"
    return send_email(order.email, f"Refund Processed - #{order.order_number}", "<pre>" + text + "</pre>", text)

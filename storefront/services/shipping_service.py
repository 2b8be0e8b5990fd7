# storefront/services/shipping_service.py
from __future__ import annotations
from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..model import ShippingRate
from ..utils.api import parse_bool, parse_opt_int, require_cents

DEFAULT_RATE_ID = "default"


def fallback_rate() -> dict:
    cfg = current_app.config
    days_min = cfg.get("DEFAULT_SHIPPING_DAYS_MIN", 5)
    days_max = cfg.get("DEFAULT_SHIPPING_DAYS_MAX", 7)
    return {
        "id": DEFAULT_RATE_ID,
        "name": "Standard Shipping",
        "description": f"{days_min}-{days_max} business days",
        "price_cents": cfg.get("DEFAULT_SHIPPING_CENTS", 599),
        "estimated_days_min": days_min,
        "estimated_days_max": days_max,
    }


def rate_applies(rate: ShippingRate, subtotal_cents: int) -> bool:
    # inclusive band; an unset bound does not restrict
    if rate.min_order_cents is not None and subtotal_cents < rate.min_order_cents:
        return False
    if rate.max_order_cents is not None and subtotal_cents > rate.max_order_cents:
        return False
    return True


def _as_option(rate: ShippingRate) -> dict:
    return {
        "id": rate.id,
        "name": rate.name,
        "description": rate.description,
        "price_cents": rate.rate_cents,
        "estimated_days_min": rate.estimated_days_min,
        "estimated_days_max": rate.estimated_days_max,
    }


def select_rates(subtotal_cents: int) -> list[dict]:
    """
    All active rates whose band contains the subtotal, cheapest first.
    Overlapping bands may all match. Never returns an empty list.
    """
    rates = (
        ShippingRate.query.filter(ShippingRate.is_active.is_(True))
        .order_by(ShippingRate.rate_cents.asc(), ShippingRate.display_order.asc(), ShippingRate.id.asc())
        .all()
    )
    applicable = [_as_option(r) for r in rates if rate_applies(r, subtotal_cents)]
    if not applicable:
        return [fallback_rate()]
    return applicable


def resolve_rate(rate_id, subtotal_cents: int) -> dict:
    """Pick the chosen option for checkout; None picks the cheapest."""
    options = select_rates(subtotal_cents)
    if rate_id in (None, ""):
        return options[0]
    for opt in options:
        if str(opt["id"]) == str(rate_id):
            return opt
    raise ValidationError("Selected shipping rate is not available for this order")


# ---- admin CRUD -------------------------------------------------------------

def _rate_fields(data: dict, partial: bool = False) -> dict:
    fields = {}
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if len(name) < 2:
            raise ValidationError("Shipping rate name is required")
        fields["name"] = name
    if not partial or "rateCents" in data:
        fields["rate_cents"] = require_cents(data.get("rateCents"), "rateCents")
    for key, attr in (("minOrderCents", "min_order_cents"), ("maxOrderCents", "max_order_cents")):
        if not partial or key in data:
            fields[attr] = require_cents(data.get(key), key, allow_none=True)
    # a zero ceiling means "no ceiling"
    if fields.get("max_order_cents") == 0:
        fields["max_order_cents"] = None
    for key, attr in (("estimatedDaysMin", "estimated_days_min"), ("estimatedDaysMax", "estimated_days_max")):
        if not partial or key in data:
            fields[attr] = parse_opt_int(data.get(key))
    for key, attr in (("description", "description"), ("carrier", "carrier")):
        if key in data:
            fields[attr] = data.get(key) or None
    if "displayOrder" in data:
        fields["display_order"] = parse_opt_int(data.get("displayOrder")) or 0
    if not partial or "isActive" in data:
        fields["is_active"] = parse_bool(data.get("isActive"), default=True)
    return fields


def _check_band(rate: ShippingRate):
    if (
        rate.min_order_cents is not None
        and rate.max_order_cents is not None
        and rate.min_order_cents > rate.max_order_cents
    ):
        raise ValidationError("minOrderCents must not exceed maxOrderCents")


def create_rate(data: dict) -> ShippingRate:
    rate = ShippingRate(**_rate_fields(data))
    _check_band(rate)
    db.session.add(rate)
    db.session.commit()
    return rate


def update_rate(rate_id: int, data: dict) -> ShippingRate:
    rate = db.session.get(ShippingRate, rate_id)
    if not rate:
        raise NotFoundError("Shipping rate not found")
    for k, v in _rate_fields(data, partial=True).items():
        setattr(rate, k, v)
    try:
        _check_band(rate)
    except ValidationError:
        db.session.rollback()
        raise
    db.session.commit()
    return rate


def delete_rate(rate_id: int):
    rate = db.session.get(ShippingRate, rate_id)
    if not rate:
        raise NotFoundError("Shipping rate not found")
    db.session.delete(rate)
    db.session.commit()

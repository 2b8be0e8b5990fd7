# storefront/services/coupon_service.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..model import Coupon
from ..model.coupon import DISCOUNT_TYPES, PERCENTAGE, FIXED_AMOUNT
from ..utils.api import parse_iso8601, parse_bool, require_cents, utcnow
from ..utils.money import D, format_price, percent_of, round_cents


class CouponError(ValidationError):
    """A coupon that exists (or not) but cannot be applied to this order."""

    INVALID_CODE = "invalid_code"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    BELOW_MINIMUM = "below_minimum"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount_cents: int

    def as_api(self):
        return {
            "valid": True,
            "coupon": self.coupon.as_summary(),
            "discountCents": self.discount_cents,
        }


def compute_discount(discount_type: str, discount_value, subtotal_cents: int) -> int:
    """Discount in cents for a subtotal, never more than the subtotal itself."""
    if subtotal_cents <= 0:
        return 0
    if discount_type == PERCENTAGE:
        amount = percent_of(subtotal_cents, discount_value)
    elif discount_type == FIXED_AMOUNT:
        amount = round_cents(discount_value)
    else:
        raise ValueError(f"unknown discount type: {discount_type!r}")
    return max(0, min(amount, subtotal_cents))


def find_coupon(code: str) -> Coupon | None:
    return Coupon.query.filter(Coupon.code == code.strip().upper()).first()


def evaluate_coupon(code: str, subtotal_cents: int, now: datetime | None = None) -> CouponQuote:
    """
    Checks, in order: existence, active flag, expiry, usage cap, order minimum.
    The first failing check raises CouponError. Nothing is mutated here; usage
    is counted when the order is paid.
    """
    if not code or not str(code).strip():
        raise ValidationError("Coupon code required")
    now = now or utcnow()

    coupon = find_coupon(str(code))
    if not coupon:
        raise CouponError(CouponError.INVALID_CODE, "Invalid coupon code")
    if not coupon.is_active:
        raise CouponError(CouponError.INACTIVE, "This coupon is no longer active")
    if coupon.expires_at and coupon.expires_at < now:
        raise CouponError(CouponError.EXPIRED, "This coupon has expired")
    if coupon.max_uses is not None and (coupon.current_uses or 0) >= coupon.max_uses:
        raise CouponError(CouponError.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit")
    if coupon.min_order_cents and subtotal_cents < coupon.min_order_cents:
        raise CouponError(
            CouponError.BELOW_MINIMUM,
            f"Minimum order of {format_price(coupon.min_order_cents)} required for this coupon",
        )

    return CouponQuote(coupon, compute_discount(coupon.discount_type, coupon.discount_value, subtotal_cents))


def record_coupon_use(code: str) -> bool:
    """
    Count one completed order against the coupon. Runs inside the caller's
    transaction; the row is locked so concurrent orders cannot overshoot max_uses.
    """
    coupon = (
        db.session.query(Coupon)
        .filter(Coupon.code == code.strip().upper())
        .with_for_update()
        .first()
    )
    if not coupon:
        return False
    if coupon.max_uses is not None and (coupon.current_uses or 0) >= coupon.max_uses:
        return False
    coupon.current_uses = (coupon.current_uses or 0) + 1
    return True


# ---- admin CRUD -------------------------------------------------------------

def _coupon_fields(data: dict, partial: bool = False) -> dict:
    fields = {}

    if not partial or "code" in data:
        code = (data.get("code") or "").strip().upper()
        if len(code) < 3:
            raise ValidationError("Coupon code is required (min 3 characters)")
        fields["code"] = code

    if not partial or "discountType" in data:
        dtype = (data.get("discountType") or "").strip().lower()
        if dtype not in DISCOUNT_TYPES:
            raise ValidationError("discountType must be 'percentage' or 'fixed_amount'")
        fields["discount_type"] = dtype

    if not partial or "discountValue" in data:
        try:
            value = D(data.get("discountValue"))
        except ArithmeticError:
            raise ValidationError("discountValue must be numeric")
        if value <= 0:
            raise ValidationError("Discount value must be positive")
        if fields.get("discount_type") == PERCENTAGE and value > 100:
            raise ValidationError("percentage discount must be <= 100")
        fields["discount_value"] = value

    if "description" in data:
        fields["description"] = data.get("description") or None
    if not partial or "minOrderCents" in data:
        fields["min_order_cents"] = require_cents(data.get("minOrderCents"), "minOrderCents", allow_none=True) or 0
    if not partial or "maxUses" in data:
        max_uses = data.get("maxUses")
        if max_uses in (None, "", 0):
            fields["max_uses"] = None
        else:
            try:
                max_uses = int(max_uses)
            except (TypeError, ValueError):
                raise ValidationError("maxUses must be a positive integer")
            if max_uses <= 0:
                raise ValidationError("maxUses must be a positive integer")
            fields["max_uses"] = max_uses
    if not partial or "expiresAt" in data:
        raw = data.get("expiresAt")
        expires_at = parse_iso8601(raw)
        if raw and not expires_at:
            raise ValidationError("Invalid datetime format for expiresAt")
        fields["expires_at"] = expires_at
    if not partial or "isActive" in data:
        fields["is_active"] = parse_bool(data.get("isActive"), default=True)
    return fields


def _ensure_unique_code(code: str, exclude_id: int | None = None):
    q = Coupon.query.filter(func.upper(Coupon.code) == code)
    if exclude_id is not None:
        q = q.filter(Coupon.id != exclude_id)
    if q.first():
        raise ConflictError("Coupon code already exists")


def create_coupon(data: dict) -> Coupon:
    fields = _coupon_fields(data)
    _ensure_unique_code(fields["code"])
    c = Coupon(current_uses=0, **fields)
    db.session.add(c)
    db.session.commit()
    return c


def update_coupon(coupon_id: int, data: dict) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("Coupon not found")
    fields = _coupon_fields(data, partial=True)
    if "code" in fields:
        _ensure_unique_code(fields["code"], exclude_id=c.id)
    if fields.get("discount_type", c.discount_type) == PERCENTAGE and D(fields.get("discount_value", c.discount_value)) > 100:
        raise ValidationError("percentage discount must be <= 100")
    max_uses = fields.get("max_uses", c.max_uses)
    if max_uses is not None and max_uses < (c.current_uses or 0):
        raise ValidationError(f"maxUses cannot be below the {c.current_uses} uses already recorded")
    for k, v in fields.items():
        setattr(c, k, v)
    db.session.commit()
    return c


def delete_coupon(coupon_id: int):
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("Coupon not found")
    db.session.delete(c)
    db.session.commit()

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from storefront.errors import ValidationError
from storefront.services.coupon_service import (
    CouponError,
    compute_discount,
    evaluate_coupon,
    record_coupon_use,
)


class TestComputeDiscount:
    def test_percentage(self):
        assert compute_discount("percentage", Decimal("10"), 5000) == 500

    def test_percentage_rounds_half_up(self):
        # 15% of 333 = 49.95
        assert compute_discount("percentage", Decimal("15"), 333) == 50
        # 10% of 5 = 0.5
        assert compute_discount("percentage", Decimal("10"), 5) == 1

    def test_fixed_amount(self):
        assert compute_discount("fixed_amount", Decimal("1000"), 5000) == 1000

    def test_fractional_fixed_amount_rounds_half_up(self):
        assert compute_discount("fixed_amount", Decimal("250.75"), 5000) == 251
        assert compute_discount("fixed_amount", Decimal("250.50"), 5000) == 251
        assert compute_discount("fixed_amount", Decimal("250.49"), 5000) == 250

    def test_never_exceeds_subtotal(self):
        assert compute_discount("fixed_amount", Decimal("1000"), 400) == 400
        assert compute_discount("percentage", Decimal("100"), 1234) == 1234

    def test_zero_subtotal(self):
        assert compute_discount("percentage", Decimal("10"), 0) == 0
        assert compute_discount("fixed_amount", Decimal("500"), 0) == 0

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            compute_discount("bogo", Decimal("1"), 100)


class TestEvaluateCoupon:
    def test_save10_scenario(self, make_coupon):
        make_coupon("SAVE10", "percentage", "10", min_order_cents=0, max_uses=100, current_uses=5)

        quote = evaluate_coupon("SAVE10", 5000)
        assert quote.discount_cents == 500
        assert quote.coupon.code == "SAVE10"

        assert evaluate_coupon("SAVE10", 0).discount_cents == 0

    def test_code_is_case_insensitive(self, make_coupon):
        make_coupon("SAVE10")
        assert evaluate_coupon("  save10 ", 2000).discount_cents == 200

    def test_as_api_shape(self, make_coupon):
        make_coupon("FLAT5", "fixed_amount", "500", description="Five off")
        data = evaluate_coupon("FLAT5", 2000).as_api()
        assert data["valid"] is True
        assert data["discountCents"] == 500
        assert data["coupon"]["code"] == "FLAT5"
        assert data["coupon"]["discountType"] == "fixed_amount"
        assert data["coupon"]["discountValue"] == 500.0

    def test_missing_code(self, app):
        with pytest.raises(ValidationError) as exc:
            evaluate_coupon("", 1000)
        assert not isinstance(exc.value, CouponError)

    def test_unknown_code(self, app):
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("NOPE", 1000)
        assert exc.value.reason == CouponError.INVALID_CODE

    def test_inactive(self, make_coupon):
        make_coupon("OFF", is_active=False)
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("OFF", 1000)
        assert exc.value.reason == CouponError.INACTIVE

    def test_expired_even_if_active(self, make_coupon):
        now = datetime(2026, 3, 1, 12, 0, 0)
        make_coupon("OLD", is_active=True, expires_at=now - timedelta(days=1))
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("OLD", 1000, now=now)
        assert exc.value.reason == CouponError.EXPIRED

    def test_not_yet_expired(self, make_coupon):
        now = datetime(2026, 3, 1, 12, 0, 0)
        make_coupon("SOON", expires_at=now + timedelta(hours=1))
        assert evaluate_coupon("SOON", 1000, now=now).discount_cents == 100

    def test_usage_limit_reached(self, make_coupon):
        make_coupon("MAXED", max_uses=5, current_uses=5)
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("MAXED", 100000)
        assert exc.value.reason == CouponError.USAGE_LIMIT_REACHED

    def test_below_minimum_message_has_amount(self, make_coupon):
        make_coupon("BIG", min_order_cents=5000)
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("BIG", 4999)
        assert exc.value.reason == CouponError.BELOW_MINIMUM
        assert "$50.00" in exc.value.message

    def test_minimum_is_inclusive(self, make_coupon):
        make_coupon("BIG", min_order_cents=5000)
        assert evaluate_coupon("BIG", 5000).discount_cents == 500

    def test_checks_run_in_order(self, make_coupon):
        # inactive, expired, maxed out and above the subtotal all at once
        make_coupon("WORST", is_active=False, expires_at=datetime(2000, 1, 1),
                    max_uses=1, current_uses=1, min_order_cents=10**6)
        with pytest.raises(CouponError) as exc:
            evaluate_coupon("WORST", 100)
        assert exc.value.reason == CouponError.INACTIVE

    def test_evaluation_does_not_mutate(self, make_coupon):
        c = make_coupon("SAVE10", current_uses=3)
        evaluate_coupon("SAVE10", 5000)
        assert c.current_uses == 3


class TestRecordCouponUse:
    def test_increments(self, make_coupon):
        c = make_coupon("SAVE10", current_uses=0)
        assert record_coupon_use("save10") is True
        assert c.current_uses == 1

    def test_stops_at_cap(self, make_coupon):
        c = make_coupon("ONCE", max_uses=1, current_uses=1)
        assert record_coupon_use("ONCE") is False
        assert c.current_uses == 1

    def test_unknown_code(self, app):
        assert record_coupon_use("GHOST") is False

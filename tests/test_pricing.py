from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from pricing import (
    apply_coupon, calculate_subtotal, calculate_totals, delivery_charge, max_estimated_days,
    money, points_for,
)


def coupon(**overrides):
    fields = {
        "code": "BLOOM10",
        "discount_type": "percentage",
        "discount_value": Decimal("10"),
        "min_order_amount": None,
        "max_discount": None,
        "first_order_only": False,
        "is_active": True,
        "expires_at": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def option(price="50.00", free_above=None):
    return SimpleNamespace(
        price=Decimal(price),
        free_above=Decimal(free_above) if free_above else None,
    )


def test_money_rounds_half_up_to_paise():
    assert money("10.005") == Decimal("10.01")
    assert money(3) == Decimal("3.00")


def test_subtotal():
    lines = [(Decimal("899.00"), 2), (Decimal("1499.00"), 1)]
    assert calculate_subtotal(lines) == Decimal("3297.00")
    assert calculate_subtotal([]) == Decimal("0.00")


def test_percentage_coupon():
    discount, message = apply_coupon(Decimal("1798.00"), coupon(discount_value=Decimal("20")))
    assert message is None
    assert discount == Decimal("359.60")


def test_percentage_coupon_is_capped():
    discount, message = apply_coupon(Decimal("5000.00"), coupon(max_discount=Decimal("300")))
    assert message is None
    assert discount == Decimal("300.00")


def test_fixed_coupon_below_minimum():
    flat = coupon(discount_type="fixed", discount_value=Decimal("200"), min_order_amount=Decimal("1500"))
    discount, message = apply_coupon(Decimal("1000.00"), flat)
    assert discount == Decimal("0.00")
    assert message == "Coupon applies to orders of at least ₹1500.00"

    discount, message = apply_coupon(Decimal("1500.00"), flat)
    assert discount == Decimal("200.00")
    assert message is None


def test_fixed_coupon_never_exceeds_subtotal():
    discount, _ = apply_coupon(Decimal("150.00"), coupon(discount_type="fixed", discount_value=Decimal("200")))
    assert discount == Decimal("150.00")


def test_rejected_coupons():
    assert apply_coupon(Decimal("100"), None) == (Decimal("0.00"), "Invalid coupon code")
    assert apply_coupon(Decimal("100"), coupon(is_active=False))[1] == "This coupon is no longer active"

    expired = coupon(expires_at=datetime(2024, 1, 1))
    assert apply_coupon(Decimal("100"), expired, now=datetime(2025, 1, 1))[1] == "This coupon has expired"

    first = coupon(first_order_only=True)
    assert apply_coupon(Decimal("100"), first, has_previous_orders=True)[1] == (
        "This coupon is valid on your first order only"
    )
    assert apply_coupon(Decimal("100"), first, has_previous_orders=False)[1] is None


def test_delivery_charge():
    assert delivery_charge(None, Decimal("500")) == Decimal("0.00")
    assert delivery_charge(option("150.00"), Decimal("5000")) == Decimal("150.00")
    standard = option("50.00", free_above="1999.00")
    assert delivery_charge(standard, Decimal("1998.99")) == Decimal("50.00")
    assert delivery_charge(standard, Decimal("1999.00")) == Decimal("0.00")


def test_totals_add_up():
    totals = calculate_totals(Decimal("1000"), Decimal("100"), option("150.00"), "cod")
    assert totals.subtotal == Decimal("1000.00")
    assert totals.discount_amount == Decimal("100.00")
    assert totals.delivery_charge == Decimal("150.00")
    assert totals.payment_charge == Decimal("50.00")
    assert totals.final_amount == Decimal("1100.00")


def test_free_delivery_threshold_uses_discounted_amount():
    standard = option("50.00", free_above="1999.00")
    totals = calculate_totals(Decimal("2100"), Decimal("200"), standard, "upi")
    assert totals.delivery_charge == Decimal("50.00")
    assert totals.final_amount == Decimal("1950.00")


def test_total_never_negative():
    totals = calculate_totals(Decimal("100"), Decimal("150"))
    assert totals.final_amount == Decimal("0.00")


def test_points_and_estimates():
    assert points_for(Decimal("1538.40")) == 15
    assert points_for(Decimal("99.99")) == 0
    assert max_estimated_days("3-5") == 5
    assert max_estimated_days("1") == 1
    assert max_estimated_days("0") == 0
    assert max_estimated_days("") == 0

"""
Price arithmetic for carts and orders.

All amounts are Decimal rupees rounded to paise. The order total is

    subtotal - discount + delivery charge + payment surcharge

and never goes below zero.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from models import utcnow
from payments import payment_charge

PAISE = Decimal("0.01")
ZERO = Decimal("0.00")
RUPEES_PER_POINT = Decimal("100")


def money(value) -> Decimal:
    """Coerce to Decimal and round to paise."""
    return Decimal(str(value)).quantize(PAISE, rounding=ROUND_HALF_UP)


@dataclass
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    delivery_charge: Decimal
    payment_charge: Decimal
    final_amount: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "delivery_charge": self.delivery_charge,
            "payment_charge": self.payment_charge,
            "final_amount": self.final_amount,
        }


def calculate_subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Sum of unit price x quantity over (unit_price, quantity) pairs."""
    subtotal = ZERO
    for unit_price, quantity in lines:
        subtotal += Decimal(str(unit_price)) * int(quantity)
    return money(subtotal)


def apply_coupon(subtotal: Decimal, coupon, has_previous_orders: bool = False,
                 now: Optional[datetime] = None) -> Tuple[Decimal, Optional[str]]:
    """
    Work out the discount a coupon gives on a subtotal.

    Returns (discount, message). The message is None when the coupon applies
    and explains the rejection otherwise, in which case the discount is zero.
    """
    if coupon is None:
        return ZERO, "Invalid coupon code"
    if not coupon.is_active:
        return ZERO, "This coupon is no longer active"
    now = now or utcnow()
    if coupon.expires_at is not None and coupon.expires_at < now:
        return ZERO, "This coupon has expired"
    if coupon.first_order_only and has_previous_orders:
        return ZERO, "This coupon is valid on your first order only"
    if coupon.min_order_amount is not None and subtotal < Decimal(str(coupon.min_order_amount)):
        return ZERO, f"Coupon applies to orders of at least ₹{money(coupon.min_order_amount)}"

    value = Decimal(str(coupon.discount_value))
    if coupon.discount_type == "percentage":
        discount = subtotal * value / Decimal("100")
        if coupon.max_discount is not None:
            discount = min(discount, Decimal(str(coupon.max_discount)))
    elif coupon.discount_type == "fixed":
        discount = min(value, subtotal)
    else:
        return ZERO, "Invalid coupon code"
    return money(discount), None


def delivery_charge(option, amount_after_discount: Decimal) -> Decimal:
    """Price of the delivery option; free when its threshold is met."""
    if option is None:
        return ZERO
    if option.free_above is not None and amount_after_discount >= Decimal(str(option.free_above)):
        return ZERO
    return money(option.price)


def calculate_totals(subtotal: Decimal, discount: Decimal = ZERO, option=None,
                     payment_method: Optional[str] = None) -> OrderTotals:
    subtotal = money(subtotal)
    discount = money(discount)
    delivery = delivery_charge(option, subtotal - discount)
    surcharge = payment_charge(payment_method)
    final = max(ZERO, subtotal - discount + delivery + surcharge)
    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        delivery_charge=delivery,
        payment_charge=surcharge,
        final_amount=money(final),
    )


def points_for(total: Decimal) -> int:
    """Reward points earned on an order: one per full ₹100."""
    return int(Decimal(str(total)) // RUPEES_PER_POINT)


def max_estimated_days(estimated_days: str) -> int:
    """Upper bound of an estimate such as "3-5" or "1"; unparseable means 0."""
    numbers = re.findall(r"\d+", estimated_days or "")
    return int(numbers[-1]) if numbers else 0

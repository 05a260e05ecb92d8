"""Transit booking pricing and payment aggregation.

Currency amounts are rounded half-up to 2 decimals after every derived stage
(subtotal, discount, after-discount, tax, total), not only for display, so a
booking's stored breakdown always adds up exactly.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from marina.models.base import PaymentStatusEnum

_CENT = Decimal("0.01")


def round_currency(value: float | Decimal) -> float:
    """Round half-up to cents. Goes through str() so 17.549999... reads as 17.55."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def calculate_booking_total(
    price_per_day: float,
    nights: int,
    discount_percent: float = 0,
    tax_percent: float = 0,
) -> dict:
    """Price a stay. Tax applies to the discounted amount.

    >>> calculate_booking_total(50, 3, 10, 13)["total_amount"]
    152.55
    """
    subtotal = round_currency(price_per_day * nights)
    discount_amount = round_currency(subtotal * discount_percent / 100)
    after_discount = round_currency(subtotal - discount_amount)
    tax_amount = round_currency(after_discount * tax_percent / 100)
    total_amount = round_currency(after_discount + tax_amount)
    return {
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "tax_amount": tax_amount,
        "total_amount": total_amount,
    }


def payment_status_for(total_amount: float, amount_paid: float) -> PaymentStatusEnum:
    if amount_paid >= total_amount:
        return PaymentStatusEnum.PAID
    if amount_paid > 0:
        return PaymentStatusEnum.PARTIAL
    return PaymentStatusEnum.UNPAID


def aggregate_payments(total_amount: float, amounts: Iterable[float]) -> tuple[float, PaymentStatusEnum]:
    """Sum appended payments and derive the booking's payment status."""
    amount_paid = 0.0
    for amount in amounts:
        amount_paid = round_currency(amount_paid + amount)
    return amount_paid, payment_status_for(total_amount, amount_paid)

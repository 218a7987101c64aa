"""Invoice arithmetic. Pure functions, no database access."""

from datetime import datetime
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta


def round_money(value: float) -> float:
    return round(float(value or 0), 2)


def line_amount(item: dict) -> float:
    """quantity x unitPrice minus the line discount, never below zero"""
    quantity = float(item.get("quantity") or 0)
    unit_price = float(item.get("unitPrice") or 0)
    discount = float(item.get("discount") or 0)
    return max(0.0, quantity * unit_price - discount)


def discount_amount(subtotal: float, discount: Optional[dict]) -> float:
    """Invoice-level discount: a percentage of the subtotal or a fixed amount capped at it"""
    if not discount:
        return 0.0
    value = float(discount.get("value") or 0)
    if value <= 0:
        return 0.0
    if discount.get("type") == "percent":
        return min(subtotal, subtotal * min(value, 100.0) / 100.0)
    return min(subtotal, value)


def compute_totals(
    items: Optional[list[dict]] = None,
    discount: Optional[dict] = None,
    subtotal: Optional[float] = None,
    tax: Optional[float] = None,
    tax_rate: Optional[float] = None,
    total: Optional[float] = None,
) -> dict:
    """
    Derive invoice amounts.

    Line items win over a supplied subtotal. An explicit tax wins over a
    tax rate. A positive explicit total wins over the computed one.
    """
    if items:
        computed_subtotal = sum(line_amount(item) for item in items)
    else:
        computed_subtotal = float(subtotal or 0)

    discount_total = discount_amount(computed_subtotal, discount)
    taxable = computed_subtotal - discount_total

    if tax is not None:
        computed_tax = float(tax)
    elif tax_rate:
        computed_tax = taxable * float(tax_rate) / 100.0
    else:
        computed_tax = 0.0

    if total is not None and float(total) > 0:
        computed_total = float(total)
    else:
        computed_total = taxable + computed_tax

    return {
        "subtotal": round_money(computed_subtotal),
        "discount_total": round_money(discount_total),
        "tax": round_money(computed_tax),
        "total": round_money(computed_total),
    }


def compute_balance(total: float, payments: Iterable[dict], refunds: Iterable[dict]) -> float:
    """balance = max(0, total - paid + refunded)"""
    paid = sum(float(p.get("amount") or 0) for p in payments or [])
    refunded = sum(float(r.get("amount") or 0) for r in refunds or [])
    return round_money(max(0.0, float(total or 0) - paid + refunded))


def next_invoice_date(start: datetime, interval: str) -> datetime:
    """One calendar month or year later; the day is clamped to the target month"""
    return start + relativedelta(months=1 if interval == "monthly" else 12)

"""Late-fee accrual and the on-demand due-amount calculation.

Both functions are pure: no I/O, no clock reads unless ``today`` is left
unset, and the same inputs always give the same figure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from flatfund.engine.errors import ConfigurationError
from flatfund.engine.models import Apartment, Collection, Flat, decimal_to_json, to_decimal
from flatfund.engine.periods import DateLike, parse_date
from flatfund.engine.rates import resolve_base_amount

_ZERO = Decimal("0")


@dataclass(frozen=True)
class DueAmount:
    base_amount: Decimal
    fine: Decimal
    days_overdue: int
    total: Decimal
    due_date: Optional[date] = None
    payment_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "base_amount": decimal_to_json(self.base_amount),
            "fine": decimal_to_json(self.fine),
            "days_overdue": self.days_overdue,
            "total": decimal_to_json(self.total),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
        }


def compute_total_due(
    base_amount,
    due_date: DateLike,
    daily_fine,
    payment_date: DateLike = None,
    today: DateLike = None,
) -> DueAmount:
    """Base amount plus ``daily_fine`` for every whole day past ``due_date``.

    Dates are compared as calendar dates (time of day dropped), so a payment
    made on the due date is never overdue.  ``payment_date`` defaults to
    ``today`` which defaults to the current date.
    """
    base = to_decimal(base_amount, "base_amount")
    due = parse_date(due_date)
    paid_on = parse_date(payment_date) or parse_date(today) or date.today()

    if not base or base <= 0:
        return DueAmount(_ZERO, _ZERO, 0, _ZERO, due, paid_on)

    fine_rate = to_decimal(daily_fine, "daily_fine") or _ZERO
    if fine_rate < 0:
        raise ConfigurationError("daily_fine", "daily_fine cannot be negative")

    if due is None or paid_on <= due:
        return DueAmount(base, _ZERO, 0, base, due, paid_on)

    days_overdue = (paid_on - due).days
    fine = fine_rate * days_overdue
    return DueAmount(base, fine, days_overdue, base + fine, due, paid_on)


def compute_due_amount(
    apartment: Apartment,
    collection: Collection,
    flat: Flat,
    payment_date: DateLike = None,
    today: DateLike = None,
) -> DueAmount:
    """Amount owed by ``flat`` for ``collection`` if paid on ``payment_date``.

    Raises ConfigurationError (naming the missing field) when the base
    amount cannot be resolved.
    """
    resolution = resolve_base_amount(apartment, collection, flat)
    if resolution.amount is None:
        raise ConfigurationError(resolution.missing_field or "collection", resolution.reason or "")
    return compute_total_due(
        resolution.amount,
        collection.due_date,
        collection.daily_fine,
        payment_date=payment_date,
        today=today,
    )

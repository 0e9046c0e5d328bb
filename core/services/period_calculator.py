"""
Billing period math.

Semi-monthly clients are billed for days 1-15 (cut on the 16th) and for the
16th to month end (cut on the 1st of the next month). Monthly clients are
billed for the whole month and cut on the 1st of the next month.
"""

import calendar
from datetime import date, timedelta

from core.models import BillingCadence, BillingPeriod


def _first_of_next_month(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1)
    return date(year, month + 1, 1)


def period_for(cadence: BillingCadence, reference_date: date) -> BillingPeriod:
    """The billing period that contains reference_date, with its cut date."""
    year, month = reference_date.year, reference_date.month

    if cadence == BillingCadence.SEMI_MONTHLY:
        if reference_date.day <= 15:
            return BillingPeriod(year=year, month=month, half=1, cut_date=date(year, month, 16))
        return BillingPeriod(
            year=year, month=month, half=2, cut_date=_first_of_next_month(year, month)
        )

    return BillingPeriod(year=year, month=month, half=None, cut_date=_first_of_next_month(year, month))


def month_range(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def period_range(period: BillingPeriod) -> tuple[date, date]:
    """First and last calendar day a billing period covers."""
    first, last = month_range(period.year, period.month)
    if period.half == 1:
        return first, date(period.year, period.month, 15)
    if period.half == 2:
        return date(period.year, period.month, 16), last
    return first, last


def due_date(cut_date: date, grace_days: int) -> date:
    """Date payment is due: the cut date plus the grace period."""
    return cut_date + timedelta(days=grace_days)

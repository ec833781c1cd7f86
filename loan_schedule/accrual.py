"""Interest accrual under the actual-day and 30/360 conventions.

Interest never accrues on a paid-off principal, and never for days before the
prepaid-until date (the first day interest resumes after interest prepaid at
closing).

Under the 30/360 ("Periodic") convention a monthly period is worth exactly 30
days of interest no matter how many calendar days it spans. When extra
payments split a period into sub-intervals, each sub-interval's days are
scaled to its share of those 30 days, and the period's 30-day budget is never
exceeded.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from .data_models import PAYOFF_EPSILON, ZERO, LoanTerms, PeriodNumber
from .utils import as_date, days_between_inclusive

DAYS_PER_PERIODIC_MONTH = Decimal(30)


def unpaid_days(start: date, end: date, prepaid_until: Optional[date]) -> int:
    """Inclusive days from ``start`` to ``end`` that are not covered by prepaid interest.

    Returns 0 when ``end`` precedes ``start`` or either bound is not a date.
    """
    s = as_date(start)
    e = as_date(end)
    if s is None or e is None:
        return 0
    raw = max(days_between_inclusive(s, e), 0)
    if prepaid_until is None:
        return raw
    if e < prepaid_until:
        return 0
    if s >= prepaid_until:
        return raw
    return max(days_between_inclusive(prepaid_until, e), 0)


def accrue(principal: Decimal, start: date, end: date, terms: LoanTerms) -> Decimal:
    """Actual-day interest on ``principal`` from ``start`` through ``end``."""
    if principal <= PAYOFF_EPSILON:
        return ZERO
    days = unpaid_days(start, end, terms.prepaid_until)
    return principal * terms.per_diem_rate * Decimal(days)


class PeriodAccrual:
    """Accrues interest for the sub-intervals of one scheduled period.

    Single-period loans, actual-day loans and the prorated period 0 accrue per
    calendar day. Monthly periodic loans scale each sub-interval against the
    period's calendar length and draw it from the 30-day budget.
    ``accrued`` totals the interest accrued so far in this period.
    """

    def __init__(self, terms: LoanTerms, period: PeriodNumber, period_start: date, period_end: date) -> None:
        self.terms = terms
        self.periodic = (
            terms.is_periodic
            and terms.is_monthly
            and isinstance(period, int)
            and period >= 1
        )
        total_days = days_between_inclusive(period_start, period_end)
        if total_days < 1:
            total_days = 30
        self.total_days = Decimal(total_days)
        self.budget_used = ZERO
        self.accrued = ZERO

    @property
    def budget_remaining(self) -> Decimal:
        return max(ZERO, DAYS_PER_PERIODIC_MONTH - self.budget_used)

    def scaled_days(self, start: date, end: date) -> Decimal:
        """30/360 days for a sub-interval, clamped to the remaining budget."""
        raw = unpaid_days(start, end, self.terms.prepaid_until)
        scaled = DAYS_PER_PERIODIC_MONTH * Decimal(raw) / self.total_days
        return min(max(scaled, ZERO), self.budget_remaining)

    def accrue(self, principal: Decimal, start: date, end: date) -> Decimal:
        """Accrue interest on ``principal`` from ``start`` through ``end``."""
        if principal <= PAYOFF_EPSILON:
            return ZERO
        if self.periodic:
            scaled = self.scaled_days(start, end)
            amount = principal * self.terms.daily_periodic_rate * scaled
            self.budget_used += scaled
        else:
            amount = accrue(principal, start, end, self.terms)
        self.accrued += amount
        return amount

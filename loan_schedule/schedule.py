"""Generation of the initial period grid for a loan.

The builder only lays out the calendar: period numbers, period end dates, due
dates and a display-only day count. All due amounts and balances start at zero
and are filled in by the balance recalculation that always follows.
"""

from __future__ import annotations

from datetime import date
from typing import List

from .data_models import LoanTerms, PeriodRow
from .utils import (
    ONE_DAY,
    add_months,
    days_between,
    days_between_inclusive,
    format_currency,
    last_day_after_adding_months,
    last_day_of_month,
    one_day_after,
)


def period_end_prorated(closing_date: date, i: int) -> date:
    """Period end of the ``i``-th row when the first period is prorated.

    Row 0 is the stub ending at the end of the closing month; every later row
    ends ``i`` month ends after it.
    """
    if i == 0:
        return last_day_of_month(closing_date)
    return last_day_after_adding_months(closing_date, i)


def period_end_not_prorated(closing_date: date, period: int) -> date:
    """Period end of ``period`` (1-based) when the first period is not prorated."""
    day = closing_date.day
    if day == 1:
        # first-of-month closings run on calendar months
        return last_day_after_adding_months(closing_date, period - 1)
    if day > 28:
        return last_day_after_adding_months(closing_date, period)
    # mid-month closings end the day before the same day-of-month
    return add_months(closing_date, period) - ONE_DAY


def period_end_date(terms: LoanTerms, i: int) -> date:
    if terms.prorate_first:
        return period_end_prorated(terms.closing_date, i)
    return period_end_not_prorated(terms.closing_date, i + 1)


def approx_days(terms: LoanTerms, i: int, period_end: date) -> int:
    """Display estimate of the days in row ``i``; never an input to interest."""
    if i == 0 and terms.prorate_first:
        days = days_between_inclusive(terms.closing_date, period_end)
    elif terms.is_periodic:
        days = 30
    elif i == 0:
        days = days_between(terms.closing_date, period_end)
    else:
        days = days_between(period_end_date(terms, i - 1), period_end)
    return max(days, 0)


def origination_note(terms: LoanTerms) -> str:
    """Describe any fee or prepaid interest that was added to principal."""
    fee = terms.financed_fee
    prepaid = terms.financed_prepaid_interest
    if fee > 0 and prepaid > 0:
        return (
            f"({format_currency(prepaid)} of Prepaid Interest + "
            f"{terms.origination_fee_display} Origination Fee added to Principal.)"
        )
    if fee > 0:
        return f"({terms.origination_fee_display} Origination Fee added to Principal.)"
    if prepaid > 0:
        return f"({format_currency(prepaid)} of Prepaid Interest added to Principal.)"
    return ""


def build_schedule(terms: LoanTerms) -> List[PeriodRow]:
    """Return the ordered period rows for ``terms``.

    Parameters
    ----------
    terms: LoanTerms
        Normalized loan terms. A zero term or a missing closing date yields
        an empty schedule.

    Returns
    -------
    rows: List[PeriodRow]
        One row per period with its period end, due date and day count.
        The first row carries the origination fee note and the last row the
        exit fee. Due amounts and balances are left for the recalculation
        pass.
    """
    if terms.closing_date is None:
        return []
    rows: List[PeriodRow] = []
    for i in range(terms.total_periods):
        period = i if terms.prorate_first else i + 1
        period_end = period_end_date(terms, i)
        rows.append(
            PeriodRow(
                period=period,
                period_end=period_end,
                due_date=one_day_after(period_end),
                days=approx_days(terms, i, period_end),
            )
        )
    if not rows:
        return rows

    note = origination_note(terms)
    if note:
        rows[0].notes = note

    if terms.exit_fee > 0:
        last = rows[-1]
        last.fees_due = terms.exit_fee
        exit_note = f"({format_currency(terms.exit_fee)} Exit Fee)"
        last.notes = f"{last.notes} {exit_note}" if last.notes else exit_note
    return rows

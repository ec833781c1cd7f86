"""Core balance recalculation engine for the loan schedule.

This module walks a loan's scheduled periods in chronological order and
recomputes every due amount and running balance from the loan terms and the
payments recorded in the table. Unscheduled (extra) payments are interleaved
by date, interest accrues between them, and the due amounts of each period
are decided by :mod:`loan_schedule.allocation`. A principal prepayment on an
amortizing loan re-amortizes the remaining periods, and a stored recast point
permanently replaces the remaining annuity.

A pass never reads back the due amounts or balances it wrote last time, so
running it twice over the same recorded payments gives the same table.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Set, Tuple

from .accrual import PeriodAccrual
from .allocation import allocate
from .amortization import solve
from .classifier import classify
from .data_models import (
    PAYOFF_EPSILON,
    ZERO,
    IndexedRow,
    LoanTerms,
    PeriodRow,
    RecastPoint,
    RunningBalances,
    ScheduledSplitMap,
)
from .utils import one_day_after

logger = logging.getLogger(__name__)


@dataclass
class RecalcResult:
    """Outcome of one recalculation pass."""

    rows: List[PeriodRow]
    reamortized: Set[int] = field(default_factory=set)
    paid_off_period: Optional[int] = None

    @property
    def paid_off(self) -> bool:
        return self.paid_off_period is not None


@dataclass
class Reamortization:
    """Fresh scheduled splits written by a re-amortization, keyed by row index."""

    split: ScheduledSplitMap = field(default_factory=dict)
    touched: Set[int] = field(default_factory=set)


@dataclass
class Interleaved:
    balances: RunningBalances
    cursor: int
    sub_start: date
    principal_paid: Decimal


def original_split(scheduled: Sequence[IndexedRow], terms: LoanTerms) -> ScheduledSplitMap:
    """Annuity interest/principal for every amortizing scheduled row."""
    if not (terms.amortize and terms.is_monthly) or terms.term_months <= 0:
        return {}
    split = solve(terms.monthly_rate, terms.term_months, terms.principal)
    result: ScheduledSplitMap = {}
    for item in scheduled:
        period = item.row.period
        if 1 <= period <= terms.term_months:
            result[item.index] = split.for_period(period)
    return result


def reamortize(
    future_rows: Sequence[IndexedRow],
    leftover_principal: Decimal,
    leftover_count: int,
    rate: Decimal,
) -> Reamortization:
    """Spread ``leftover_principal`` over the next ``leftover_count`` scheduled rows.

    The first scheduled row of ``future_rows`` becomes period 1 of a fresh
    annuity. Due amounts are written onto the rows in place; scheduled rows
    beyond the count are zeroed. Rows without an integer period are skipped.
    """
    result = Reamortization()
    if leftover_principal <= PAYOFF_EPSILON or leftover_count <= 0:
        return result
    split = solve(rate, leftover_count, leftover_principal)
    k = 1
    for item in future_rows:
        row = item.row
        if not row.has_integer_period:
            continue
        interest, principal = split.for_period(k)
        fees_due = row.fees_due or ZERO
        row.interest_due = interest
        row.principal_due = principal
        row.total_due = interest + principal + fees_due if k <= leftover_count else ZERO
        result.split[item.index] = (interest, principal)
        result.touched.add(item.index)
        k += 1
    return result


def apply_payment(balances: RunningBalances, row: PeriodRow) -> RunningBalances:
    """Charge the row's fees due, then apply its recorded payments."""
    return balances.charge_fees(row.fees_due or ZERO).apply_payment(
        row.principal_paid, row.interest_paid, row.fees_paid
    )


def stamp_balances(row: PeriodRow, balances: RunningBalances) -> None:
    row.interest_balance = balances.interest
    row.principal_balance = balances.principal
    row.total_balance = balances.total


def total_paid(row: PeriodRow) -> Decimal:
    return row.principal_paid + row.interest_paid + row.fees_paid


def settle_unscheduled(row: PeriodRow, balances: RunningBalances) -> RunningBalances:
    """Apply an unscheduled payment and stamp the resulting balances on it."""
    balances = apply_payment(balances, row)
    row.total_paid = total_paid(row)
    stamp_balances(row, balances)
    return balances


def interleave_unscheduled(
    unscheduled: Sequence[IndexedRow],
    cursor: int,
    period_end: date,
    sub_start: date,
    balances: RunningBalances,
    accrual: PeriodAccrual,
) -> Interleaved:
    """Consume the unscheduled payments dated on or before ``period_end``.

    Interest accrues up to each payment date before the payment is applied,
    and accrual resumes the day after it.
    """
    principal_paid = ZERO
    while cursor < len(unscheduled) and unscheduled[cursor].row.paid_on <= period_end:
        row = unscheduled[cursor].row
        balances = balances.accrue(accrual.accrue(balances.principal, sub_start, row.paid_on))
        balances = settle_unscheduled(row, balances)
        if row.principal_paid > 0:
            principal_paid += row.principal_paid
        sub_start = max(sub_start, one_day_after(row.paid_on))
        cursor += 1
    return Interleaved(balances, cursor, sub_start, principal_paid)


def _apply_recast(
    recast: RecastPoint, scheduled: Sequence[IndexedRow], position: int, terms: LoanTerms
) -> Reamortization:
    count = terms.term_months - recast.period + 1
    logger.debug("Applying recast of %s over %s periods from period %s", recast.principal, count, recast.period)
    return reamortize(scheduled[position:], recast.principal, count, terms.monthly_rate)


def _close_out(scheduled: Sequence[IndexedRow], start: int, balances: RunningBalances) -> None:
    """Zero the dues of a paid-off loan from ``scheduled[start]`` onward."""
    for item in scheduled[start:]:
        row = item.row
        row.principal_due = ZERO
        row.interest_due = ZERO
        row.total_due = ZERO
        row.total_paid = total_paid(row)
        stamp_balances(row, balances)


def run_recalculation(rows: Sequence[PeriodRow], terms: LoanTerms) -> RecalcResult:
    """Recompute due amounts and balances for every row of ``rows``.

    Parameters
    ----------
    rows: Sequence[PeriodRow]
        The schedule table in table order, scheduled and unscheduled rows
        mixed. The rows are not modified.
    terms: LoanTerms
        Normalized loan terms read from the input cells.

    Returns
    -------
    result: RecalcResult
        Updated copies of ``rows`` in the same order, the indexes of rows
        whose split was re-amortized and the period in which the loan was
        paid off, if it was.
    """
    working = [row.copy() for row in rows]
    classification = classify(working)
    scheduled = classification.scheduled
    unscheduled = classification.unscheduled
    if not scheduled:
        return RecalcResult(rows=working)

    scheduled_split = original_split(scheduled, terms)
    reamortized: Set[int] = set()
    balances = RunningBalances(principal=terms.principal)
    last_end = terms.closing_date or scheduled[0].row.period_end
    cursor = 0
    extra_payment_occurred = False
    paid_off_period = None

    for position, item in enumerate(scheduled):
        row = item.row
        period = row.period

        if terms.recast is not None and terms.amortize and period == terms.recast.period:
            recast = _apply_recast(terms.recast, scheduled, position, terms)
            scheduled_split.update(recast.split)
            reamortized |= recast.touched

        if period == 0 and terms.prorate_first:
            period_start = last_end
        else:
            period_start = one_day_after(last_end)

        accrual = PeriodAccrual(terms, period, period_start, row.period_end)
        step = interleave_unscheduled(unscheduled, cursor, row.period_end, period_start, balances, accrual)
        balances, cursor = step.balances, step.cursor
        balances = balances.accrue(accrual.accrue(balances.principal, step.sub_start, row.period_end))
        extra_this_period = step.principal_paid > 0

        scheduled_interest, scheduled_principal = scheduled_split.get(item.index, (ZERO, ZERO))
        due = allocate(
            period,
            period == terms.term_months,
            terms,
            accrual.accrued,
            scheduled_interest,
            scheduled_principal,
            extra_payment_occurred,
            extra_this_period,
            item.index in reamortized,
            row,
            balances.principal,
            balances.interest,
        )
        fees_due = row.fees_due or ZERO
        row.interest_due = due.interest_due
        row.principal_due = due.principal_due
        row.fees_due = fees_due
        row.total_due = due.interest_due + due.principal_due + fees_due

        balances = apply_payment(balances, row)
        row.total_paid = total_paid(row)

        if balances.paid_off:
            paid_off_period = period
            logger.debug("Loan paid off in period %s", period)
            _close_out(scheduled, position, balances)
            break

        overpaid = row.principal_paid > (row.principal_due or ZERO)
        if terms.amortize and (overpaid or step.principal_paid > 0):
            leftover_count = terms.term_months - math.floor(period)
            future = reamortize(scheduled[position + 1:], balances.principal, leftover_count, terms.monthly_rate)
            reamortized |= future.touched
            extra_payment_occurred = True
            logger.debug(
                "Principal prepaid in period %s; re-amortized %s over %s periods",
                period,
                balances.principal,
                leftover_count,
            )

        stamp_balances(row, balances)
        last_end = row.period_end

    # payments dated after maturity or payoff settle against the closing balances
    for item in unscheduled[cursor:]:
        balances = settle_unscheduled(item.row, balances)

    logger.debug(
        "Recalculated %s scheduled and %s unscheduled rows; principal balance %s",
        len(scheduled),
        len(unscheduled),
        balances.principal,
    )
    return RecalcResult(rows=working, reamortized=reamortized, paid_off_period=paid_off_period)


def recalculate(rows: Sequence[PeriodRow], terms: LoanTerms) -> List[PeriodRow]:
    """Return ``rows`` with due amounts and balances recomputed (full pass)."""
    return run_recalculation(rows, terms).rows


def find_recast_point(rows: Sequence[PeriodRow], terms: LoanTerms) -> Optional[RecastPoint]:
    """Locate where a user-invoked recast starts.

    That is the first scheduled row whose total paid does not exceed its total
    due, re-amortizing that row's principal balance. Only amortizing monthly
    loans can be recast.
    """
    if not (terms.amortize and terms.is_monthly):
        return None
    for item in classify(rows).scheduled:
        row = item.row
        if row.total_paid <= (row.total_due or ZERO):
            if row.principal_balance <= PAYOFF_EPSILON:
                return None
            return RecastPoint(period=max(row.period, 1), principal=row.principal_balance)
    return None


def recast(rows: Sequence[PeriodRow], terms: LoanTerms) -> Tuple[List[PeriodRow], Optional[RecastPoint]]:
    """Recast the loan from its first not-fully-paid period.

    Returns the recalculated rows and the new recast point (``None`` when
    there is nothing to recast). The caller persists the point so later
    recalculations keep the new payment amounts.
    """
    current = recalculate(rows, terms)
    point = find_recast_point(current, terms)
    if point is None:
        return current, None
    logger.info("Recasting %s from period %s", point.principal, point.period)
    return recalculate(current, replace(terms, recast=point)), point

"""Preparation of manually inserted unscheduled-payment rows."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional, Sequence

from .data_models import ZERO, PeriodRow
from .utils import to_decimal

HALF = Decimal("0.5")


def _numeric_period(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return None


def inserted_period_number(preceding: Any, following: Any) -> Decimal:
    """Period number that sorts an inserted row between its neighbours.

    The midpoint when both neighbours are numeric, half a period after the
    preceding row when only it is, and 0.5 otherwise.
    """
    before = _numeric_period(preceding)
    after = _numeric_period(following)
    if before is not None and after is not None:
        return before + (after - before) / 2
    if before is not None:
        return before + HALF
    return HALF


def prepare_inserted_row(
    preceding_period: Any,
    following_period: Any,
    preceding_interest_balance: Any = ZERO,
    preceding_principal_balance: Any = ZERO,
) -> PeriodRow:
    """Build a blank unscheduled row seeded with the preceding row's balances.

    The balances are only a placeholder until the next recalculation. Due
    columns stay blank and paid columns start at zero; the row takes part in
    recalculation once a paid-on date is entered.
    """
    interest_balance = to_decimal(preceding_interest_balance)
    principal_balance = to_decimal(preceding_principal_balance)
    return PeriodRow(
        period=inserted_period_number(preceding_period, following_period),
        total_due=ZERO,
        total_paid=ZERO,
        principal_due=None,
        interest_due=None,
        fees_due=None,
        interest_balance=interest_balance,
        principal_balance=principal_balance,
        total_balance=interest_balance + principal_balance,
    )


def insert_row_after(rows: Sequence[PeriodRow], index: int) -> List[PeriodRow]:
    """Return a copy of ``rows`` with a prepared row inserted after ``rows[index]``.

    ``index`` of -1 inserts at the top of the table.
    """
    preceding = rows[index] if 0 <= index < len(rows) else None
    following = rows[index + 1] if 0 <= index + 1 < len(rows) else None
    new_row = prepare_inserted_row(
        preceding.period if preceding else None,
        following.period if following else None,
        preceding.interest_balance if preceding else ZERO,
        preceding.principal_balance if preceding else ZERO,
    )
    result = list(rows)
    result.insert(index + 1, new_row)
    return result

"""Output helpers for the loan schedule.

This module renders schedule rows and loan summaries in a tabular text
format using only built-in printing and string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .data_models import LoanInputs, PeriodRow
from .summary import LoanSummary
from .utils import format_percent, yes_no


def _money(value: Optional[Decimal]) -> str:
    return "" if value is None else f"{value:.2f}"


def _day(value) -> str:
    return value.isoformat() if value is not None else ""


def _period(value) -> str:
    if value is None:
        return ""
    return str(value.normalize()) if isinstance(value, Decimal) else str(value)


def print_inputs(inputs: LoanInputs) -> None:
    """Print the loan parameters."""
    print(f"Loan               : {inputs.loan_name or '-'}")
    print(f"Borrower           : {inputs.borrower_name or '-'}")
    print(f"Principal          : {inputs.principal:.2f}")
    print(f"Annual rate        : {format_percent(inputs.annual_rate)}")
    print(f"Closing date       : {_day(inputs.closing_date)}")
    print(f"Term (months)      : {inputs.term_months}")
    print(f"Frequency          : {inputs.payment_frequency.value}")
    print(f"Day count          : {inputs.day_count_method.value} / {inputs.days_per_year or '-'}")
    print(f"Prorate / Amortize : {yes_no(inputs.prorate_first)} / {yes_no(inputs.amortize)}")
    if inputs.recast is not None:
        print(f"Recast             : period {inputs.recast.period}, {inputs.recast.principal:.2f}")
    print(f"Inputs locked      : {yes_no(inputs.locked)}")


def print_summary(summary: Optional[LoanSummary]) -> None:
    """Print a loan summary in a human-readable format."""
    print("Summary")
    print("-" * 72)
    if summary is None:
        print("No payment has fallen due yet.")
        print("-" * 72)
        return
    print(f"Last due date        : {summary.last_due_date.isoformat()}")
    print(f"Outstanding principal: {summary.outstanding_principal:.2f}")
    print(f"Accumulated interest : {summary.accumulated_interest:.2f}")
    print(f"Principal paid       : {summary.principal_paid:.2f}")
    print(f"Interest paid        : {summary.interest_paid:.2f}")
    print(f"Past due principal   : {summary.past_due_principal:.2f}")
    print(f"Past due interest    : {summary.past_due_interest:.2f}")
    print(f"Total interest due   : {summary.total_interest_due:.2f}")
    print(f"Periods              : {summary.periods}")
    print("-" * 72)


def print_schedule(rows: Iterable[PeriodRow], first_row: int = 8, show_notes: bool = True) -> None:
    """Print schedule rows as a simple table.

    Parameters
    ----------
    rows: Iterable[PeriodRow]
        The rows to print, in table order.
    first_row: int
        Storage row number of the first row, shown so rows can be addressed
        by the ``insert`` and ``pay`` commands.
    show_notes: bool
        Whether to include the Notes column.
    """
    headers = [
        "Row",
        "Period",
        "PeriodEnd",
        "PaidOn",
        "TotalDue",
        "TotalPaid",
        "PrinDue",
        "PrinPaid",
        "IntDue",
        "IntPaid",
        "FeesDue",
        "IntBal",
        "PrinBal",
        "TotalBal",
    ]
    if show_notes:
        headers.append("Notes")
    print("\t".join(headers))
    for offset, row in enumerate(rows):
        # Skip blank lines between rows
        if row.is_blank:
            continue
        cells = [
            str(first_row + offset),
            _period(row.period),
            _day(row.period_end),
            _day(row.paid_on),
            _money(row.total_due),
            _money(row.total_paid),
            _money(row.principal_due),
            _money(row.principal_paid),
            _money(row.interest_due),
            _money(row.interest_paid),
            _money(row.fees_due),
            _money(row.interest_balance),
            _money(row.principal_balance),
            _money(row.total_balance),
        ]
        if show_notes:
            cells.append(row.notes)
        print("\t".join(cells))

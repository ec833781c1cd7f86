"""Point-in-time summary of one loan's schedule.

Given the recalculated rows and an as-of date, report where the loan stands
after its most recent due date: outstanding balances, what has been paid and
what is past due.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from .data_models import ZERO, PeriodRow


@dataclass(frozen=True)
class LoanSummary:
    last_due_date: date
    outstanding_principal: Decimal
    accumulated_interest: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    principal_due: Decimal
    interest_due: Decimal
    past_due_principal: Decimal
    past_due_interest: Decimal
    total_interest_due: Decimal
    periods: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_due_date"] = self.last_due_date.isoformat()
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in data.items()}


def summarize(rows: Sequence[PeriodRow], as_of: date) -> Optional[LoanSummary]:
    """Summarize ``rows`` as of ``as_of``.

    The reference row is the scheduled row with the latest due date on or
    before ``as_of``. Paid and due totals run over the table from the top
    through that row, so unscheduled payments above it are included. Returns
    ``None`` when no due date has passed yet.
    """
    reference = -1
    latest: Optional[date] = None
    for i, row in enumerate(rows):
        if not row.is_scheduled or row.due_date is None:
            continue
        if row.due_date <= as_of and (latest is None or row.due_date > latest):
            latest = row.due_date
            reference = i
    if latest is None:
        return None

    principal_paid = interest_paid = principal_due = interest_due = ZERO
    for row in rows[: reference + 1]:
        principal_paid += row.principal_paid
        interest_paid += row.interest_paid
        principal_due += row.principal_due or ZERO
        interest_due += row.interest_due or ZERO

    scheduled = [row for row in rows if row.is_scheduled]
    current = rows[reference]
    return LoanSummary(
        last_due_date=latest,
        outstanding_principal=current.principal_balance,
        accumulated_interest=current.interest_balance,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        principal_due=principal_due,
        interest_due=interest_due,
        past_due_principal=max(ZERO, principal_due - principal_paid),
        past_due_interest=max(ZERO, interest_due - interest_paid),
        total_interest_due=sum((row.interest_due or ZERO for row in scheduled), ZERO),
        periods=len(scheduled),
    )

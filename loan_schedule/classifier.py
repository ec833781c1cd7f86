"""Partitioning of the row table into scheduled and unscheduled rows."""

from __future__ import annotations

from typing import Sequence

from .data_models import Classification, IndexedRow, PeriodRow


def classify(rows: Sequence[PeriodRow]) -> Classification:
    """Split ``rows`` into scheduled and unscheduled rows.

    A row is scheduled when it has an integer period number and a period end
    date, and unscheduled when its period number is not an integer and it has
    a paid-on date. Anything else is blank capacity and appears in neither
    list. Scheduled rows are ordered by period end, unscheduled rows by
    paid-on date; equal dates keep their table order.
    """
    scheduled = [IndexedRow(i, row) for i, row in enumerate(rows) if row.is_scheduled]
    unscheduled = [IndexedRow(i, row) for i, row in enumerate(rows) if row.is_unscheduled]
    scheduled.sort(key=lambda item: item.row.period_end)
    unscheduled.sort(key=lambda item: item.row.paid_on)
    return Classification(scheduled=scheduled, unscheduled=unscheduled)

"""Exceptions raised by the loan schedule service layer.

The calculation core never raises for malformed data; these errors belong to
the operations that edit a stored loan.
"""

from __future__ import annotations


class LoanScheduleError(Exception):
    """Base class for loan schedule errors."""


class InputsLockedError(LoanScheduleError):
    """A loan input was edited while the loan's inputs are locked."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Loan inputs are locked; '{field}' was not changed")
        self.field = field


class ScheduleRangeError(LoanScheduleError):
    """A table row lies outside the schedule area."""

    def __init__(self, row: int, start_row: int, end_row: int) -> None:
        super().__init__(f"Row {row} is outside the schedule area ({start_row}-{end_row})")
        self.row = row
        self.start_row = start_row
        self.end_row = end_row

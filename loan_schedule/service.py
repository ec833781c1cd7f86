"""Operations on a stored loan.

:class:`LoanWorkbook` is the entry point used by the command line and the web
API. Each method is one event against a loan stored in a
:class:`~loan_schedule.table.TableStore`: it reads the inputs and the whole
row table, computes in memory and writes the table back. Callers that share a
store between threads must serialize calls per loan.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from .data_models import ZERO, DayCountMethod, LoanInputs, LoanTerms, PaymentFrequency, PeriodRow, RecastPoint
from .engine import RecalcResult, recast, run_recalculation
from .errors import InputsLockedError
from .insertion import insert_row_after
from .layout import ScheduleLayout, row_to_values, values_to_row
from .schedule import build_schedule
from .summary import LoanSummary, summarize
from .table import LoanSheet, TableStore
from .terms import load_terms
from .utils import decimal_from_str, parse_optional_date, parse_percent, parse_yes_no, to_decimal, yes_no

logger = logging.getLogger(__name__)

# Inputs that only label the loan; editing them never regenerates the schedule.
LABEL_INPUTS = frozenset({"loan_name", "borrower_name"})
PERCENT_INPUTS = frozenset({"annual_rate", "origination_fee_pct", "exit_fee_pct"})
DATE_INPUTS = frozenset({"closing_date", "prepaid_interest_date"})
FLAG_INPUTS = frozenset({"prorate_first", "amortize", "locked"})
INTEGER_INPUTS = frozenset({"term_months", "days_per_year"})


def parse_input_value(name: str, value: Any) -> Any:
    """Convert a user-entered value for input ``name`` to its stored form.

    Raises ``ValueError`` for unknown inputs and malformed values.
    """
    if name in PERCENT_INPUTS:
        return parse_percent(value) if value not in (None, "") else ZERO
    if name in DATE_INPUTS:
        return parse_optional_date(value) or ""
    if name in FLAG_INPUTS:
        return yes_no(parse_yes_no(value))
    if name in INTEGER_INPUTS:
        if value in (None, ""):
            return ""
        number = decimal_from_str(str(value))
        if number != number.to_integral_value():
            raise ValueError(f"{name} must be a whole number; got {value}")
        return int(number)
    if name == "principal":
        return decimal_from_str(str(value)) if not isinstance(value, Decimal) else value
    if name == "payment_frequency":
        return PaymentFrequency.parse(value).value
    if name == "day_count_method":
        return DayCountMethod.parse(value).value
    if name in LABEL_INPUTS or name == "origination_fee_display":
        return "" if value is None else str(value)
    raise ValueError(f"Unknown or read-only loan input: {name}")


class LoanWorkbook:
    """One loan: its inputs and schedule rows in a table store."""

    def __init__(self, store: TableStore, layout: Optional[ScheduleLayout] = None, loan_id: str = "") -> None:
        self.sheet = LoanSheet(store, layout)
        self.loan_id = loan_id

    def _log(self, action: str, message: str, *args: Any) -> None:
        logger.info(message, *args, extra={"loan_id": self.loan_id or None, "action": action})

    def _load_terms(self) -> LoanTerms:
        inputs = self.sheet.read_inputs()
        terms, normalized = load_terms(inputs)
        for name in ("prorate_first", "day_count_method", "amortize"):
            if getattr(normalized, name) != getattr(inputs, name):
                value = getattr(normalized, name)
                self.sheet.write_input(name, value.value if isinstance(value, DayCountMethod) else yes_no(value))
        return terms

    def inputs(self) -> LoanInputs:
        return self.sheet.read_inputs()

    def rows(self) -> List[PeriodRow]:
        return self.sheet.read_rows()

    def set_inputs(self, inputs: LoanInputs) -> List[PeriodRow]:
        """Replace every input and generate a fresh schedule."""
        if self.sheet.read_inputs().locked:
            raise InputsLockedError("inputs")
        self.sheet.write_inputs(inputs)
        return self.generate()

    def generate(self) -> List[PeriodRow]:
        """Build a new schedule from the inputs, discarding recorded payments."""
        inputs = replace(self.sheet.read_inputs(), recast=None)
        terms, normalized = load_terms(inputs)
        self.sheet.write_inputs(normalized)
        self.sheet.clear_schedule()
        result = run_recalculation(build_schedule(terms), terms)
        self.sheet.write_rows(result.rows)
        self._log("generate", "Generated %s schedule rows", len(result.rows))
        return result.rows

    def recalculate(self) -> RecalcResult:
        terms = self._load_terms()
        result = run_recalculation(self.sheet.read_rows(), terms)
        self.sheet.write_rows(result.rows)
        self._log("recalculate", "Recalculated %s rows", len(result.rows))
        return result

    def insert_unscheduled_row(self, after_row: int) -> int:
        """Insert an unscheduled-payment row below storage row ``after_row``.

        Returns the storage row number of the new row.
        """
        index = self.sheet.row_index(after_row)
        rows = self.sheet.read_rows()
        if index >= len(rows):
            rows = rows + [values_to_row([]) for _ in range(index + 1 - len(rows))]
        rows = insert_row_after(rows, index)
        self.sheet.insert_row_after(after_row)
        self.sheet.store.set_values(after_row + 1, self.sheet.layout.first_column, [row_to_values(rows[index + 1])])
        self._log("insert", "Inserted unscheduled row %s (period %s)", after_row + 1, rows[index + 1].period)
        self.recalculate()
        return after_row + 1

    def record_payment(
        self,
        row: int,
        paid_on: Optional[date],
        principal: Decimal = ZERO,
        interest: Decimal = ZERO,
        fees: Decimal = ZERO,
    ) -> RecalcResult:
        """Record the paid amounts of storage row ``row`` and recalculate."""
        index = self.sheet.row_index(row)
        rows = self.sheet.read_rows()
        if index >= len(rows):
            rows = rows + [values_to_row([]) for _ in range(index + 1 - len(rows))]
        target = rows[index]
        target.paid_on = paid_on
        target.principal_paid = to_decimal(principal)
        target.interest_paid = to_decimal(interest)
        target.fees_paid = to_decimal(fees)
        target.total_paid = target.principal_paid + target.interest_paid + target.fees_paid
        self.sheet.write_rows(rows)
        self._log("payment", "Recorded payment of %s on row %s", target.total_paid, row)
        return self.recalculate()

    def recast(self) -> Optional[RecastPoint]:
        """Re-amortize the remaining principal from the first unpaid period."""
        terms = self._load_terms()
        rows, point = recast(self.sheet.read_rows(), terms)
        if point is not None:
            self.sheet.write_recast(point)
            self._log("recast", "Recast %s from period %s", point.principal, point.period)
        self.sheet.write_rows(rows)
        return point

    def edit_input(self, name: str, value: Any) -> Optional[List[PeriodRow]]:
        """Store one input and regenerate when it affects the schedule.

        Editing the lock flag or a label never regenerates. Any other edit is
        rejected with :class:`InputsLockedError` while the inputs are locked.
        """
        return self.edit_inputs({name: value})

    def edit_inputs(self, changes: Mapping[str, Any]) -> Optional[List[PeriodRow]]:
        """Store several inputs at once, regenerating at most once.

        Every value is parsed and the lock is checked against the lock state
        the batch leaves behind before anything is written, so a rejected
        batch stores nothing. Returns the regenerated rows, or ``None`` when
        only the lock flag or labels changed.
        """
        stored = {name: parse_input_value(name, value) for name, value in changes.items()}
        schedule_inputs = [name for name in stored if name != "locked" and name not in LABEL_INPUTS]
        if "locked" in stored:
            locked = parse_yes_no(stored["locked"])
        else:
            locked = self.sheet.read_inputs().locked
        if schedule_inputs and locked:
            raise InputsLockedError(schedule_inputs[0])
        for name, value in stored.items():
            self.sheet.write_input(name, value)
        if not schedule_inputs:
            return None
        self._log("edit", "Inputs %s changed; regenerating", ", ".join(schedule_inputs))
        return self.generate()

    def summary(self, as_of: Optional[date] = None) -> Optional[LoanSummary]:
        return summarize(self.sheet.read_rows(), as_of or date.today())

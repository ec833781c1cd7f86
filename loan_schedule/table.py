"""Row storage for loan schedules.

A :class:`TableStore` is anything that can read and write rectangular ranges
of cells addressed by 1-based ``(row, column)``, plus single cells by A1
address. :class:`InMemoryTable` is a dict-backed implementation that can be
saved to and loaded from JSON, which is how the command line keeps loan
files. :class:`LoanSheet` sits on top of a store and speaks in
:class:`~loan_schedule.data_models.LoanInputs` and
:class:`~loan_schedule.data_models.PeriodRow` instead of raw cells.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .data_models import DayCountMethod, LoanInputs, PaymentFrequency, PeriodRow, RecastPoint
from .errors import ScheduleRangeError
from .layout import ScheduleLayout, a1_to_cell, decode_cell, encode_cell, matrix_to_rows, rows_to_matrix
from .utils import parse_optional_date, parse_percent, parse_yes_no, to_decimal, yes_no

logger = logging.getLogger(__name__)

Matrix = List[List[Any]]


class TableStore(Protocol):
    def get_values(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> Matrix:
        ...

    def set_values(self, start_row: int, start_col: int, matrix: Sequence[Sequence[Any]]) -> None:
        ...

    def get_value(self, address: str) -> Any:
        ...

    def set_value(self, address: str, value: Any) -> None:
        ...

    def insert_row_after(self, row: int) -> None:
        ...

    def clear(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> None:
        ...


class InMemoryTable:
    """A sparse grid of cell values. Unset cells read as ``""``."""

    def __init__(self, cells: Optional[Dict[Tuple[int, int], Any]] = None) -> None:
        self._cells: Dict[Tuple[int, int], Any] = dict(cells or {})

    def get_values(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> Matrix:
        return [
            [self._cells.get((r, c), "") for c in range(start_col, start_col + num_cols)]
            for r in range(start_row, start_row + num_rows)
        ]

    def set_values(self, start_row: int, start_col: int, matrix: Sequence[Sequence[Any]]) -> None:
        for i, values in enumerate(matrix):
            for j, value in enumerate(values):
                self._put((start_row + i, start_col + j), value)

    def get_value(self, address: str) -> Any:
        return self._cells.get(a1_to_cell(address), "")

    def set_value(self, address: str, value: Any) -> None:
        self._put(a1_to_cell(address), value)

    def insert_row_after(self, row: int) -> None:
        """Shift every row below ``row`` down by one, leaving a blank row."""
        shifted: Dict[Tuple[int, int], Any] = {}
        for (r, c), value in self._cells.items():
            shifted[(r + 1 if r > row else r, c)] = value
        self._cells = shifted

    def clear(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> None:
        for key in list(self._cells):
            r, c = key
            if start_row <= r < start_row + num_rows and start_col <= c < start_col + num_cols:
                del self._cells[key]

    def _put(self, key: Tuple[int, int], value: Any) -> None:
        if value is None or value == "":
            self._cells.pop(key, None)
        else:
            self._cells[key] = value

    def to_json(self) -> str:
        cells = [[r, c, encode_cell(value)] for (r, c), value in sorted(self._cells.items())]
        return json.dumps({"cells": cells}, indent=2)

    @classmethod
    def from_json(cls, text: str) -> "InMemoryTable":
        data = json.loads(text)
        return cls({(int(r), int(c)): decode_cell(value) for r, c, value in data.get("cells", [])})


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _optional_int(value: Any) -> Optional[int]:
    number = to_decimal(value, default=None)
    return int(number) if number is not None else None


def _lenient_date(value: Any):
    try:
        return parse_optional_date(value)
    except ValueError:
        logger.warning("Ignoring unreadable date %r", value)
        return None


def _lenient_flag(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    try:
        return parse_yes_no(value)
    except ValueError:
        return default


def _stored_percent(value: Any) -> Decimal:
    if isinstance(value, str):
        try:
            return parse_percent(value) if value.strip() else Decimal("0")
        except ValueError:
            return Decimal("0")
    return to_decimal(value)


class LoanSheet:
    """A loan's inputs and schedule rows on top of a :class:`TableStore`."""

    def __init__(self, store: TableStore, layout: Optional[ScheduleLayout] = None) -> None:
        self.store = store
        self.layout = layout or ScheduleLayout()

    # -- inputs ---------------------------------------------------------

    def read_input(self, name: str) -> Any:
        return self.store.get_value(self.layout.cell_for(name))

    def write_input(self, name: str, value: Any) -> None:
        self.store.set_value(self.layout.cell_for(name), value)

    def read_inputs(self) -> LoanInputs:
        """Read the input cells. Blank or unreadable cells fall back to defaults."""
        raw = {name: self.read_input(name) for name in self.layout.input_cells}
        frequency_text = _text(raw.get("payment_frequency"))
        day_count_text = _text(raw.get("day_count_method"))
        recast = None
        recast_period = _optional_int(raw.get("recast_period"))
        if recast_period is not None:
            recast = RecastPoint(period=recast_period, principal=to_decimal(raw.get("recast_principal")))
        return LoanInputs(
            loan_name=_text(raw.get("loan_name")),
            borrower_name=_text(raw.get("borrower_name")),
            principal=to_decimal(raw.get("principal")),
            annual_rate=_stored_percent(raw.get("annual_rate")),
            closing_date=_lenient_date(raw.get("closing_date")),
            term_months=_optional_int(raw.get("term_months")) or 0,
            prorate_first=_lenient_flag(raw.get("prorate_first"), False),
            payment_frequency=PaymentFrequency.parse(frequency_text) if frequency_text else PaymentFrequency.MONTHLY,
            day_count_method=DayCountMethod.parse(day_count_text) if day_count_text else DayCountMethod.ACTUAL,
            days_per_year=_optional_int(raw.get("days_per_year")),
            prepaid_interest_date=_lenient_date(raw.get("prepaid_interest_date")),
            amortize=_lenient_flag(raw.get("amortize"), True),
            origination_fee_pct=_stored_percent(raw.get("origination_fee_pct")),
            origination_fee_display=_text(raw.get("origination_fee_display")),
            exit_fee_pct=_stored_percent(raw.get("exit_fee_pct")),
            locked=_lenient_flag(raw.get("locked"), False),
            recast=recast,
        )

    def write_inputs(self, inputs: LoanInputs) -> None:
        values = {
            "loan_name": inputs.loan_name,
            "borrower_name": inputs.borrower_name,
            "principal": inputs.principal,
            "annual_rate": inputs.annual_rate,
            "closing_date": inputs.closing_date,
            "term_months": inputs.term_months,
            "prorate_first": yes_no(inputs.prorate_first),
            "payment_frequency": inputs.payment_frequency.value,
            "day_count_method": inputs.day_count_method.value,
            "days_per_year": inputs.days_per_year,
            "prepaid_interest_date": inputs.prepaid_interest_date,
            "amortize": yes_no(inputs.amortize),
            "origination_fee_pct": inputs.origination_fee_pct,
            "origination_fee_display": inputs.origination_fee_display,
            "exit_fee_pct": inputs.exit_fee_pct,
            "locked": yes_no(inputs.locked),
        }
        for name, value in values.items():
            self.write_input(name, value)
        self.write_recast(inputs.recast)

    def write_recast(self, point: Optional[RecastPoint]) -> None:
        self.write_input("recast_period", point.period if point else "")
        self.write_input("recast_principal", point.principal if point else "")

    # -- schedule rows --------------------------------------------------

    def row_index(self, row: int) -> int:
        """Schedule row index of storage ``row``; raises outside the schedule area."""
        if not self.layout.contains_row(row):
            raise ScheduleRangeError(row, self.layout.start_row, self.layout.end_row)
        return row - self.layout.start_row

    def read_rows(self) -> List[PeriodRow]:
        layout = self.layout
        matrix = self.store.get_values(layout.start_row, layout.first_column, layout.capacity, layout.width)
        return matrix_to_rows(matrix)

    def write_rows(self, rows: Sequence[PeriodRow]) -> None:
        layout = self.layout
        if len(rows) > layout.capacity:
            raise ScheduleRangeError(layout.start_row + len(rows) - 1, layout.start_row, layout.end_row)
        if rows:
            self.store.set_values(layout.start_row, layout.first_column, rows_to_matrix(rows))

    def insert_row_after(self, row: int) -> None:
        """Open a blank schedule row below storage ``row``.

        Raises ``ScheduleRangeError`` when the last row of the schedule area
        is in use, since shifting would push it out of the area.
        """
        layout = self.layout
        self.row_index(row)
        self.row_index(row + 1)
        if len(self.read_rows()) >= layout.capacity:
            raise ScheduleRangeError(layout.end_row + 1, layout.start_row, layout.end_row)
        self.store.insert_row_after(row)

    def clear_schedule(self) -> None:
        layout = self.layout
        self.store.clear(layout.start_row, layout.first_column, layout.capacity, layout.width)

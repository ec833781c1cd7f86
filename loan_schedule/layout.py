"""Schedule table layout and conversion at the storage boundary.

Storage backends see a loan as a grid of cells: the loan inputs live in named
cells of the input row and the schedule occupies a block of 17 columns. This
module holds that layout as an explicit, immutable value and converts
between raw cell values and :class:`~loan_schedule.data_models.PeriodRow`
records, so nothing past this boundary indexes columns by number.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .data_models import PeriodNumber, PeriodRow
from .utils import as_date, parse_optional_date, to_decimal

# Wire order of the schedule columns.
COLUMNS: Tuple[str, ...] = (
    "Period",
    "PeriodEnd",
    "DueDate",
    "Days",
    "PaidOn",
    "TotalDue",
    "TotalPaid",
    "PrincipalDue",
    "PrincipalPaid",
    "InterestDue",
    "InterestPaid",
    "FeesDue",
    "FeesPaid",
    "InterestBalance",
    "PrincipalBalance",
    "TotalBalance",
    "Notes",
)

# PeriodRow attribute for each wire column.
FIELDS: Tuple[str, ...] = (
    "period",
    "period_end",
    "due_date",
    "days",
    "paid_on",
    "total_due",
    "total_paid",
    "principal_due",
    "principal_paid",
    "interest_due",
    "interest_paid",
    "fees_due",
    "fees_paid",
    "interest_balance",
    "principal_balance",
    "total_balance",
    "notes",
)

DATE_FIELDS = frozenset({"period_end", "due_date", "paid_on"})
OPTIONAL_MONEY_FIELDS = frozenset({"total_due", "principal_due", "interest_due", "fees_due"})
MONEY_FIELDS = frozenset(
    {"total_paid", "principal_paid", "interest_paid", "fees_paid", "interest_balance", "principal_balance", "total_balance"}
)

DEFAULT_INPUT_CELLS: Dict[str, str] = {
    "loan_name": "B4",
    "borrower_name": "C4",
    "principal": "D4",
    "annual_rate": "E4",
    "closing_date": "F4",
    "term_months": "G4",
    "prorate_first": "H4",
    "payment_frequency": "I4",
    "day_count_method": "J4",
    "days_per_year": "K4",
    "prepaid_interest_date": "L4",
    "amortize": "M4",
    "origination_fee_pct": "N4",
    "exit_fee_pct": "O4",
    "origination_fee_display": "P4",
    "locked": "Q4",
    "recast_period": "R4",
    "recast_principal": "S4",
}

_A1 = re.compile(r"^([A-Z]+)(\d+)$")


def a1_to_cell(address: str) -> Tuple[int, int]:
    """Convert an A1 address such as ``"D4"`` to 1-based ``(row, column)``."""
    match = _A1.match(address.strip().upper())
    if not match:
        raise ValueError(f"Invalid cell address: {address}")
    letters, row = match.groups()
    column = 0
    for ch in letters:
        column = column * 26 + (ord(ch) - 64)
    return int(row), column


@dataclass(frozen=True)
class ScheduleLayout:
    """Where a loan lives in its table store.

    ``start_row``/``end_row`` bound the schedule area (1-based, inclusive) and
    ``first_column`` is the column of the Period cell.
    """

    start_row: int = 8
    end_row: int = 500
    first_column: int = 2
    input_cells: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_INPUT_CELLS))

    @property
    def width(self) -> int:
        return len(COLUMNS)

    @property
    def capacity(self) -> int:
        return self.end_row - self.start_row + 1

    def contains_row(self, row: int) -> bool:
        return self.start_row <= row <= self.end_row

    def cell_for(self, name: str) -> str:
        try:
            return self.input_cells[name]
        except KeyError:
            raise ValueError(f"Unknown loan input: {name}") from None


def coerce_period(value: Any) -> PeriodNumber:
    """Period cell value as ``int``, ``Decimal`` or ``None``.

    Stored ``Decimal`` periods stay ``Decimal`` even when whole, so a row
    inserted as ``3.0`` is still read back as an unscheduled row.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    number = to_decimal(value, default=None)
    if number is None:
        return None
    if number == number.to_integral_value():
        return int(number)
    return number


def _coerce_date(value: Any) -> Optional[date]:
    parsed = as_date(value)
    if parsed is not None:
        return parsed
    try:
        return parse_optional_date(value)
    except ValueError:
        return None


def _coerce_days(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    number = to_decimal(value, default=None)
    return int(number) if number is not None else None


def _cell(value: Any) -> Any:
    return "" if value is None else value


def row_to_values(row: PeriodRow) -> List[Any]:
    return [_cell(getattr(row, name)) for name in FIELDS]


def values_to_row(values: Sequence[Any]) -> PeriodRow:
    """Build a row from one 17-wide list of cell values (short lists are padded)."""
    padded = list(values) + [""] * (len(FIELDS) - len(values))
    kwargs: Dict[str, Any] = {}
    for name, value in zip(FIELDS, padded):
        if name == "period":
            kwargs[name] = coerce_period(value)
        elif name in DATE_FIELDS:
            kwargs[name] = _coerce_date(value)
        elif name == "days":
            kwargs[name] = _coerce_days(value)
        elif name in OPTIONAL_MONEY_FIELDS:
            kwargs[name] = None if value is None or value == "" else to_decimal(value)
        elif name in MONEY_FIELDS:
            kwargs[name] = to_decimal(value)
        else:
            kwargs[name] = "" if value is None else str(value)
    return PeriodRow(**kwargs)


def _is_blank_values(values: Sequence[Any]) -> bool:
    return all(value is None or value == "" for value in values)


def rows_to_matrix(rows: Sequence[PeriodRow]) -> List[List[Any]]:
    return [row_to_values(row) for row in rows]


def matrix_to_rows(matrix: Sequence[Sequence[Any]]) -> List[PeriodRow]:
    """Convert the used part of a schedule block into rows.

    Trailing fully blank lines are unused capacity and are dropped; blank
    lines between used rows are kept so row positions survive a round trip.
    """
    used = len(matrix)
    while used > 0 and _is_blank_values(matrix[used - 1]):
        used -= 1
    return [values_to_row(values) for values in matrix[:used]]


def encode_cell(value: Any) -> Any:
    """Tag a cell value for JSON storage (Decimals and dates are not JSON types)."""
    if isinstance(value, Decimal):
        return {"decimal": str(value)}
    if isinstance(value, date):
        return {"date": as_date(value).isoformat()}
    if value is None:
        return ""
    return value


def decode_cell(value: Any) -> Any:
    if isinstance(value, dict):
        if "decimal" in value:
            return Decimal(value["decimal"])
        if "date" in value:
            return date.fromisoformat(value["date"])
    return value

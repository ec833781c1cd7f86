"""Data models for the loan schedule.

This module defines the dataclasses and enums shared by every stage of the
schedule: the raw loan inputs as the user typed them, the normalized loan
terms used by one recalculation pass, the schedule rows themselves and the
small value objects passed between the calculation steps. Using dataclasses
makes it easy to construct, inspect and serialize these structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

ZERO = Decimal("0")

# Balances at or below this amount count as fully paid off.
PAYOFF_EPSILON = Decimal("0.000001")

PeriodNumber = Union[int, Decimal, None]


class PaymentFrequency(Enum):
    """How often payments fall due."""

    MONTHLY = "Monthly"
    SINGLE_PERIOD = "Single Period"

    @classmethod
    def parse(cls, value: Union[str, "PaymentFrequency"]) -> "PaymentFrequency":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("_", " ")
        if key in ("single period", "singleperiod", "single"):
            return cls.SINGLE_PERIOD
        if key == "monthly":
            return cls.MONTHLY
        raise ValueError(f"Payment frequency must be 'Monthly' or 'Single Period'; got {value}")


class DayCountMethod(Enum):
    """Convention for measuring elapsed time when accruing interest."""

    ACTUAL = "Actual"      # real calendar days at annualRate / daysPerYear
    PERIODIC = "Periodic"  # 30-day months, 30/360 style

    @classmethod
    def parse(cls, value: Union[str, "DayCountMethod"]) -> "DayCountMethod":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValueError(f"Day count method must be 'Actual' or 'Periodic'; got {value}")


@dataclass(frozen=True)
class RecastPoint:
    """A user-invoked recast: re-amortize ``principal`` starting at ``period``."""

    period: int
    principal: Decimal


@dataclass
class LoanInputs:
    """The named scalar fields of a loan as entered by the user.

    Percentages and rates are fractions (``0.05`` for 5 %). The origination
    fee display string is kept separately because the schedule notes quote it
    verbatim.
    """

    principal: Decimal
    annual_rate: Decimal
    closing_date: Optional[date]
    term_months: int
    prorate_first: bool = False
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    day_count_method: DayCountMethod = DayCountMethod.ACTUAL
    days_per_year: Optional[int] = 365
    prepaid_interest_date: Optional[date] = None
    amortize: bool = True
    origination_fee_pct: Decimal = ZERO
    origination_fee_display: str = ""
    exit_fee_pct: Decimal = ZERO
    locked: bool = False
    loan_name: str = ""
    borrower_name: str = ""
    recast: Optional[RecastPoint] = None


@dataclass(frozen=True)
class LoanTerms:
    """Normalized loan terms, immutable for one recalculation pass.

    ``principal`` already includes any financed origination fee and financed
    prepaid interest; ``original_principal`` is the amount the user entered
    and is what the exit fee is computed from.
    """

    principal: Decimal
    annual_rate: Decimal
    closing_date: Optional[date]
    term_months: int
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    day_count_method: DayCountMethod = DayCountMethod.ACTUAL
    days_per_year: Optional[int] = 365
    prorate_first: bool = False
    amortize: bool = True
    prepaid_until: Optional[date] = None
    original_principal: Decimal = ZERO
    origination_fee_pct: Decimal = ZERO
    origination_fee_display: str = ""
    exit_fee_pct: Decimal = ZERO
    financed_fee: Decimal = ZERO
    financed_prepaid_interest: Decimal = ZERO
    exit_fee: Decimal = ZERO
    recast: Optional[RecastPoint] = None

    @property
    def is_single_period(self) -> bool:
        return self.payment_frequency is PaymentFrequency.SINGLE_PERIOD

    @property
    def is_monthly(self) -> bool:
        return self.payment_frequency is PaymentFrequency.MONTHLY

    @property
    def is_periodic(self) -> bool:
        return self.day_count_method is DayCountMethod.PERIODIC

    @property
    def per_diem_rate(self) -> Decimal:
        if not self.days_per_year:
            return ZERO
        return self.annual_rate / Decimal(self.days_per_year)

    @property
    def monthly_rate(self) -> Decimal:
        return self.annual_rate / Decimal(12)

    @property
    def daily_periodic_rate(self) -> Decimal:
        """Daily rate of a 30-day month under the 30/360 convention."""
        if self.days_per_year:
            monthly_factor = self.annual_rate * Decimal(30) / Decimal(self.days_per_year)
        else:
            monthly_factor = self.monthly_rate
        return monthly_factor / Decimal(30)

    @property
    def total_periods(self) -> int:
        """Number of schedule rows, including the prorated period 0."""
        term = max(self.term_months, 0)
        if term == 0:
            return 0
        return term + 1 if self.prorate_first else term


@dataclass
class PeriodRow:
    """One row of the schedule table, in wire column order.

    Scheduled rows carry an integer ``period`` and a ``period_end``.
    Unscheduled (extra payment) rows carry a non-integer or blank ``period``
    and a ``paid_on`` date; their due fields stay ``None`` because only the
    paid and balance columns are meaningful for them.
    """

    period: PeriodNumber = None
    period_end: Optional[date] = None
    due_date: Optional[date] = None
    days: Optional[int] = None
    paid_on: Optional[date] = None
    total_due: Optional[Decimal] = ZERO
    total_paid: Decimal = ZERO
    principal_due: Optional[Decimal] = ZERO
    principal_paid: Decimal = ZERO
    interest_due: Optional[Decimal] = ZERO
    interest_paid: Decimal = ZERO
    fees_due: Optional[Decimal] = ZERO
    fees_paid: Decimal = ZERO
    interest_balance: Decimal = ZERO
    principal_balance: Decimal = ZERO
    total_balance: Decimal = ZERO
    notes: str = ""

    @property
    def has_integer_period(self) -> bool:
        return isinstance(self.period, int) and not isinstance(self.period, bool)

    @property
    def is_scheduled(self) -> bool:
        return self.has_integer_period and self.period_end is not None

    @property
    def is_unscheduled(self) -> bool:
        return not self.has_integer_period and self.paid_on is not None

    @property
    def is_blank(self) -> bool:
        return self.period is None and self.period_end is None and self.paid_on is None

    def copy(self) -> "PeriodRow":
        return replace(self)


@dataclass
class IndexedRow:
    """A row together with its position in the stored table."""

    index: int
    row: PeriodRow


@dataclass
class Classification:
    """Scheduled rows sorted by period end, unscheduled rows by paid-on date."""

    scheduled: List[IndexedRow] = field(default_factory=list)
    unscheduled: List[IndexedRow] = field(default_factory=list)


@dataclass(frozen=True)
class AmortizationSplit:
    """Interest and principal portions of an annuity, indexed from period 1."""

    payment: Decimal
    interest: Tuple[Decimal, ...]
    principal: Tuple[Decimal, ...]

    def for_period(self, k: int) -> Tuple[Decimal, Decimal]:
        """Return ``(interest, principal)`` for 1-based period ``k`` (zeros outside)."""
        if 1 <= k <= len(self.interest):
            return self.interest[k - 1], self.principal[k - 1]
        return ZERO, ZERO


@dataclass(frozen=True)
class RunningBalances:
    """Outstanding principal, unpaid interest and unpaid fees of a loan.

    Every operation returns a new instance; payments floor each bucket at 0.
    """

    principal: Decimal
    interest: Decimal = ZERO
    fees: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.interest + self.principal + self.fees

    @property
    def paid_off(self) -> bool:
        return self.principal <= PAYOFF_EPSILON

    def accrue(self, amount: Decimal) -> "RunningBalances":
        return replace(self, interest=self.interest + amount)

    def charge_fees(self, amount: Decimal) -> "RunningBalances":
        return replace(self, fees=self.fees + amount)

    def apply_payment(
        self, principal_paid: Decimal, interest_paid: Decimal, fees_paid: Decimal
    ) -> "RunningBalances":
        return RunningBalances(
            principal=max(ZERO, self.principal - principal_paid),
            interest=max(ZERO, self.interest - interest_paid),
            fees=max(ZERO, self.fees - fees_paid),
        )


ScheduledSplitMap = Dict[int, Tuple[Decimal, Decimal]]

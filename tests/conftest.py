"""Shared fixtures for the loan schedule tests."""

from datetime import date
from decimal import Decimal

import pytest

from loan_schedule.classifier import classify
from loan_schedule.data_models import ZERO, DayCountMethod, LoanInputs, PaymentFrequency
from loan_schedule.engine import recalculate
from loan_schedule.schedule import build_schedule
from loan_schedule.terms import load_terms


def _inputs(**overrides):
    values = dict(
        principal=Decimal("1000"),
        annual_rate=Decimal("0.05"),
        closing_date=date(2024, 1, 1),
        term_months=12,
        payment_frequency=PaymentFrequency.MONTHLY,
        day_count_method=DayCountMethod.ACTUAL,
        days_per_year=365,
        amortize=True,
    )
    values.update(overrides)
    return LoanInputs(**values)


@pytest.fixture
def make_inputs():
    """Factory for loan inputs: $1,000 at 5% over 12 months closing 2024-01-01."""
    return _inputs


@pytest.fixture
def make_terms():
    def factory(**overrides):
        terms, _ = load_terms(_inputs(**overrides))
        return terms

    return factory


@pytest.fixture
def make_rows():
    """Factory returning (terms, freshly recalculated rows)."""

    def factory(**overrides):
        terms, _ = load_terms(_inputs(**overrides))
        return terms, recalculate(build_schedule(terms), terms)

    return factory


def _pay_periods(rows, terms, count):
    rows = recalculate(rows, terms)
    for k in range(count):
        row = classify(rows).scheduled[k].row
        row.paid_on = row.due_date
        row.principal_paid = row.principal_due
        row.interest_paid = row.interest_due
        row.fees_paid = row.fees_due or ZERO
        row.total_paid = row.principal_paid + row.interest_paid + row.fees_paid
        rows = recalculate(rows, terms)
    return rows


@pytest.fixture
def pay_periods():
    """Pay the first ``count`` scheduled periods exactly as billed, one at a time."""
    return _pay_periods

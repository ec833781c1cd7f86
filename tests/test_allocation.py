"""
Test suite for the interest/principal due decision
"""

from datetime import date
from decimal import Decimal

from loan_schedule.allocation import allocate
from loan_schedule.data_models import PaymentFrequency, PeriodRow

ZERO = Decimal("0")


def call(terms, period, **kwargs):
    args = dict(
        is_final_period=False,
        interest_accrued=Decimal("4"),
        scheduled_interest=Decimal("5"),
        scheduled_principal=Decimal("80"),
        had_extra_payment_before=False,
        extra_payment_this_period=False,
        was_reamortized=False,
        stored_row=None,
        remaining_principal=Decimal("900"),
        outstanding_interest=Decimal("12"),
    )
    args.update(kwargs)
    is_final_period = args.pop("is_final_period")
    return allocate(period, is_final_period, terms, **args)


class TestSinglePeriod:
    def test_nothing_due_before_maturity(self, make_terms):
        terms = make_terms(payment_frequency=PaymentFrequency.SINGLE_PERIOD)
        assert call(terms, 1) == (ZERO, ZERO)

    def test_everything_due_at_maturity(self, make_terms):
        terms = make_terms(payment_frequency=PaymentFrequency.SINGLE_PERIOD)
        due = call(terms, 12, is_final_period=True)
        assert due.interest_due == Decimal("12")
        assert due.principal_due == Decimal("900")


class TestAmortizing:
    def test_scheduled_split_without_history(self, make_terms):
        due = call(make_terms(), 3)
        assert due == (Decimal("5"), Decimal("80"))

    def test_resplit_after_prepayment_keeps_total(self, make_terms):
        due = call(make_terms(), 3, had_extra_payment_before=True)
        assert due.interest_due == Decimal("4")
        assert due.principal_due == Decimal("81")

    def test_resplit_for_extra_payment_this_period(self, make_terms):
        due = call(make_terms(), 3, extra_payment_this_period=True)
        assert due.interest_due + due.principal_due == Decimal("85")

    def test_interest_capped_at_scheduled_payment(self, make_terms):
        due = call(make_terms(), 3, had_extra_payment_before=True, interest_accrued=Decimal("100"))
        assert due == (Decimal("85"), ZERO)

    def test_reamortized_row_uses_stored_values(self, make_terms):
        stored = PeriodRow(period=3, interest_due=Decimal("3"), principal_due=Decimal("60"))
        due = call(make_terms(), 3, was_reamortized=True, stored_row=stored)
        assert due == (Decimal("3"), Decimal("60"))

    def test_history_wins_over_stored_values(self, make_terms):
        stored = PeriodRow(period=3, interest_due=Decimal("3"), principal_due=Decimal("60"))
        due = call(make_terms(), 3, was_reamortized=True, stored_row=stored, had_extra_payment_before=True)
        assert due == (Decimal("4"), Decimal("81"))

    def test_prorated_period_zero_owes_accrued_interest(self, make_terms):
        terms = make_terms(prorate_first=True, closing_date=date(2024, 1, 15))
        assert call(terms, 0) == (Decimal("4"), ZERO)


class TestInterestOnly:
    def test_interest_each_period(self, make_terms):
        assert call(make_terms(amortize=False), 2) == (Decimal("4"), ZERO)

    def test_principal_at_maturity(self, make_terms):
        due = call(make_terms(amortize=False), 12, is_final_period=True)
        assert due == (Decimal("4"), Decimal("900"))

    def test_fractional_period_falls_through(self, make_terms):
        assert call(make_terms(amortize=False), Decimal("2.5")) == (Decimal("4"), ZERO)

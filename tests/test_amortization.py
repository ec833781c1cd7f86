"""
Test suite for the annuity solver
"""

from decimal import Decimal

import pytest

from loan_schedule.amortization import annuity_payment, solve


class TestAnnuityPayment:
    def test_standard_payment(self):
        payment = annuity_payment(Decimal("100000"), Decimal("0.05") / 12, 12)
        assert float(payment) == pytest.approx(8560.75, abs=0.01)

    def test_zero_rate_is_straight_line(self):
        assert annuity_payment(Decimal("1000"), Decimal("0"), 4) == Decimal("250")

    def test_non_positive_periods_rejected(self):
        with pytest.raises(ValueError):
            annuity_payment(Decimal("1000"), Decimal("0.01"), 0)


class TestSolve:
    def test_split_sums_to_principal(self):
        split = solve(Decimal("0.05") / 12, 12, Decimal("1000"))
        assert float(sum(split.principal)) == pytest.approx(1000, abs=1e-9)

    def test_each_period_totals_the_payment(self):
        split = solve(Decimal("0.01"), 6, Decimal("5000"))
        for k in range(1, 7):
            interest, principal = split.for_period(k)
            assert interest + principal == split.payment

    def test_first_interest_is_balance_times_rate(self):
        split = solve(Decimal("0.01"), 6, Decimal("5000"))
        assert split.for_period(1)[0] == Decimal("50.00")

    def test_interest_falls_and_principal_rises(self):
        split = solve(Decimal("0.004"), 24, Decimal("20000"))
        assert list(split.interest) == sorted(split.interest, reverse=True)
        assert list(split.principal) == sorted(split.principal)

    def test_out_of_range_periods_are_zero(self):
        split = solve(Decimal("0.01"), 3, Decimal("300"))
        assert split.for_period(0) == (0, 0)
        assert split.for_period(4) == (0, 0)

    def test_empty_split(self):
        split = solve(Decimal("0.01"), 0, Decimal("300"))
        assert split.interest == ()
        assert split.payment == 0

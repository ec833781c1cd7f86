"""Interest-due / principal-due decisions for a scheduled period.

The split depends on the loan's shape:

* single-period loans owe nothing until the final period, which owes all
  outstanding interest and the remaining principal;
* interest-only loans owe the period's accrued interest every period and the
  remaining principal at maturity;
* amortizing loans owe the annuity split, re-split against actually accrued
  interest once any principal has been prepaid so the scheduled payment
  amount is preserved.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Optional

from .data_models import ZERO, LoanTerms, PeriodNumber, PeriodRow


class DueAmounts(NamedTuple):
    interest_due: Decimal
    principal_due: Decimal


def allocate(
    period: PeriodNumber,
    is_final_period: bool,
    terms: LoanTerms,
    interest_accrued: Decimal,
    scheduled_interest: Decimal,
    scheduled_principal: Decimal,
    had_extra_payment_before: bool,
    extra_payment_this_period: bool,
    was_reamortized: bool,
    stored_row: Optional[PeriodRow],
    remaining_principal: Decimal,
    outstanding_interest: Decimal = ZERO,
) -> DueAmounts:
    """Decide the interest and principal due for one scheduled period.

    ``interest_accrued`` is the interest accrued during this period only, while
    ``outstanding_interest`` is the loan's unpaid interest balance; a
    single-period loan bills the latter at maturity. ``remaining_principal``
    is the balance after any extra payments made earlier in the period.
    """
    integer_period = isinstance(period, int)

    if terms.is_single_period:
        if is_final_period:
            return DueAmounts(outstanding_interest, remaining_principal)
        return DueAmounts(ZERO, ZERO)

    if terms.is_monthly and terms.amortize and integer_period and 1 <= period <= terms.term_months:
        scheduled_payment = scheduled_interest + scheduled_principal
        if was_reamortized and not extra_payment_this_period and not had_extra_payment_before:
            # due values were already written by a re-amortization
            return DueAmounts(stored_row.interest_due or ZERO, stored_row.principal_due or ZERO)
        if extra_payment_this_period or had_extra_payment_before:
            interest_due = min(interest_accrued, scheduled_payment)
            return DueAmounts(interest_due, scheduled_payment - interest_due)
        return DueAmounts(scheduled_interest, scheduled_principal)

    if terms.is_monthly and not terms.amortize and integer_period:
        if is_final_period:
            return DueAmounts(interest_accrued, remaining_principal)
        return DueAmounts(interest_accrued, ZERO)

    # prorated period 0 of an amortizing loan, or anything unrecognised
    return DueAmounts(interest_accrued, ZERO)

"""Closed-form annuity math for amortizing loans.

The level payment is

    payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

where ``P`` is the principal, ``i`` is the periodic interest rate and ``n``
is the number of payments. When the interest rate is zero, the payment
simplifies to ``P / n``. Each period's interest is the opening balance times
``i`` and the rest of the payment retires principal.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from .data_models import ZERO, AmortizationSplit


def annuity_payment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    """Return the level payment that retires ``principal`` over ``periods``.

    ``periods`` must be positive; callers check for empty schedules first.
    """
    if periods <= 0:
        raise ValueError("Number of periods must be positive")
    if rate == 0:
        return principal / Decimal(periods)
    factor = (1 + rate) ** periods
    return principal * (rate * factor) / (factor - 1)


def solve(rate: Decimal, total_periods: int, principal: Decimal) -> AmortizationSplit:
    """Split an annuity into per-period interest and principal portions.

    The result is indexed from period 1 (``split.for_period(1)``), so a
    re-amortized remainder is just a fresh annuity over the remaining count.
    An empty split is returned when there is nothing to amortize.
    """
    if total_periods <= 0:
        return AmortizationSplit(payment=ZERO, interest=(), principal=())
    payment = annuity_payment(principal, rate, total_periods)
    interest: List[Decimal] = []
    principal_parts: List[Decimal] = []
    balance = principal
    for _ in range(total_periods):
        interest_k = balance * rate
        principal_k = payment - interest_k
        balance -= principal_k
        interest.append(interest_k)
        principal_parts.append(principal_k)
    return AmortizationSplit(payment=payment, interest=tuple(interest), principal=tuple(principal_parts))

"""Normalization of user inputs into the terms of one recalculation pass.

The spreadsheet this schedule mirrors rewrites some inputs as soon as they are
read: an edge-day closing date cannot be prorated, and a single-period loan is
always actual-day, non-amortizing. :func:`load_terms` applies those rules,
finances the origination fee and prepaid interest into the principal, and
returns both the derived :class:`LoanTerms` and the normalized inputs so the
caller can write the forced values back.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Tuple

from .data_models import ZERO, DayCountMethod, LoanInputs, LoanTerms, PaymentFrequency
from .utils import days_between_inclusive, format_percent, is_edge_day, one_day_after, to_decimal

logger = logging.getLogger(__name__)


def normalize_inputs(inputs: LoanInputs) -> LoanInputs:
    """Apply the forced-value rules and return a (possibly) updated copy."""
    normalized = replace(
        inputs,
        payment_frequency=PaymentFrequency.parse(inputs.payment_frequency),
        day_count_method=DayCountMethod.parse(inputs.day_count_method),
    )
    if normalized.closing_date is not None and is_edge_day(normalized.closing_date):
        if normalized.prorate_first:
            logger.debug("Closing date %s is an edge day; prorate forced to No", normalized.closing_date)
        normalized = replace(normalized, prorate_first=False)
    if normalized.payment_frequency is PaymentFrequency.SINGLE_PERIOD:
        normalized = replace(normalized, day_count_method=DayCountMethod.ACTUAL, amortize=False)
    return normalized


def financed_prepaid_interest(inputs: LoanInputs, principal: Decimal) -> Decimal:
    """Prepaid interest financed into ``principal`` at closing.

    Interest on the grossed-up principal must itself be covered, which gives
    ``P * r * f / (1 - r * f)`` with ``f`` the fraction of a year from closing
    through the prepaid date. A zero denominator skips the adjustment.
    """
    rate = to_decimal(inputs.annual_rate)
    if inputs.prepaid_interest_date is None or not inputs.days_per_year or not rate:
        return ZERO
    day_count = days_between_inclusive(inputs.closing_date, inputs.prepaid_interest_date)
    if day_count <= 0:
        return ZERO
    fraction_of_year = Decimal(day_count) / Decimal(inputs.days_per_year)
    denominator = 1 - rate * fraction_of_year
    if denominator == 0:
        return ZERO
    return principal * rate * fraction_of_year / denominator


def load_terms(inputs: LoanInputs) -> Tuple[LoanTerms, LoanInputs]:
    """Return the normalized terms for ``inputs`` and the normalized inputs.

    Parameters
    ----------
    inputs: LoanInputs
        The input cells as read from the table. Missing numbers default to
        zero and a negative term becomes an empty schedule; nothing here
        raises for degenerate loans.

    Returns
    -------
    terms: LoanTerms
        Derived terms used by the schedule builder and the engine.
    normalized: LoanInputs
        ``inputs`` with defaults filled in, ready to be written back.
    """
    normalized = normalize_inputs(inputs)
    original_principal = to_decimal(normalized.principal)
    rate = to_decimal(normalized.annual_rate)
    fee_pct = to_decimal(normalized.origination_fee_pct)
    exit_fee_pct = to_decimal(normalized.exit_fee_pct)

    principal = original_principal
    financed_fee = ZERO
    if fee_pct > 0:
        financed_fee = principal * fee_pct
        principal += financed_fee

    prepaid = financed_prepaid_interest(normalized, principal)
    principal += prepaid

    prepaid_until = None
    if normalized.prepaid_interest_date is not None:
        prepaid_until = one_day_after(normalized.prepaid_interest_date)

    fee_display = normalized.origination_fee_display or (format_percent(fee_pct) if fee_pct > 0 else "")

    terms = LoanTerms(
        principal=principal,
        annual_rate=rate,
        closing_date=normalized.closing_date,
        term_months=max(int(normalized.term_months or 0), 0),
        payment_frequency=normalized.payment_frequency,
        day_count_method=normalized.day_count_method,
        days_per_year=normalized.days_per_year or None,
        prorate_first=normalized.prorate_first,
        amortize=normalized.amortize,
        prepaid_until=prepaid_until,
        original_principal=original_principal,
        origination_fee_pct=fee_pct,
        origination_fee_display=fee_display,
        exit_fee_pct=exit_fee_pct,
        financed_fee=financed_fee,
        financed_prepaid_interest=prepaid,
        exit_fee=exit_fee_pct * original_principal,
        recast=normalized.recast,
    )
    logger.debug(
        "Loaded terms: principal=%s rate=%s term=%s frequency=%s day_count=%s",
        terms.principal,
        terms.annual_rate,
        terms.term_months,
        terms.payment_frequency.value,
        terms.day_count_method.value,
    )
    return terms, normalized

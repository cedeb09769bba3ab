"""
Subsidy Utilities

Informational premium tax credit (subsidy) estimates for on-market
coverage. Estimates never influence plan selection or affordability.

Key concepts:
- FPL (Federal Poverty Level): household income as a percentage of FPL
  sets the applicable percentage
- SLCSP (Second Lowest Cost Silver Plan): the benchmark premium
- Subsidy = max(0, benchmark premium - expected monthly contribution)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Tuple

from ichra_quote.constants import (
    FPL_2025_BY_HOUSEHOLD_SIZE,
    FPL_2025_PER_ADDITIONAL_PERSON,
    ACA_APPLICABLE_PERCENTAGE_BRACKETS,
    ACA_SUBSIDY_FPL_CAP,
)
from ichra_quote.quote_types import Plan, SubsidyEstimate
from ichra_quote.utils import CENT

ZERO = Decimal("0.00")


# =============================================================================
# FPL CALCULATION
# =============================================================================

def get_fpl_for_household(household_size: int) -> Decimal:
    """
    Annual FPL for a household size (2025 table, +$5,380 per person above 8).
    """
    if household_size < 1:
        household_size = 1
    largest = max(FPL_2025_BY_HOUSEHOLD_SIZE)
    if household_size <= largest:
        return FPL_2025_BY_HOUSEHOLD_SIZE[household_size]
    return FPL_2025_BY_HOUSEHOLD_SIZE[largest] + (household_size - largest) * FPL_2025_PER_ADDITIONAL_PERSON


def fpl_percentage(household_income: Decimal, household_size: int) -> Decimal:
    """Household income as a percentage of FPL, rounded to 0.01"""
    fpl = get_fpl_for_household(household_size)
    return (Decimal(household_income) / fpl * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def applicable_percentage(fpl_pct: Decimal) -> Optional[Decimal]:
    """
    Percentage of income a household is expected to pay for the benchmark.

    Returns:
        0 / 2.0 / 4.0 / 6.0 / 8.5, or None above 400% FPL (no subsidy)
    """
    for upper_bound, pct in ACA_APPLICABLE_PERCENTAGE_BRACKETS:
        if fpl_pct <= upper_bound:
            return pct
    return None


# =============================================================================
# SUBSIDY ESTIMATE
# =============================================================================

def estimate_premium_tax_credit(benchmark_premium: Decimal, household_income: Decimal,
                                household_size: int) -> SubsidyEstimate:
    """
    Estimate the monthly premium tax credit.

    Args:
        benchmark_premium: Monthly SLCSP premium for the household
        household_income: Annual household income
        household_size: Persons in the tax household

    Returns:
        SubsidyEstimate (monthly_subsidy is 0 when not eligible)
    """
    fpl_pct = fpl_percentage(household_income, household_size)
    pct = applicable_percentage(fpl_pct)

    if pct is None or fpl_pct > ACA_SUBSIDY_FPL_CAP:
        return SubsidyEstimate(
            fpl_percentage=fpl_pct,
            applicable_percentage=None,
            expected_contribution=ZERO,
            benchmark_premium=benchmark_premium,
            monthly_subsidy=ZERO,
            is_eligible=False,
        )

    expected = (Decimal(household_income) * pct / 100 / 12).quantize(CENT, rounding=ROUND_HALF_UP)
    subsidy = max(ZERO, benchmark_premium - expected)

    return SubsidyEstimate(
        fpl_percentage=fpl_pct,
        applicable_percentage=pct,
        expected_contribution=expected,
        benchmark_premium=benchmark_premium,
        monthly_subsidy=subsidy,
        is_eligible=subsidy > 0,
    )


def find_benchmark_plan(priced_silver_plans: Sequence[Tuple[Plan, Decimal]]) -> Optional[Tuple[Plan, Decimal]]:
    """
    Pick the second-lowest-cost silver plan from (plan, premium) pairs.

    With a single silver plan, that plan is the benchmark. Ties keep
    catalog order.
    """
    if not priced_silver_plans:
        return None
    ordered = sorted(
        enumerate(priced_silver_plans),
        key=lambda item: (item[1][1], item[0]),
    )
    index = 1 if len(ordered) > 1 else 0
    return ordered[index][1]

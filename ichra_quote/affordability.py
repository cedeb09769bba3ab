"""
Affordability Evaluator

An ICHRA offer is "affordable" for a member when the member's share of the
premium (premium minus employer contribution, floored at zero) does not
exceed a fixed percentage of 1/12 of annual household income.

Default threshold: 9.5% (ICHRA_AFFORDABILITY_THRESHOLD overrides it).
"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional

from ichra_quote.constants import (
    AFFORDABILITY_THRESHOLD_DEFAULT,
    COMPLIANCE_MINOR_SHORTFALL,
    COMPLIANCE_MODERATE_SHORTFALL,
)
from ichra_quote.quote_types import AffordabilityResult, Member
from ichra_quote.utils import CENT

ZERO = Decimal("0.00")

# Compliance status labels
STATUS_COMPLIANT = "compliant"
STATUS_MINOR = "minor"
STATUS_MODERATE = "moderate"
STATUS_MAJOR = "major"


def employee_share(premium: Decimal, contribution: Decimal) -> Decimal:
    """Member's monthly cost: premium minus contribution, floored at zero"""
    return max(ZERO, premium - contribution)


def exact_threshold(household_income: Decimal,
                    threshold_pct: Decimal = AFFORDABILITY_THRESHOLD_DEFAULT) -> Decimal:
    """Unrounded monthly threshold; affordability is decided against this value"""
    return threshold_pct * household_income / 12


def evaluate_affordability(member: Member, contribution: Decimal, candidate_premium: Decimal,
                           threshold_pct: Optional[Decimal] = None) -> AffordabilityResult:
    """
    Test one member/plan/contribution combination.

    Args:
        member: Member whose household income sets the threshold
        contribution: Monthly employer contribution
        candidate_premium: Monthly premium of the plan being tested
        threshold_pct: Fraction of monthly income (default 0.095)

    Returns:
        AffordabilityResult with margin = threshold - employee_share.
        The share is compared with the unrounded threshold; only the
        reported threshold and margin are rounded to the cent.

    Example:
        Income $65,000, contribution $450, premium $500
        - employee_share = $50
        - threshold = 0.095 * 65000 / 12 = $514.58
        - is_affordable = True, margin = $464.58
    """
    if threshold_pct is None:
        threshold_pct = AFFORDABILITY_THRESHOLD_DEFAULT

    share = employee_share(candidate_premium, contribution)
    exact = exact_threshold(member.household_income, threshold_pct)

    return AffordabilityResult(
        is_affordable=share <= exact,
        employee_share=share,
        threshold=exact.quantize(CENT, rounding=ROUND_HALF_UP),
        margin=(exact - share).quantize(CENT, rounding=ROUND_HALF_UP),
    )


def minimum_affordable_contribution(member: Member, premium: Decimal,
                                    threshold_pct: Optional[Decimal] = None) -> Decimal:
    """
    Lowest employer contribution that makes a premium affordable.

    ER contribution >= premium - threshold, rounded up to the cent and
    floored at zero.
    """
    if threshold_pct is None:
        threshold_pct = AFFORDABILITY_THRESHOLD_DEFAULT
    exact = exact_threshold(member.household_income, threshold_pct)
    return max(ZERO, (premium - exact).quantize(CENT, rounding=ROUND_CEILING))


def compliance_status(result: AffordabilityResult) -> str:
    """
    Bucket an affordability result by the size of its shortfall.

    Returns:
        'compliant', 'minor' (short by <= $50), 'moderate' (<= $150) or 'major'
    """
    if result.is_affordable:
        return STATUS_COMPLIANT
    shortfall = -result.margin
    if shortfall <= COMPLIANCE_MINOR_SHORTFALL:
        return STATUS_MINOR
    if shortfall <= COMPLIANCE_MODERATE_SHORTFALL:
        return STATUS_MODERATE
    return STATUS_MAJOR

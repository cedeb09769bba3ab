"""
Rating Table Resolver
Resolves the monthly premium one plan charges one member.

Age-rated plans are looked up by integer age (ages above 65 use the age-65
rate) and tobacco status. Family-rated plans charge a fixed price per
family-structure tier. A plan with both tables is age rated for single
coverage and structure rated for households.
"""

import logging
from decimal import Decimal
from typing import Optional

from ichra_quote.constants import (
    CHILD_RATING_AGE_MAX,
    TIER_INDIVIDUAL,
    TIER_INDIVIDUAL_TOBACCO,
    TIER_COUPLE,
    TIER_FAMILY,
    TIER_SINGLE_PARENT,
    TIER_CHILD_ONLY,
    TIER_FIXED,
)
from ichra_quote.exceptions import RatingDataError
from ichra_quote.quote_types import Plan, FamilyTierTable

logger = logging.getLogger(__name__)


def determine_family_tier(age: int, family_size: int, has_spouse: bool = False,
                          num_children: Optional[int] = None) -> str:
    """
    Map a household's composition to a family-structure tier key.

    Args:
        age: Age of the primary member
        family_size: Total covered persons including the member
        has_spouse: Whether a spouse is covered
        num_children: Covered children (default: everyone who is not the
            member or spouse)

    Returns:
        One of individual, couple, family, single_parent, child_only
    """
    if family_size < 1:
        raise ValueError(f"Family size must be at least 1, got {family_size}")

    if num_children is None:
        num_children = max(0, family_size - 1 - (1 if has_spouse else 0))

    if has_spouse and num_children > 0:
        return TIER_FAMILY
    if has_spouse:
        return TIER_COUPLE
    if num_children > 0:
        return TIER_SINGLE_PARENT
    if age <= CHILD_RATING_AGE_MAX:
        return TIER_CHILD_ONLY
    return TIER_INDIVIDUAL


def _tier_price(table: FamilyTierTable, tier: str, tobacco: bool) -> Optional[Decimal]:
    """Tier price; a flat fixed price applies to every tier"""
    fixed = table.get(TIER_FIXED)
    if fixed is not None:
        return fixed
    if tier == TIER_INDIVIDUAL and tobacco:
        amount = table.get(TIER_INDIVIDUAL_TOBACCO)
        if amount is not None:
            return amount
    return table.get(tier)


def resolve_premium(plan: Plan, age: int, tobacco: bool = False, family_size: int = 1,
                    has_spouse: bool = False, num_children: Optional[int] = None) -> Optional[Decimal]:
    """
    Resolve the monthly premium a plan charges a member.

    Args:
        plan: Candidate plan
        age: Member age as of the reference date
        tobacco: Whether the member uses tobacco
        family_size: Total covered persons including the member
        has_spouse: Whether a spouse is covered
        num_children: Covered children (optional)

    Returns:
        Monthly premium, or None when the plan has no tier for this
        household (the plan is ineligible for the member)

    Raises:
        RatingDataError: If the plan has no rate table or the looked-up
            rate is negative
    """
    if plan.age_rates is None and plan.family_rates is None:
        raise RatingDataError(f"Plan {plan.plan_id} has no rate table", plan_id=plan.plan_id)

    use_age_table = plan.age_rates is not None and (family_size == 1 or plan.family_rates is None)

    if use_age_table:
        premium = plan.age_rates.rate_for(age, tobacco)
    else:
        tier = determine_family_tier(age, family_size, has_spouse, num_children)
        premium = _tier_price(plan.family_rates, tier, tobacco)
        if premium is None:
            logger.debug(f"RATING: Plan {plan.plan_id} has no '{tier}' tier, ineligible")
            return None

    if premium < 0:
        raise RatingDataError(
            f"Negative premium {premium} for age {age} in plan {plan.plan_id}",
            plan_id=plan.plan_id,
        )
    return premium


def resolve_member_premium(plan: Plan, member, reference_date) -> Optional[Decimal]:
    """resolve_premium() for a Member as of a reference date"""
    return resolve_premium(
        plan,
        age=member.age_on(reference_date),
        tobacco=member.tobacco,
        family_size=member.family_size,
        has_spouse=member.has_spouse,
        num_children=member.num_children,
    )

"""
Contribution Resolver
Resolves the monthly employer contribution owed to one member under their
benefit class.

An age band that contains the member's age overrides the class's base
employee contribution. Dependents are funded through family-tier plan
pricing, not by stacking the class's spouse/children amounts on top.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ichra_quote.exceptions import ConfigurationError
from ichra_quote.quote_types import AgeBand, BenefitClass, Member

logger = logging.getLogger(__name__)


def matching_bands(benefit_class: BenefitClass, age: int) -> List[AgeBand]:
    return [band for band in benefit_class.age_bands if band.contains(age)]


def resolve_contribution(benefit_class: BenefitClass, member: Member,
                         reference_date: date) -> Decimal:
    """
    Resolve a member's monthly employer contribution.

    Args:
        benefit_class: The member's assigned class
        member: Member being quoted
        reference_date: Plan effective date the age is computed at

    Returns:
        Monthly contribution (>= 0)

    Raises:
        ConfigurationError: If more than one age band contains the age
    """
    age = member.age_on(reference_date)
    matches = matching_bands(benefit_class, age)

    if len(matches) > 1:
        labels = ", ".join(band.label for band in matches)
        raise ConfigurationError(
            f"Class {benefit_class.class_id} has {len(matches)} age bands matching age {age} ({labels})",
            class_id=benefit_class.class_id,
        )

    if matches:
        return matches[0].employee_contribution
    return benefit_class.employee_contribution


def base_contribution(benefit_class: BenefitClass) -> Decimal:
    """Fallback contribution used when a class's bands cannot be trusted"""
    return benefit_class.employee_contribution


def validate_age_bands(benefit_class: BenefitClass) -> List[str]:
    """
    Check a class's age bands for malformed and overlapping ranges.

    Returns:
        List of error messages (empty if the bands are valid)
    """
    errors = []
    bands = benefit_class.age_bands

    for band in bands:
        if band.min_age < 0 or band.max_age < 0:
            errors.append(f"Age band {band.label} has a negative age")
        if band.min_age > band.max_age:
            errors.append(f"Age band {band.label} has min age greater than max age")
        if band.employee_contribution < 0 or band.dependent_contribution < 0:
            errors.append(f"Age band {band.label} has a negative contribution")

    ordered = sorted(bands, key=lambda b: (b.min_age, b.max_age))
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if second.min_age > first.max_age:
                break
            errors.append(f"Age bands {first.label} and {second.label} overlap")

    if benefit_class.employee_contribution < 0:
        errors.append("Base employee contribution is negative")

    return errors


def check_age_bands(benefit_class: BenefitClass) -> Optional[ConfigurationError]:
    """Return a ConfigurationError describing invalid bands, or None"""
    errors = validate_age_bands(benefit_class)
    if not errors:
        return None
    return ConfigurationError(
        f"Class {benefit_class.class_id}: " + "; ".join(errors),
        class_id=benefit_class.class_id,
    )

"""
Shared builders for quote engine tests.
"""

from datetime import date
from decimal import Decimal

from ichra_quote.constants import RATE_TABLE_SIZE
from ichra_quote.quote_types import (
    AgeBand,
    AgeRateTable,
    BenefitClass,
    FamilyTierTable,
    Member,
    Plan,
    PriorCoverage,
    QuoteInputs,
    RatePair,
)

REFERENCE_DATE = date(2026, 1, 1)


def flat_age_table(premium, tobacco_premium=None, plan_id="P"):
    """Age table charging the same premium at every age"""
    regular = Decimal(str(premium))
    tobacco = Decimal(str(tobacco_premium)) if tobacco_premium is not None else regular
    return AgeRateTable(rates=tuple(RatePair(regular, tobacco) for _ in range(RATE_TABLE_SIZE)),
                        plan_id=plan_id)


def stepped_age_table(base=200, step=10, tobacco_surcharge=50, plan_id="P"):
    """Age table where the premium rises by `step` per year of age"""
    return AgeRateTable.from_columns(
        [base + step * age for age in range(RATE_TABLE_SIZE)],
        [base + step * age + tobacco_surcharge for age in range(RATE_TABLE_SIZE)],
        plan_id=plan_id,
    )


def make_plan(plan_id, premium=None, tobacco_premium=None, family_rates=None, **kwargs):
    """Plan with a flat age table (premium) and/or a family table (dict of tier -> price)"""
    age_rates = kwargs.pop('age_rates', None)
    if age_rates is None and premium is not None:
        age_rates = flat_age_table(premium, tobacco_premium, plan_id)
    family = None
    if family_rates is not None:
        family = FamilyTierTable(tiers=tuple(family_rates.items()), plan_id=plan_id)
    kwargs.setdefault('name', f"Plan {plan_id}")
    kwargs.setdefault('carrier', "Acme Health")
    kwargs.setdefault('metal_level', "silver")
    kwargs.setdefault('plan_type', "HMO")
    return Plan(plan_id=plan_id, age_rates=age_rates, family_rates=family, **kwargs)


def make_member(member_id="M1", age=34, income=65000, class_id="C1", prior_er=0, prior_ee=0,
                **kwargs):
    return Member(
        member_id=member_id,
        first_name=kwargs.pop('first_name', "Test"),
        last_name=kwargs.pop('last_name', member_id),
        age=age,
        household_income=income,
        class_id=class_id,
        prior_coverage=PriorCoverage(employer_contribution=prior_er, member_contribution=prior_ee),
        **kwargs,
    )


def make_class(class_id="C1", contribution=450, bands=(), **kwargs):
    return BenefitClass(
        class_id=class_id,
        name=kwargs.pop('name', f"Class {class_id}"),
        employee_contribution=contribution,
        age_bands=tuple(AgeBand(lo, hi, amount) for lo, hi, amount in bands),
        **kwargs,
    )


def make_inputs(members, classes, plans, **kwargs):
    kwargs.setdefault('reference_date', REFERENCE_DATE)
    return QuoteInputs(members=tuple(members), classes=tuple(classes), plans=tuple(plans), **kwargs)

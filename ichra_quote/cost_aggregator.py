"""
Cost Aggregator
Rolls per-member outcomes up into a GroupSummary.

Cost and savings totals cover resolved members only; unresolved members
are counted separately. Premium distributions describe the whole
candidate plan set, not just the plans members selected.
"""

import logging
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ichra_quote.constants import SAVINGS_RANKING_SIZE
from ichra_quote.exceptions import InvariantViolation
from ichra_quote.quote_types import (
    GroupSummary,
    MemberOutcome,
    Plan,
    PremiumDistribution,
    SelectedPlanSummary,
)
from ichra_quote.utils import CENT, money_sum

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.0001")


def _average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return Decimal("0.00")
    return (total / count).quantize(CENT, rounding=ROUND_HALF_UP)


def check_outcome_members(outcomes: Sequence[MemberOutcome], member_ids: Optional[Iterable[str]] = None):
    """
    Raises:
        InvariantViolation: If an outcome repeats a member, or references a
            member outside member_ids
    """
    known = set(member_ids) if member_ids is not None else None
    seen = set()
    for outcome in outcomes:
        if outcome.member_id in seen:
            raise InvariantViolation(f"Duplicate outcome for member {outcome.member_id}")
        if known is not None and outcome.member_id not in known:
            raise InvariantViolation(f"Outcome references unknown member {outcome.member_id}")
        seen.add(outcome.member_id)


# =============================================================================
# DISTRIBUTIONS
# =============================================================================

def premium_distribution(plans: Sequence[Plan], key_func, label_func) -> Tuple[PremiumDistribution, ...]:
    """
    Count/min/max/average reference premium per group, sorted by key.

    Plans without a reference premium are left out.
    """
    groups: Dict[str, List[Decimal]] = {}
    labels: Dict[str, str] = {}
    for plan in plans:
        premium = plan.reference_premium
        if premium is None:
            continue
        key = key_func(plan)
        groups.setdefault(key, []).append(premium)
        labels.setdefault(key, label_func(plan))

    return tuple(
        PremiumDistribution(
            key=key,
            label=labels[key],
            plan_count=len(premiums),
            min_premium=min(premiums),
            max_premium=max(premiums),
            average_premium=_average(money_sum(premiums), len(premiums)),
        )
        for key, premiums in sorted(groups.items())
    )


def carrier_distribution(plans: Sequence[Plan]) -> Tuple[PremiumDistribution, ...]:
    return premium_distribution(
        plans,
        key_func=lambda p: p.carrier_key,
        label_func=lambda p: p.carrier or "Unknown Carrier",
    )


def metal_level_distribution(plans: Sequence[Plan]) -> Tuple[PremiumDistribution, ...]:
    return premium_distribution(
        plans,
        key_func=lambda p: p.metal_level or "unknown",
        label_func=lambda p: (p.metal_level or "unknown").replace("_", " ").title(),
    )


def selected_plan_summary(resolved: Sequence[MemberOutcome]) -> Tuple[SelectedPlanSummary, ...]:
    """Members per selected plan with premium and contribution totals, by plan id"""
    by_plan: Dict[str, List[MemberOutcome]] = OrderedDict()
    for outcome in resolved:
        by_plan.setdefault(outcome.plan_id, []).append(outcome)

    rows = []
    for plan_id in sorted(by_plan):
        members = by_plan[plan_id]
        plan = members[0].plan
        total_premium = money_sum(o.premium for o in members)
        rows.append(SelectedPlanSummary(
            plan_id=plan_id,
            plan_name=plan.name,
            carrier=plan.carrier,
            metal_level=plan.metal_level,
            member_count=len(members),
            total_premium=total_premium,
            total_employer_contribution=money_sum(o.contribution for o in members),
            total_member_contribution=money_sum(o.out_of_pocket for o in members),
            average_premium=_average(total_premium, len(members)),
        ))
    return tuple(rows)


def savings_rankings(resolved: Sequence[MemberOutcome],
                     size: int = SAVINGS_RANKING_SIZE) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    Member ids with the largest savings and the largest cost increases.

    Equal savings keep outcome order.
    """
    gains = sorted((o for o in resolved if o.savings > 0), key=lambda o: -o.savings)
    losses = sorted((o for o in resolved if o.savings < 0), key=lambda o: o.savings)
    return (
        tuple(o.member_id for o in gains[:size]),
        tuple(o.member_id for o in losses[:size]),
    )


# =============================================================================
# AGGREGATE
# =============================================================================

def aggregate(outcomes: Sequence[MemberOutcome], candidate_plans: Sequence[Plan],
              member_ids: Optional[Iterable[str]] = None) -> GroupSummary:
    """
    Build the group summary for one pass.

    Args:
        outcomes: One outcome per member, in roster order
        candidate_plans: Filtered candidate plans (for distributions)
        member_ids: Roster member ids; when given every outcome must
            reference one of them

    Returns:
        GroupSummary

    Raises:
        InvariantViolation: On duplicate or unknown members
    """
    check_outcome_members(outcomes, member_ids)

    resolved = [o for o in outcomes if o.is_resolved]
    unresolved_count = len(outcomes) - len(resolved)

    total_employer = money_sum(o.contribution for o in resolved)
    total_employee = money_sum(o.out_of_pocket for o in resolved)
    total_prior = money_sum(o.prior_total_cost for o in resolved)
    total_prior_employer = money_sum(o.prior_employer_cost for o in resolved)
    total_prior_member = money_sum(o.prior_member_cost for o in resolved)
    total_new = money_sum(o.new_total_cost for o in resolved)
    total_savings = money_sum(o.savings for o in resolved)
    employer_savings = total_prior_employer - total_employer
    member_savings = total_prior_member - total_employee

    if total_new != total_employer + total_employee or total_savings != total_prior - total_new:
        raise InvariantViolation(
            f"Aggregation mismatch: new {total_new} vs employer {total_employer} + "
            f"employee {total_employee}; savings {total_savings} vs prior {total_prior} - new {total_new}"
        )
    if employer_savings + member_savings != total_savings:
        raise InvariantViolation(
            f"Aggregation mismatch: employer savings {employer_savings} + member savings "
            f"{member_savings} vs total savings {total_savings}"
        )

    affordable = sum(1 for o in resolved if o.affordability is not None and o.affordability.is_affordable)
    compliance_rate = None
    if resolved:
        compliance_rate = (Decimal(affordable) / Decimal(len(resolved))).quantize(
            RATE_PRECISION, rounding=ROUND_HALF_UP
        )

    best, worst = savings_rankings(resolved)

    return GroupSummary(
        total_members=len(outcomes),
        resolved_count=len(resolved),
        unresolved_count=unresolved_count,
        total_employer_cost=total_employer,
        total_employee_cost=total_employee,
        total_prior_cost=total_prior,
        total_prior_employer_cost=total_prior_employer,
        total_prior_member_cost=total_prior_member,
        total_new_cost=total_new,
        total_savings=total_savings,
        employer_savings=employer_savings,
        member_savings=member_savings,
        average_savings_per_member=_average(total_savings, len(resolved)),
        members_with_savings=sum(1 for o in resolved if o.savings > 0),
        members_with_increase=sum(1 for o in resolved if o.savings < 0),
        affordable_count=affordable,
        compliance_rate=compliance_rate,
        carrier_distribution=carrier_distribution(candidate_plans),
        metal_level_distribution=metal_level_distribution(candidate_plans),
        selected_plans=selected_plan_summary(resolved),
        best_savings_member_ids=best,
        worst_savings_member_ids=worst,
    )


# =============================================================================
# TABULAR VIEWS
# =============================================================================

OUTCOME_COLUMNS = [
    'member_id', 'member_name', 'class_id', 'status', 'plan_id', 'plan_name',
    'carrier', 'metal_level', 'contribution', 'premium', 'out_of_pocket',
    'prior_total_cost', 'new_total_cost', 'savings', 'annual_savings',
    'is_affordable', 'affordability_margin', 'candidate_count',
    'unresolved_reason', 'monthly_subsidy',
]

MONEY_COLUMNS = [
    'contribution', 'premium', 'out_of_pocket', 'prior_total_cost',
    'new_total_cost', 'savings', 'annual_savings', 'affordability_margin',
    'monthly_subsidy',
]


def outcomes_to_dataframe(outcomes: Sequence[MemberOutcome]) -> pd.DataFrame:
    """
    Member outcomes as a DataFrame for detail views.

    Money columns are floats (NaN for unresolved members).
    """
    df = pd.DataFrame([o.to_dict() for o in outcomes], columns=OUTCOME_COLUMNS)
    for col in MONEY_COLUMNS:
        df[col] = df[col].apply(lambda v: float(v) if v is not None else np.nan).astype(float)
    return df


def distribution_to_dataframe(distribution: Sequence[PremiumDistribution]) -> pd.DataFrame:
    """Premium distribution rows as a DataFrame (one row per group)"""
    return pd.DataFrame(
        [
            {
                'key': d.key,
                'label': d.label,
                'plan_count': d.plan_count,
                'min_premium': float(d.min_premium),
                'max_premium': float(d.max_premium),
                'average_premium': float(d.average_premium),
            }
            for d in distribution
        ],
        columns=['key', 'label', 'plan_count', 'min_premium', 'max_premium', 'average_premium'],
    )

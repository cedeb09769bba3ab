"""
Optimal Plan Selector
Picks, per member, the candidate plan with the lowest member out-of-pocket.

Ranking key (lowest wins):
    1. out-of-pocket = max(0, premium - contribution)
    2. premium
    3. deductible
    4. catalog order

Per-plan rating errors exclude that plan; a class configuration error
falls back to the base contribution. Both are recorded on the outcome.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from ichra_quote.affordability import evaluate_affordability, employee_share
from ichra_quote.constants import DEFAULT_REFERENCE_DATE
from ichra_quote.contribution import resolve_contribution, base_contribution
from ichra_quote.exceptions import (
    ConfigurationError,
    InvariantViolation,
    NoCandidateError,
    RatingDataError,
)
from ichra_quote.quote_types import (
    BenefitClass,
    DataIssue,
    Member,
    MemberOutcome,
    OutcomeStatus,
    Plan,
)
from ichra_quote.rating import resolve_member_premium

logger = logging.getLogger(__name__)

Pricer = Callable[[Plan, Member], Optional[Decimal]]

# Unresolved reasons
REASON_NO_CANDIDATES = "no plans match the current filters"
REASON_NO_ELIGIBLE = "no candidate plan can be priced for this member"
REASON_UNKNOWN_CLASS = "member is not assigned to a known benefit class"


def check_unique_plan_ids(candidate_plans: Sequence[Plan]):
    """
    Raises:
        InvariantViolation: If two candidates share a plan id (catalog-order
            tie-break would be ambiguous)
    """
    seen = set()
    for plan in candidate_plans:
        if plan.plan_id in seen:
            raise InvariantViolation(f"Duplicate plan id {plan.plan_id} in candidate set")
        seen.add(plan.plan_id)


def _unresolved(member: Member, reason: str, contribution: Optional[Decimal] = None,
                candidate_count: int = 0, excluded: Tuple[str, ...] = (),
                issues: Tuple[DataIssue, ...] = ()) -> MemberOutcome:
    return MemberOutcome(
        member_id=member.member_id,
        member_name=member.display_name,
        class_id=member.class_id,
        status=OutcomeStatus.UNRESOLVED,
        prior_total_cost=member.prior_coverage.total_cost,
        prior_employer_cost=member.prior_coverage.employer_contribution,
        prior_member_cost=member.prior_coverage.member_contribution,
        contribution=contribution,
        unresolved_reason=reason,
        candidate_count=candidate_count,
        excluded_plan_ids=excluded,
        issues=issues,
    )


def rank_candidates(member: Member, candidate_plans: Sequence[Plan], contribution: Decimal,
                    pricer: Pricer) -> Tuple[List[Tuple[tuple, Plan, Decimal]], List[str], List[DataIssue]]:
    """
    Price every candidate and sort by the selection key.

    Returns:
        (ranked [(key, plan, premium)], excluded plan ids, rating issues)
    """
    ranked = []
    excluded = []
    issues = []

    for index, plan in enumerate(candidate_plans):
        try:
            premium = pricer(plan, member)
        except RatingDataError as e:
            excluded.append(plan.plan_id)
            issues.append(DataIssue.rating(plan.plan_id, str(e)))
            continue

        if premium is None:
            excluded.append(plan.plan_id)
            continue

        out_of_pocket = employee_share(premium, contribution)
        key = (out_of_pocket, premium, plan.deductible, index)
        ranked.append((key, plan, premium))

    ranked.sort(key=lambda item: item[0])
    return ranked, excluded, issues


def _choose(member: Member, candidate_plans: Sequence[Plan], contribution: Decimal, pricer: Pricer):
    ranked, excluded, issues = rank_candidates(member, candidate_plans, contribution, pricer)
    if not ranked:
        reason = REASON_NO_CANDIDATES if not candidate_plans else REASON_NO_ELIGIBLE
        raise NoCandidateError(reason, member_id=member.member_id,
                               excluded_plan_ids=excluded, issues=issues)
    _, plan, premium = ranked[0]
    return plan, premium, tuple(excluded), tuple(issues)


def select_best_plan(member: Member, candidate_plans: Sequence[Plan],
                     benefit_class: Optional[BenefitClass],
                     reference_date: Optional[date] = None,
                     threshold_pct: Optional[Decimal] = None,
                     pricer: Optional[Pricer] = None) -> MemberOutcome:
    """
    Select the best candidate plan for one member.

    Args:
        member: Member being quoted
        candidate_plans: Filtered plans, in catalog order
        benefit_class: The member's class (None if the class is unknown)
        reference_date: Date ages are computed at
        threshold_pct: Affordability threshold fraction
        pricer: Premium lookup (plan, member) -> premium; defaults to the
            rating resolver

    Returns:
        MemberOutcome, resolved or unresolved. Never raises for per-member
        data problems.

    Raises:
        InvariantViolation: If candidate plan ids are not unique
    """
    if reference_date is None:
        reference_date = DEFAULT_REFERENCE_DATE
    if pricer is None:
        def pricer(plan, m):
            return resolve_member_premium(plan, m, reference_date)

    check_unique_plan_ids(candidate_plans)

    if benefit_class is None:
        issue = DataIssue.configuration(
            member.class_id or "",
            f"Member {member.member_id} references unknown benefit class {member.class_id!r}",
        )
        return _unresolved(member, REASON_UNKNOWN_CLASS, issues=(issue,))

    try:
        member.age_on(reference_date)
    except ValueError as e:
        return _unresolved(member, str(e))

    issues = []
    try:
        contribution = resolve_contribution(benefit_class, member, reference_date)
    except ConfigurationError as e:
        logger.warning(f"CONTRIBUTION: {e}; using base contribution for member {member.member_id}")
        contribution = base_contribution(benefit_class)
        issues.append(DataIssue.configuration(benefit_class.class_id, str(e)))

    try:
        plan, premium, excluded, rating_issues = _choose(member, candidate_plans, contribution, pricer)
    except NoCandidateError as e:
        return _unresolved(
            member,
            str(e),
            contribution=contribution,
            candidate_count=len(candidate_plans),
            excluded=e.excluded_plan_ids,
            issues=tuple(issues) + e.issues,
        )

    out_of_pocket = employee_share(premium, contribution)
    new_total = contribution + out_of_pocket
    prior_total = member.prior_coverage.total_cost

    return MemberOutcome(
        member_id=member.member_id,
        member_name=member.display_name,
        class_id=member.class_id,
        status=OutcomeStatus.RESOLVED,
        prior_total_cost=prior_total,
        prior_employer_cost=member.prior_coverage.employer_contribution,
        prior_member_cost=member.prior_coverage.member_contribution,
        contribution=contribution,
        plan=plan,
        premium=premium,
        out_of_pocket=out_of_pocket,
        new_total_cost=new_total,
        savings=prior_total - new_total,
        affordability=evaluate_affordability(member, contribution, premium, threshold_pct),
        candidate_count=len(candidate_plans),
        excluded_plan_ids=excluded,
        issues=tuple(issues) + rating_issues,
    )

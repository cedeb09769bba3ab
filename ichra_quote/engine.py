"""
Quote Engine - one recomputation pass

recompute(inputs) runs Filter -> Select -> Aggregate over an immutable
QuoteInputs bundle and returns a complete QuoteResult. The pass holds no
state beyond its own snapshot, so any number of passes may run at once.

Member evaluations are independent; large passes evaluate members in
chunks on a thread pool. A cancel event, when given, is checked between
chunks.
"""

import logging
import time
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from ichra_quote.config import EngineSettings
from ichra_quote.constants import MEMBER_CHUNK_SIZE
from ichra_quote.contribution import check_age_bands
from ichra_quote.cost_aggregator import aggregate
from ichra_quote.exceptions import PassCancelled, RatingDataError
from ichra_quote.plan_filter import filter_plans, filter_stats
from ichra_quote.plan_selector import select_best_plan
from ichra_quote.quote_types import (
    BenefitClass,
    DataIssue,
    Member,
    MemberOutcome,
    Plan,
    QuoteInputs,
    QuoteResult,
)
from ichra_quote.rating import resolve_member_premium
from ichra_quote.subsidy_utils import estimate_premium_tax_credit, find_benchmark_plan

logger = logging.getLogger(__name__)

BENCHMARK_METAL_LEVEL = "silver"


# =============================================================================
# CATALOG / CLASS PREPARATION
# =============================================================================

def prepare_catalog(plans: Sequence[Plan]) -> Tuple[List[Plan], List[DataIssue]]:
    """
    Drop plans that cannot be rated in any pass.

    Later duplicates of a plan id and plans with no rate table are
    excluded and reported.
    """
    usable = []
    issues = []
    seen = set()
    for plan in plans:
        if plan.plan_id in seen:
            issues.append(DataIssue.rating(plan.plan_id, f"Duplicate plan id {plan.plan_id} in catalog"))
            continue
        seen.add(plan.plan_id)
        if not plan.has_rate_data:
            issues.append(DataIssue.rating(plan.plan_id, f"Plan {plan.plan_id} has no rate table"))
            continue
        usable.append(plan)
    return usable, issues


def validate_classes(classes: Sequence[BenefitClass]) -> List[DataIssue]:
    """One configuration issue per class with malformed or overlapping bands"""
    issues = []
    for benefit_class in classes:
        error = check_age_bands(benefit_class)
        if error is not None:
            issues.append(DataIssue.configuration(benefit_class.class_id, str(error)))
    return issues


# =============================================================================
# MEMBER EVALUATION
# =============================================================================

class PremiumMemo:
    """
    Premium lookups memoized for one chunk of one pass.

    Keyed by plan and the rating-relevant member attributes; rating errors
    are memoized too so each bad plan is priced once per chunk.
    """

    def __init__(self, reference_date):
        self.reference_date = reference_date
        self._cache: Dict[tuple, tuple] = {}

    def __call__(self, plan: Plan, member: Member) -> Optional[Decimal]:
        key = (
            plan.plan_id,
            member.age_on(self.reference_date),
            member.tobacco,
            member.family_size,
            member.has_spouse,
            member.num_children,
        )
        cached = self._cache.get(key)
        if cached is None:
            try:
                cached = (resolve_member_premium(plan, member, self.reference_date), None)
            except RatingDataError as e:
                cached = (None, e)
            self._cache[key] = cached
        premium, error = cached
        if error is not None:
            raise error
        return premium


def _attach_subsidy(outcome: MemberOutcome, member: Member, silver_plans: Sequence[Plan],
                    pricer: PremiumMemo) -> MemberOutcome:
    priced = []
    for plan in silver_plans:
        try:
            premium = pricer(plan, member)
        except RatingDataError:
            # Benchmark considers rateable silver plans only
            continue
        if premium is not None:
            priced.append((plan, premium))

    benchmark = find_benchmark_plan(priced)
    if benchmark is None:
        return outcome

    estimate = estimate_premium_tax_credit(benchmark[1], member.household_income, member.family_size)
    return replace(outcome, subsidy=estimate)


def evaluate_chunk(members: Sequence[Member], candidates: Sequence[Plan],
                   classes: Dict[str, BenefitClass], settings: EngineSettings,
                   reference_date, silver_plans: Optional[Sequence[Plan]] = None,
                   cancel_event: Optional[threading.Event] = None) -> List[MemberOutcome]:
    """Select plans for a run of members with a shared premium memo"""
    if cancel_event is not None and cancel_event.is_set():
        raise PassCancelled("Pass superseded before chunk started")

    pricer = PremiumMemo(reference_date)
    outcomes = []
    for member in members:
        outcome = select_best_plan(
            member,
            candidates,
            classes.get(member.class_id),
            reference_date=reference_date,
            threshold_pct=settings.affordability_threshold,
            pricer=pricer,
        )
        if silver_plans is not None and outcome.is_resolved:
            outcome = _attach_subsidy(outcome, member, silver_plans, pricer)
        outcomes.append(outcome)
    return outcomes


def _chunks(items: Sequence, size: int) -> List[Sequence]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def evaluate_members(members: Sequence[Member], candidates: Sequence[Plan],
                     classes: Dict[str, BenefitClass], settings: EngineSettings,
                     reference_date, silver_plans: Optional[Sequence[Plan]] = None,
                     cancel_event: Optional[threading.Event] = None) -> List[MemberOutcome]:
    """
    Evaluate every member, in parallel when the pass is large enough.

    Outcomes are returned in roster order either way.
    """
    chunks = _chunks(members, MEMBER_CHUNK_SIZE)
    work = len(members) * len(candidates)
    parallel = len(chunks) > 1 and work >= settings.parallel_min_work

    if not parallel:
        outcomes = []
        for chunk in chunks:
            outcomes.extend(evaluate_chunk(chunk, candidates, classes, settings,
                                           reference_date, silver_plans, cancel_event))
        return outcomes

    logger.debug(f"RECOMPUTE: Evaluating {len(members)} members in {len(chunks)} parallel chunks")
    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        futures = [
            executor.submit(evaluate_chunk, chunk, candidates, classes, settings,
                            reference_date, silver_plans, cancel_event)
            for chunk in chunks
        ]
        outcomes = []
        try:
            for future in futures:
                outcomes.extend(future.result())
        except PassCancelled:
            for future in futures:
                future.cancel()
            raise
    return outcomes


# =============================================================================
# PASS
# =============================================================================

def recompute(inputs: QuoteInputs, settings: Optional[EngineSettings] = None,
              cancel_event: Optional[threading.Event] = None) -> QuoteResult:
    """
    Run one full Filter -> Select -> Aggregate pass.

    Args:
        inputs: Immutable input bundle
        settings: Engine settings (default: EngineSettings())
        cancel_event: Set by the caller to abandon the pass

    Returns:
        QuoteResult with summary, outcomes (roster order), candidate plans,
        sorted unique data issues and filter statistics

    Raises:
        InvariantViolation: On internal consistency failures
        PassCancelled: If cancel_event was set during the pass
    """
    if settings is None:
        settings = EngineSettings()
    reference_date = inputs.reference_date or settings.reference_date
    start = time.perf_counter()

    catalog, catalog_issues = prepare_catalog(inputs.plans)
    class_issues = validate_classes(inputs.classes)

    candidates = filter_plans(catalog, inputs.filter_spec)
    stats = filter_stats(catalog, candidates, inputs.filter_spec)
    logger.info(
        f"FILTER: {stats.filtered_count}/{stats.total_plans} plans "
        f"({stats.filter_percentage}%) with {stats.active_filter_count} active filters"
    )

    silver_plans = None
    if inputs.include_subsidy_estimates:
        silver_plans = [p for p in catalog if p.metal_level == BENCHMARK_METAL_LEVEL]

    outcomes = evaluate_members(
        inputs.members,
        candidates,
        inputs.classes_by_id(),
        settings,
        reference_date,
        silver_plans=silver_plans,
        cancel_event=cancel_event,
    )

    if cancel_event is not None and cancel_event.is_set():
        raise PassCancelled("Pass superseded before aggregation")

    summary = aggregate(outcomes, candidates, member_ids=[m.member_id for m in inputs.members])

    issues = set(inputs.load_issues) | set(catalog_issues) | set(class_issues)
    for outcome in outcomes:
        issues.update(outcome.issues)

    elapsed = time.perf_counter() - start
    logger.info(
        f"RECOMPUTE: {summary.resolved_count}/{summary.total_members} members resolved, "
        f"{len(issues)} data issues, {elapsed:.3f}s"
    )
    if elapsed > settings.recompute_budget_seconds:
        logger.warning(
            f"RECOMPUTE: Pass took {elapsed:.3f}s, over the {settings.recompute_budget_seconds}s budget "
            f"({len(inputs.members)} members x {len(candidates)} plans)"
        )

    return QuoteResult(
        summary=summary,
        outcomes=tuple(outcomes),
        candidate_plans=tuple(candidates),
        issues=tuple(sorted(issues)),
        filter_stats=stats,
        elapsed_seconds=elapsed,
    )

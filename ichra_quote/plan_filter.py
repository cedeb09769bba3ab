"""
Plan Filter Engine
Narrows a plan catalog to the candidates matching a FilterSpec.

Each dimension is an independent predicate; a plan is a candidate when it
passes all of them. Predicates run in a fixed order and stop at the first
failure. Output preserves catalog order.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Sequence, Tuple

from ichra_quote.constants import METAL_LEVELS, NETWORK_SIZES, PLAN_TYPES
from ichra_quote.quote_types import FilterSpec, FilterStats, MarketSegment, Plan

logger = logging.getLogger(__name__)


# =============================================================================
# PREDICATES
# =============================================================================

def _metal_level(plan: Plan, spec: FilterSpec) -> bool:
    return not spec.metal_levels or plan.metal_level in spec.metal_levels


def _carrier(plan: Plan, spec: FilterSpec) -> bool:
    # Carriers may be selected by display name or by carrier id
    if not spec.carriers:
        return True
    return plan.carrier in spec.carriers or (
        plan.carrier_id is not None and plan.carrier_id in spec.carriers
    )


def _plan_type(plan: Plan, spec: FilterSpec) -> bool:
    return not spec.plan_types or plan.plan_type in spec.plan_types


def _market(plan: Plan, spec: FilterSpec) -> bool:
    if spec.market is MarketSegment.ON_MARKET:
        return plan.on_market
    if spec.market is MarketSegment.OFF_MARKET:
        return plan.off_market
    return True


def _premium(plan: Plan, spec: FilterSpec) -> bool:
    return spec.premium_range.contains(plan.reference_premium)


def _deductible(plan: Plan, spec: FilterSpec) -> bool:
    return spec.deductible_range.contains(plan.deductible)


def _network_size(plan: Plan, spec: FilterSpec) -> bool:
    return spec.network_size is None or plan.network_size == spec.network_size


def _hsa(plan: Plan, spec: FilterSpec) -> bool:
    return spec.hsa_eligible.admits(plan.hsa_eligible)


def _prescription(plan: Plan, spec: FilterSpec) -> bool:
    return spec.prescription_coverage.admits(plan.prescription_coverage)


def _ichra_compliant(plan: Plan, spec: FilterSpec) -> bool:
    return not spec.ichra_compliant_only or plan.ichra_compliant


PREDICATES: Tuple[Tuple[str, Callable[[Plan, FilterSpec], bool]], ...] = (
    ('metal_level', _metal_level),
    ('carrier', _carrier),
    ('plan_type', _plan_type),
    ('market', _market),
    ('premium', _premium),
    ('deductible', _deductible),
    ('network_size', _network_size),
    ('hsa_eligible', _hsa),
    ('prescription_coverage', _prescription),
    ('ichra_compliant', _ichra_compliant),
)


def plan_matches(plan: Plan, spec: FilterSpec) -> bool:
    """True when the plan passes every filter dimension"""
    return all(predicate(plan, spec) for _, predicate in PREDICATES)


def first_failing_dimension(plan: Plan, spec: FilterSpec):
    """Name of the first dimension the plan fails, or None"""
    for name, predicate in PREDICATES:
        if not predicate(plan, spec):
            return name
    return None


# =============================================================================
# FILTER
# =============================================================================

def filter_plans(catalog: Sequence[Plan], filter_spec: FilterSpec) -> List[Plan]:
    """
    Return the plans matching every dimension of the filter, in catalog order.

    An empty result is valid; the selector marks every member unresolved.
    """
    if not filter_spec.is_filtered:
        return list(catalog)

    candidates = [plan for plan in catalog if plan_matches(plan, filter_spec)]

    logger.debug(
        f"FILTER: {len(candidates)}/{len(catalog)} plans match "
        f"{filter_spec.active_filter_count} active filters"
    )
    return candidates


def filter_stats(catalog: Sequence[Plan], candidates: Sequence[Plan],
                 filter_spec: FilterSpec) -> FilterStats:
    """Counts describing how far a filter narrowed the catalog"""
    total = len(catalog)
    filtered = len(candidates)
    if total:
        percentage = (Decimal(filtered) / Decimal(total) * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
    else:
        percentage = Decimal("0.0")

    return FilterStats(
        total_plans=total,
        filtered_count=filtered,
        filter_percentage=percentage,
        active_filter_count=filter_spec.active_filter_count,
        is_filtered=filter_spec.is_filtered,
    )


def _vocabulary_order(values, vocabulary: Sequence[str]) -> List[str]:
    """Known values in vocabulary order, then unrecognized values alphabetically"""
    rank = {value: i for i, value in enumerate(vocabulary)}
    return sorted(set(values), key=lambda v: (rank.get(v, len(rank)), v))


def available_filter_values(catalog: Sequence[Plan]) -> dict:
    """
    Distinct values present in the catalog for each set-valued dimension,
    plus premium and deductible bounds, for building filter controls.
    """
    premiums = [p.reference_premium for p in catalog if p.reference_premium is not None]
    deductibles = [p.deductible for p in catalog]
    return {
        'metal_levels': _vocabulary_order((p.metal_level for p in catalog if p.metal_level), METAL_LEVELS),
        'carriers': sorted({p.carrier for p in catalog if p.carrier}),
        'plan_types': _vocabulary_order((p.plan_type for p in catalog if p.plan_type), PLAN_TYPES),
        'network_sizes': _vocabulary_order((p.network_size for p in catalog if p.network_size), NETWORK_SIZES),
        'premium_bounds': (min(premiums), max(premiums)) if premiums else None,
        'deductible_bounds': (min(deductibles), max(deductibles)) if deductibles else None,
    }

"""
Quote Engine Types
Dataclasses and enums shared by every stage of a quote recomputation pass.

Input records (Member, BenefitClass, Plan, FilterSpec) are frozen and
validated on construction. Derived records (MemberOutcome, GroupSummary,
QuoteResult) are rebuilt from scratch on every pass.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, List, Tuple, Any, Iterable

from ichra_quote.constants import (
    RATE_TABLE_MIN_AGE,
    RATE_TABLE_MAX_AGE,
    RATE_TABLE_SIZE,
    REFERENCE_PREMIUM_AGE,
    FAMILY_TIERS,
    TIER_INDIVIDUAL,
    TIER_INDIVIDUAL_TOBACCO,
    TIER_FIXED,
)
from ichra_quote.exceptions import RatingDataError
from ichra_quote.utils import to_money, calculate_age

ZERO = Decimal("0.00")


def _set(instance, name: str, value):
    """Assign on a frozen dataclass during __post_init__ normalization"""
    object.__setattr__(instance, name, value)


# =============================================================================
# ENUMS
# =============================================================================

class MarketSegment(Enum):
    """Market segment constraint for the plan filter"""
    ANY = "all"
    ON_MARKET = "on-market"
    OFF_MARKET = "off-market"


class TriState(Enum):
    """
    Three-way boolean constraint.

    UNCONSTRAINED admits every plan, REQUIRED only plans with the feature,
    FORBIDDEN only plans without it.
    """
    UNCONSTRAINED = "any"
    REQUIRED = "true"
    FORBIDDEN = "false"

    def admits(self, value: bool) -> bool:
        if self is TriState.UNCONSTRAINED:
            return True
        return bool(value) == (self is TriState.REQUIRED)

    @classmethod
    def from_optional(cls, value: Optional[bool]) -> "TriState":
        """Map None/True/False (the nullable-boolean form) to a TriState"""
        if value is None:
            return cls.UNCONSTRAINED
        return cls.REQUIRED if value else cls.FORBIDDEN


class OutcomeStatus(Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class IssueKind(Enum):
    """Data problems reported alongside a pass result"""
    RATING_DATA = "rating_data"
    CONFIGURATION = "configuration"
    ROSTER = "roster"


# =============================================================================
# RATE TABLES
# =============================================================================

@dataclass(frozen=True)
class RatePair:
    """Monthly premium for one age, without and with tobacco rating"""
    regular: Decimal
    tobacco: Decimal


@dataclass(frozen=True)
class AgeRateTable:
    """
    Age-indexed premiums for ages 0-65, one RatePair per age.

    Construction enforces the table invariants: exactly one slot per age,
    no negative cells, and tobacco >= regular for every age.
    """
    rates: Tuple[RatePair, ...]
    plan_id: Optional[str] = None

    def __post_init__(self):
        rates = tuple(self.rates)
        _set(self, 'rates', rates)

        if len(rates) != RATE_TABLE_SIZE:
            raise RatingDataError(
                f"Age rate table for plan {self.plan_id} has {len(rates)} ages, "
                f"expected {RATE_TABLE_SIZE} ({RATE_TABLE_MIN_AGE}-{RATE_TABLE_MAX_AGE})",
                plan_id=self.plan_id,
            )

        for age, pair in enumerate(rates, start=RATE_TABLE_MIN_AGE):
            if pair.regular < 0 or pair.tobacco < 0:
                raise RatingDataError(
                    f"Negative premium at age {age} in plan {self.plan_id}",
                    plan_id=self.plan_id,
                )
            if pair.tobacco < pair.regular:
                raise RatingDataError(
                    f"Tobacco rate ({pair.tobacco}) is less than regular rate ({pair.regular}) "
                    f"for age {age} in plan {self.plan_id}",
                    plan_id=self.plan_id,
                )

    @classmethod
    def from_columns(cls, regular: Iterable, tobacco: Iterable,
                     plan_id: Optional[str] = None) -> "AgeRateTable":
        """Build a table from parallel regular/tobacco sequences indexed by age"""
        try:
            pairs = tuple(
                RatePair(regular=to_money(r), tobacco=to_money(t))
                for r, t in zip(list(regular), list(tobacco), strict=True)
            )
        except ValueError as e:
            raise RatingDataError(f"Malformed age rate table for plan {plan_id}: {e}", plan_id=plan_id)
        return cls(rates=pairs, plan_id=plan_id)

    @staticmethod
    def clamp_age(age: int) -> int:
        """Clamp an age into the table's index range (ages above 65 use 65)"""
        return max(RATE_TABLE_MIN_AGE, min(RATE_TABLE_MAX_AGE, int(age)))

    def pair_for(self, age: int) -> RatePair:
        return self.rates[self.clamp_age(age) - RATE_TABLE_MIN_AGE]

    def rate_for(self, age: int, tobacco: bool = False) -> Decimal:
        pair = self.pair_for(age)
        return pair.tobacco if tobacco else pair.regular


@dataclass(frozen=True)
class FamilyTierTable:
    """Fixed premiums keyed by family-structure tier"""
    tiers: Tuple[Tuple[str, Decimal], ...]
    plan_id: Optional[str] = None

    def __post_init__(self):
        items = self.tiers.items() if isinstance(self.tiers, dict) else self.tiers
        normalized = []
        for tier, amount in items:
            if tier not in FAMILY_TIERS:
                raise RatingDataError(f"Unknown family tier '{tier}' in plan {self.plan_id}",
                                      plan_id=self.plan_id)
            try:
                amount = to_money(amount)
            except ValueError as e:
                raise RatingDataError(f"Malformed {tier} rate in plan {self.plan_id}: {e}",
                                      plan_id=self.plan_id)
            if amount < 0:
                raise RatingDataError(f"Negative {tier} premium in plan {self.plan_id}",
                                      plan_id=self.plan_id)
            normalized.append((tier, amount))

        if not normalized:
            raise RatingDataError(f"Family tier table for plan {self.plan_id} is empty",
                                  plan_id=self.plan_id)

        _set(self, 'tiers', tuple(sorted(normalized)))

        rates = dict(self.tiers)
        if TIER_INDIVIDUAL_TOBACCO in rates and TIER_INDIVIDUAL in rates:
            if rates[TIER_INDIVIDUAL_TOBACCO] < rates[TIER_INDIVIDUAL]:
                raise RatingDataError(
                    f"Tobacco single rate ({rates[TIER_INDIVIDUAL_TOBACCO]}) is less than "
                    f"single rate ({rates[TIER_INDIVIDUAL]}) in plan {self.plan_id}",
                    plan_id=self.plan_id,
                )

    def get(self, tier: str) -> Optional[Decimal]:
        for key, amount in self.tiers:
            if key == tier:
                return amount
        return None

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self.tiers)


# =============================================================================
# PLAN
# =============================================================================

@dataclass(frozen=True)
class Plan:
    """
    A candidate insurance plan, pre-filtered to the group's geography.

    A plan may carry an age table, a family-tier table, or both. A plan
    with neither is kept so the resolver can report it as a rating error.
    """
    plan_id: str
    name: str = ""
    carrier: str = ""
    carrier_id: Optional[str] = None
    metal_level: str = ""
    plan_type: str = ""
    on_market: bool = True
    off_market: Optional[bool] = None
    age_rates: Optional[AgeRateTable] = None
    family_rates: Optional[FamilyTierTable] = None
    deductible: Decimal = ZERO
    oop_max: Optional[Decimal] = None
    network_size: Optional[str] = None
    hsa_eligible: bool = False
    prescription_coverage: bool = True
    ichra_compliant: bool = True

    def __post_init__(self):
        if self.off_market is None:
            # Plans not sold on the exchange are off-market
            _set(self, 'off_market', not self.on_market)
        _set(self, 'metal_level', (self.metal_level or "").strip().lower())
        _set(self, 'plan_type', (self.plan_type or "").strip().upper())
        _set(self, 'deductible', to_money(self.deductible))
        if self.oop_max is not None:
            _set(self, 'oop_max', to_money(self.oop_max))
        if self.network_size is not None:
            _set(self, 'network_size', str(self.network_size).strip().lower() or None)

    @property
    def has_rate_data(self) -> bool:
        return self.age_rates is not None or self.family_rates is not None

    @property
    def carrier_key(self) -> str:
        """Identifier used to group plans by carrier"""
        return self.carrier_id or self.carrier or "unknown"

    @property
    def reference_premium(self) -> Optional[Decimal]:
        """
        Plan-level monthly premium for range filters and distributions.

        Age-21 non-tobacco rate for age tables; otherwise the fixed price,
        the individual tier, or the cheapest tier.
        """
        if self.age_rates is not None:
            return self.age_rates.rate_for(REFERENCE_PREMIUM_AGE, tobacco=False)
        if self.family_rates is not None:
            for tier in (TIER_FIXED, TIER_INDIVIDUAL):
                amount = self.family_rates.get(tier)
                if amount is not None:
                    return amount
            return min(amount for _, amount in self.family_rates.tiers)
        return None


# =============================================================================
# MEMBERS AND CLASSES
# =============================================================================

@dataclass(frozen=True)
class PriorCoverage:
    """The member's coverage before the ICHRA arrangement (monthly amounts)"""
    employer_contribution: Decimal = ZERO
    member_contribution: Decimal = ZERO
    plan_name: str = ""
    plan_type: str = "Other"
    metal_level: str = "Other"
    carrier: Optional[str] = None

    def __post_init__(self):
        _set(self, 'employer_contribution', to_money(self.employer_contribution))
        _set(self, 'member_contribution', to_money(self.member_contribution))

    @property
    def total_cost(self) -> Decimal:
        return self.employer_contribution + self.member_contribution


@dataclass(frozen=True)
class Member:
    """
    One roster member for a computation pass.

    household_income is annual. Age comes from date_of_birth as of the
    pass reference date, or from the explicit age when no DOB is known.
    """
    member_id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    zip_code: str = ""
    rating_area_id: Optional[str] = None
    tobacco: bool = False
    household_income: Decimal = ZERO
    family_size: int = 1
    class_id: Optional[str] = None
    prior_coverage: PriorCoverage = field(default_factory=PriorCoverage)
    has_spouse: bool = False
    num_children: Optional[int] = None

    def __post_init__(self):
        _set(self, 'member_id', str(self.member_id))
        _set(self, 'household_income', to_money(self.household_income))
        if self.family_size < 1:
            raise ValueError(f"Member {self.member_id}: family size must be at least 1")
        if self.has_spouse and self.family_size < 2:
            raise ValueError(f"Member {self.member_id}: a spouse requires family size of at least 2")
        if self.date_of_birth is None and self.age is None:
            raise ValueError(f"Member {self.member_id}: date of birth or age is required")

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.member_id

    @property
    def dependent_count(self) -> int:
        return self.family_size - 1

    @property
    def children_count(self) -> int:
        if self.num_children is not None:
            return self.num_children
        return max(0, self.dependent_count - (1 if self.has_spouse else 0))

    def age_on(self, reference_date: date) -> int:
        """Age as of the reference date"""
        if self.date_of_birth is not None:
            return calculate_age(self.date_of_birth, reference_date)
        return int(self.age)


@dataclass(frozen=True)
class AgeBand:
    """Inclusive age range carrying an override contribution"""
    min_age: int
    max_age: int
    employee_contribution: Decimal
    dependent_contribution: Decimal = ZERO

    def __post_init__(self):
        _set(self, 'employee_contribution', to_money(self.employee_contribution))
        _set(self, 'dependent_contribution', to_money(self.dependent_contribution))

    def contains(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age

    @property
    def label(self) -> str:
        return f"{self.min_age}-{self.max_age}"


@dataclass(frozen=True)
class BenefitClass:
    """
    A group of employees sharing one employer-contribution rule.

    Only employee_contribution (or a matching age band) funds the member;
    the spouse/children/family amounts are carried for reporting.
    """
    class_id: str
    name: str = ""
    employee_contribution: Decimal = ZERO
    spouse_contribution: Decimal = ZERO
    children_contribution: Decimal = ZERO
    family_contribution: Decimal = ZERO
    age_bands: Tuple[AgeBand, ...] = ()
    parent_class_id: Optional[str] = None

    def __post_init__(self):
        _set(self, 'class_id', str(self.class_id))
        for name in ('employee_contribution', 'spouse_contribution',
                     'children_contribution', 'family_contribution'):
            _set(self, name, to_money(getattr(self, name)))
        _set(self, 'age_bands', tuple(self.age_bands))

    @property
    def is_sub_class(self) -> bool:
        return self.parent_class_id is not None


# =============================================================================
# FILTERS
# =============================================================================

@dataclass(frozen=True)
class ValueRange:
    """Inclusive [minimum, maximum] range; a None bound is open"""
    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None

    def __post_init__(self):
        if self.minimum is not None:
            _set(self, 'minimum', to_money(self.minimum))
        if self.maximum is not None:
            _set(self, 'maximum', to_money(self.maximum))
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"Range minimum {self.minimum} exceeds maximum {self.maximum}")

    @property
    def is_unbounded(self) -> bool:
        return self.minimum is None and self.maximum is None

    def contains(self, value: Optional[Decimal]) -> bool:
        if self.is_unbounded:
            return True
        if value is None:
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class FilterSpec:
    """
    Independent plan predicates; empty sets, None and UNCONSTRAINED mean
    "no restriction". Never mutated: use replace() to derive a new spec.
    """
    metal_levels: frozenset = frozenset()
    carriers: frozenset = frozenset()
    plan_types: frozenset = frozenset()
    market: MarketSegment = MarketSegment.ANY
    premium_range: ValueRange = ValueRange()
    deductible_range: ValueRange = ValueRange()
    network_size: Optional[str] = None
    hsa_eligible: TriState = TriState.UNCONSTRAINED
    prescription_coverage: TriState = TriState.UNCONSTRAINED
    ichra_compliant_only: bool = False

    def __post_init__(self):
        _set(self, 'metal_levels', frozenset(m.strip().lower() for m in self.metal_levels))
        _set(self, 'carriers', frozenset(str(c) for c in self.carriers))
        _set(self, 'plan_types', frozenset(t.strip().upper() for t in self.plan_types))
        if self.network_size is not None:
            size = str(self.network_size).strip().lower()
            _set(self, 'network_size', None if size in ('', 'any') else size)

    def replace(self, **changes) -> "FilterSpec":
        """Return a new filter spec with the given dimensions changed"""
        return replace(self, **changes)

    @property
    def active_filter_count(self) -> int:
        """Number of active constraints, counting each selected set member"""
        return (
            len(self.metal_levels)
            + len(self.carriers)
            + len(self.plan_types)
            + (1 if self.market is not MarketSegment.ANY else 0)
            + (0 if self.premium_range.is_unbounded else 1)
            + (0 if self.deductible_range.is_unbounded else 1)
            + (1 if self.network_size is not None else 0)
            + (1 if self.hsa_eligible is not TriState.UNCONSTRAINED else 0)
            + (1 if self.prescription_coverage is not TriState.UNCONSTRAINED else 0)
            + (1 if self.ichra_compliant_only else 0)
        )

    @property
    def is_filtered(self) -> bool:
        return self.active_filter_count > 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterSpec":
        """
        Build a filter spec from a plain dictionary.

        Keys: metal_levels, carriers, plan_types, market ('all', 'on-market',
        'off-market'), premium_min/premium_max, deductible_min/deductible_max,
        network_size, hsa_eligible/prescription_coverage (None/True/False),
        ichra_compliant_only.
        """
        return cls(
            metal_levels=frozenset(data.get('metal_levels') or ()),
            carriers=frozenset(data.get('carriers') or ()),
            plan_types=frozenset(data.get('plan_types') or ()),
            market=MarketSegment(data.get('market') or MarketSegment.ANY.value),
            premium_range=ValueRange(data.get('premium_min'), data.get('premium_max')),
            deductible_range=ValueRange(data.get('deductible_min'), data.get('deductible_max')),
            network_size=data.get('network_size'),
            hsa_eligible=TriState.from_optional(data.get('hsa_eligible')),
            prescription_coverage=TriState.from_optional(data.get('prescription_coverage')),
            ichra_compliant_only=bool(data.get('ichra_compliant_only', False)),
        )


# =============================================================================
# DERIVED RECORDS
# =============================================================================

@dataclass(frozen=True)
class AffordabilityResult:
    """Affordability of one member/plan/contribution combination"""
    is_affordable: bool
    employee_share: Decimal
    threshold: Decimal
    margin: Decimal


@dataclass(frozen=True)
class SubsidyEstimate:
    """Estimated premium tax credit against the benchmark silver plan"""
    fpl_percentage: Decimal
    applicable_percentage: Optional[Decimal]
    expected_contribution: Decimal
    benchmark_premium: Decimal
    monthly_subsidy: Decimal
    is_eligible: bool

    @property
    def annual_subsidy(self) -> Decimal:
        return self.monthly_subsidy * 12


@dataclass(frozen=True, order=True)
class DataIssue:
    """A data-quality problem found during a pass"""
    kind_value: str
    subject_id: str
    message: str

    @property
    def kind(self) -> IssueKind:
        return IssueKind(self.kind_value)

    @classmethod
    def rating(cls, plan_id: str, message: str) -> "DataIssue":
        return cls(IssueKind.RATING_DATA.value, str(plan_id), message)

    @classmethod
    def configuration(cls, class_id: str, message: str) -> "DataIssue":
        return cls(IssueKind.CONFIGURATION.value, str(class_id), message)

    @classmethod
    def roster(cls, row_label: str, message: str) -> "DataIssue":
        return cls(IssueKind.ROSTER.value, str(row_label), message)


@dataclass(frozen=True)
class MemberOutcome:
    """Result of plan selection for one member"""
    member_id: str
    member_name: str
    class_id: Optional[str]
    status: OutcomeStatus
    prior_total_cost: Decimal
    prior_employer_cost: Decimal = ZERO
    prior_member_cost: Decimal = ZERO
    contribution: Optional[Decimal] = None
    plan: Optional[Plan] = None
    premium: Optional[Decimal] = None
    out_of_pocket: Optional[Decimal] = None
    new_total_cost: Optional[Decimal] = None
    savings: Optional[Decimal] = None
    affordability: Optional[AffordabilityResult] = None
    unresolved_reason: Optional[str] = None
    candidate_count: int = 0
    excluded_plan_ids: Tuple[str, ...] = ()
    issues: Tuple[DataIssue, ...] = ()
    subsidy: Optional[SubsidyEstimate] = None

    @property
    def is_resolved(self) -> bool:
        return self.status is OutcomeStatus.RESOLVED

    @property
    def plan_id(self) -> Optional[str]:
        return self.plan.plan_id if self.plan is not None else None

    @property
    def annual_savings(self) -> Optional[Decimal]:
        return self.savings * 12 if self.savings is not None else None

    @property
    def savings_percentage(self) -> Optional[Decimal]:
        if self.savings is None or self.prior_total_cost <= 0:
            return None
        return (self.savings / self.prior_total_cost * 100).quantize(Decimal("0.01"))

    def to_dict(self) -> dict:
        """Flat dictionary for detail views and tabular export"""
        plan = self.plan
        return {
            'member_id': self.member_id,
            'member_name': self.member_name,
            'class_id': self.class_id,
            'status': self.status.value,
            'plan_id': plan.plan_id if plan else None,
            'plan_name': plan.name if plan else None,
            'carrier': plan.carrier if plan else None,
            'metal_level': plan.metal_level if plan else None,
            'contribution': self.contribution,
            'premium': self.premium,
            'out_of_pocket': self.out_of_pocket,
            'prior_employer_cost': self.prior_employer_cost,
            'prior_member_cost': self.prior_member_cost,
            'prior_total_cost': self.prior_total_cost,
            'new_total_cost': self.new_total_cost,
            'savings': self.savings,
            'annual_savings': self.annual_savings,
            'is_affordable': self.affordability.is_affordable if self.affordability else None,
            'affordability_margin': self.affordability.margin if self.affordability else None,
            'candidate_count': self.candidate_count,
            'unresolved_reason': self.unresolved_reason,
            'monthly_subsidy': self.subsidy.monthly_subsidy if self.subsidy else None,
        }


@dataclass(frozen=True)
class PremiumDistribution:
    """Premium statistics for one carrier or metal level over the candidate plans"""
    key: str
    label: str
    plan_count: int
    min_premium: Decimal
    max_premium: Decimal
    average_premium: Decimal


@dataclass(frozen=True)
class SelectedPlanSummary:
    """How many resolved members landed on a plan, with their totals"""
    plan_id: str
    plan_name: str
    carrier: str
    metal_level: str
    member_count: int
    total_premium: Decimal
    total_employer_contribution: Decimal
    total_member_contribution: Decimal
    average_premium: Decimal


@dataclass(frozen=True)
class FilterStats:
    total_plans: int
    filtered_count: int
    filter_percentage: Decimal
    active_filter_count: int
    is_filtered: bool


@dataclass(frozen=True)
class GroupSummary:
    """Group-level roll-up of one pass (all money monthly unless named annual)"""
    total_members: int
    resolved_count: int
    unresolved_count: int
    total_employer_cost: Decimal
    total_employee_cost: Decimal
    total_prior_cost: Decimal
    total_prior_employer_cost: Decimal
    total_prior_member_cost: Decimal
    total_new_cost: Decimal
    total_savings: Decimal
    employer_savings: Decimal
    member_savings: Decimal
    average_savings_per_member: Decimal
    members_with_savings: int
    members_with_increase: int
    affordable_count: int
    compliance_rate: Optional[Decimal]
    carrier_distribution: Tuple[PremiumDistribution, ...] = ()
    metal_level_distribution: Tuple[PremiumDistribution, ...] = ()
    selected_plans: Tuple[SelectedPlanSummary, ...] = ()
    best_savings_member_ids: Tuple[str, ...] = ()
    worst_savings_member_ids: Tuple[str, ...] = ()

    @property
    def total_annual_employer_cost(self) -> Decimal:
        return self.total_employer_cost * 12

    @property
    def total_annual_savings(self) -> Decimal:
        return self.total_savings * 12

    @property
    def compliance_percentage(self) -> Optional[float]:
        if self.compliance_rate is None:
            return None
        return float(self.compliance_rate * 100)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON-style consumers (money as strings)"""
        def money(value):
            return str(value) if value is not None else None

        def dist(rows):
            return [
                {
                    'key': d.key,
                    'label': d.label,
                    'plan_count': d.plan_count,
                    'min_premium': money(d.min_premium),
                    'max_premium': money(d.max_premium),
                    'average_premium': money(d.average_premium),
                }
                for d in rows
            ]

        return {
            'total_members': self.total_members,
            'resolved_count': self.resolved_count,
            'unresolved_count': self.unresolved_count,
            'total_employer_cost': money(self.total_employer_cost),
            'total_employee_cost': money(self.total_employee_cost),
            'total_prior_cost': money(self.total_prior_cost),
            'total_new_cost': money(self.total_new_cost),
            'total_savings': money(self.total_savings),
            'total_prior_employer_cost': money(self.total_prior_employer_cost),
            'total_prior_member_cost': money(self.total_prior_member_cost),
            'employer_savings': money(self.employer_savings),
            'member_savings': money(self.member_savings),
            'total_annual_savings': money(self.total_annual_savings),
            'average_savings_per_member': money(self.average_savings_per_member),
            'members_with_savings': self.members_with_savings,
            'members_with_increase': self.members_with_increase,
            'affordable_count': self.affordable_count,
            'compliance_rate': money(self.compliance_rate),
            'carrier_distribution': dist(self.carrier_distribution),
            'metal_level_distribution': dist(self.metal_level_distribution),
            'selected_plans': [
                {
                    'plan_id': p.plan_id,
                    'plan_name': p.plan_name,
                    'member_count': p.member_count,
                    'average_premium': money(p.average_premium),
                }
                for p in self.selected_plans
            ],
            'best_savings_member_ids': list(self.best_savings_member_ids),
            'worst_savings_member_ids': list(self.worst_savings_member_ids),
        }


# =============================================================================
# PASS INPUTS / OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class QuoteInputs:
    """
    Immutable input bundle for one pass.

    load_issues carries data problems found while the providers built the
    bundle (e.g. plans rejected at load) so they are reported with results.
    """
    members: Tuple[Member, ...] = ()
    classes: Tuple[BenefitClass, ...] = ()
    plans: Tuple[Plan, ...] = ()
    filter_spec: FilterSpec = FilterSpec()
    reference_date: Optional[date] = None
    load_issues: Tuple[DataIssue, ...] = ()
    include_subsidy_estimates: bool = False

    def __post_init__(self):
        _set(self, 'members', tuple(self.members))
        _set(self, 'classes', tuple(self.classes))
        _set(self, 'plans', tuple(self.plans))
        _set(self, 'load_issues', tuple(self.load_issues))

    def replace(self, **changes) -> "QuoteInputs":
        return replace(self, **changes)

    def classes_by_id(self) -> Dict[str, BenefitClass]:
        return {c.class_id: c for c in self.classes}


@dataclass(frozen=True)
class QuoteResult:
    """Everything a pass produces; replaced as a whole by the controller"""
    summary: GroupSummary
    outcomes: Tuple[MemberOutcome, ...]
    candidate_plans: Tuple[Plan, ...]
    issues: Tuple[DataIssue, ...]
    filter_stats: FilterStats
    elapsed_seconds: float = field(default=0.0, compare=False)

    def outcome_for(self, member_id: str) -> Optional[MemberOutcome]:
        for outcome in self.outcomes:
            if outcome.member_id == member_id:
                return outcome
        return None

    @property
    def unresolved_outcomes(self) -> List[MemberOutcome]:
        return [o for o in self.outcomes if not o.is_resolved]

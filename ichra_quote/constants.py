"""
Constants and reference data for the ICHRA quote engine
Includes plan vocabularies, rating-table bounds and regulatory thresholds
"""

from datetime import date
from decimal import Decimal

# Metal levels for ACA marketplace plans (lower-case, as stored on plan records)
METAL_LEVELS = [
    "expanded_bronze",
    "bronze",
    "silver",
    "gold",
    "platinum",
    "catastrophic"
]

# Common plan types
PLAN_TYPES = [
    "HMO",
    "PPO",
    "EPO",
    "POS",
    "HDHP"
]

# Network size categories used by the plan filter
NETWORK_SIZES = [
    "small",
    "medium",
    "large"
]

# ==============================================================================
# AFFORDABILITY
# ==============================================================================
# An ICHRA is affordable if the employee's share of the premium does not
# exceed this fraction of 1/12 of household income.
AFFORDABILITY_THRESHOLD_DEFAULT = Decimal("0.095")  # 9.5% of household income

# Shortfall buckets for compliance status reporting (monthly dollars)
COMPLIANCE_MINOR_SHORTFALL = Decimal("50")
COMPLIANCE_MODERATE_SHORTFALL = Decimal("150")

# ==============================================================================
# RATING TABLES
# ==============================================================================
# Age-indexed rate tables carry one {regular, tobacco} pair per integer age.
# Ages above the last slot use the last slot's rate.
RATE_TABLE_MIN_AGE = 0
RATE_TABLE_MAX_AGE = 65
RATE_TABLE_SIZE = RATE_TABLE_MAX_AGE - RATE_TABLE_MIN_AGE + 1

# Age used for a plan's headline (reference) premium
REFERENCE_PREMIUM_AGE = 21

# Ages 0-20 are rated as children
CHILD_RATING_AGE_MAX = 20

# Family-structure tier keys
TIER_INDIVIDUAL = "individual"
TIER_INDIVIDUAL_TOBACCO = "individual_tobacco"
TIER_COUPLE = "couple"
TIER_FAMILY = "family"
TIER_SINGLE_PARENT = "single_parent"
TIER_CHILD_ONLY = "child_only"
TIER_FIXED = "fixed"

FAMILY_TIERS = [
    TIER_INDIVIDUAL,
    TIER_INDIVIDUAL_TOBACCO,
    TIER_COUPLE,
    TIER_FAMILY,
    TIER_SINGLE_PARENT,
    TIER_CHILD_ONLY,
    TIER_FIXED,
]

# Pricing columns (as delivered in pricing rows) -> family tier keys
FAMILY_TIER_COLUMNS = {
    'single': TIER_INDIVIDUAL,
    'single_tobacco': TIER_INDIVIDUAL_TOBACCO,
    'single_and_spouse': TIER_COUPLE,
    'family': TIER_FAMILY,
    'single_and_children': TIER_SINGLE_PARENT,
    'child_only': TIER_CHILD_ONLY,
    'fixed_price': TIER_FIXED,
}

# ==============================================================================
# FEDERAL POVERTY LEVEL (subsidy estimates)
# ==============================================================================
# 2025 FPL, 48 contiguous states + DC
FPL_2025_BY_HOUSEHOLD_SIZE = {
    1: Decimal("15060"),
    2: Decimal("20440"),
    3: Decimal("25820"),
    4: Decimal("31200"),
    5: Decimal("36580"),
    6: Decimal("41960"),
    7: Decimal("47340"),
    8: Decimal("52720"),
}
FPL_2025_PER_ADDITIONAL_PERSON = Decimal("5380")

# (upper FPL % bound, applicable % of income)
ACA_APPLICABLE_PERCENTAGE_BRACKETS = [
    (Decimal("150"), Decimal("0")),
    (Decimal("200"), Decimal("2.0")),
    (Decimal("250"), Decimal("4.0")),
    (Decimal("300"), Decimal("6.0")),
    (Decimal("400"), Decimal("8.5")),
]
ACA_SUBSIDY_FPL_CAP = Decimal("400")

# ==============================================================================
# ENGINE DEFAULTS
# ==============================================================================
# Plan effective date used for age calculation
DEFAULT_REFERENCE_DATE = date(2026, 1, 1)

# Coalescing window for bursts of filter changes
DEFAULT_DEBOUNCE_SECONDS = 0.3

# members x candidate plans at which member evaluation goes parallel
DEFAULT_PARALLEL_MIN_WORK = 50_000

# Interactive latency target for one full pass
DEFAULT_RECOMPUTE_BUDGET_SECONDS = 1.0

# Members evaluated per parallel task (cancellation is checked between chunks)
MEMBER_CHUNK_SIZE = 64

# Number of members listed in best/worst savings rankings
SAVINGS_RANKING_SIZE = 5

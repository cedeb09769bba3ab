"""
Rate Table Loader
Converts tabular pricing rows into Plan records.

Row layout (one row per plan):
- plan attributes: plan_id, plan_name, carrier, carrier_id, metal_level,
  plan_type, on_market, off_market, deductible, oop_max, network_size,
  hsa_eligible, prescription_coverage, ichra_compliant
- age rates: age_0 .. age_65 and age_0_tobacco .. age_65_tobacco
- family-structure rates: single, single_tobacco, single_and_spouse,
  single_and_children, family, child_only, fixed_price

A missing tobacco column means tobacco is rated the same as regular. A
missing or blank off_market means the plan is off-market exactly when it
is not on-market.
Rows whose rate data breaks a table invariant are rejected, not repaired.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ichra_quote.constants import FAMILY_TIER_COLUMNS, RATE_TABLE_MIN_AGE, RATE_TABLE_MAX_AGE
from ichra_quote.exceptions import RatingDataError
from ichra_quote.quote_types import AgeRateTable, DataIssue, FamilyTierTable, Plan
from ichra_quote.utils import to_money

logger = logging.getLogger(__name__)

AGE_COLUMNS = [f"age_{age}" for age in range(RATE_TABLE_MIN_AGE, RATE_TABLE_MAX_AGE + 1)]
TOBACCO_COLUMNS = [f"age_{age}_tobacco" for age in range(RATE_TABLE_MIN_AGE, RATE_TABLE_MAX_AGE + 1)]

TRUE_VALUES = {'y', 'yes', 'true', 't', '1'}


def _flag(row: pd.Series, col: str, default: Optional[bool]) -> Optional[bool]:
    if col not in row.index:
        return default
    val = row[col]
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return default
    if isinstance(val, str) and not val.strip():
        return default
    if isinstance(val, (bool, np.bool_)):
        return bool(val)
    return str(val).strip().lower() in TRUE_VALUES


def _text(row: pd.Series, col: str) -> Optional[str]:
    if col not in row.index:
        return None
    val = row[col]
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    text = str(val).strip()
    return text or None


def _amount(row: pd.Series, col: str):
    if col not in row.index or pd.isna(row[col]):
        return None
    try:
        return to_money(row[col])
    except ValueError:
        raise RatingDataError(f"Column '{col}' is not a number: {row[col]!r}")


# =============================================================================
# RATE TABLES
# =============================================================================

def age_rate_matrix(df: pd.DataFrame) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
    """
    Regular and tobacco rate matrices (rows x 66) for a pricing frame.

    Returns:
        (regular, tobacco); (None, None) when the frame has no age columns.
        Absent columns are NaN.
    """
    present = [col for col in AGE_COLUMNS if col in df.columns]
    if not present:
        return None, None

    regular = (
        df.reindex(columns=AGE_COLUMNS)
        .apply(pd.to_numeric, errors='coerce')
        .to_numpy(dtype=float)
    )
    if any(col in df.columns for col in TOBACCO_COLUMNS):
        tobacco = (
            df.reindex(columns=TOBACCO_COLUMNS)
            .apply(pd.to_numeric, errors='coerce')
            .to_numpy(dtype=float)
        )
        # Ages with no tobacco rate are rated as non-tobacco
        tobacco = np.where(np.isnan(tobacco), regular, tobacco)
    else:
        tobacco = regular.copy()
    return regular, tobacco


def build_age_table(regular: np.ndarray, tobacco: np.ndarray, plan_id: str) -> Optional[AgeRateTable]:
    """
    Build one plan's age table from its matrix rows.

    Returns:
        None if the row carries no age rates at all

    Raises:
        RatingDataError: If some ages are missing or an invariant fails
    """
    missing = np.isnan(regular)
    if missing.all():
        return None
    if missing.any():
        ages = [str(RATE_TABLE_MIN_AGE + i) for i in np.flatnonzero(missing)]
        raise RatingDataError(
            f"Plan {plan_id} is missing age rates for ages {', '.join(ages[:5])}"
            + ("..." if len(ages) > 5 else ""),
            plan_id=plan_id,
        )
    return AgeRateTable.from_columns(regular.tolist(), tobacco.tolist(), plan_id=plan_id)


def build_family_table(row: pd.Series, plan_id: str) -> Optional[FamilyTierTable]:
    """Family-structure table from a row's tier columns (None if it has none)"""
    tiers = []
    for col, tier in FAMILY_TIER_COLUMNS.items():
        amount = _amount(row, col)
        if amount is not None:
            tiers.append((tier, amount))
    if not tiers:
        return None
    return FamilyTierTable(tiers=tuple(tiers), plan_id=plan_id)


# =============================================================================
# PLANS
# =============================================================================

def row_to_plan(row: pd.Series, age_table: Optional[AgeRateTable]) -> Plan:
    plan_id = _text(row, 'plan_id')
    deductible = _amount(row, 'deductible')
    return Plan(
        plan_id=plan_id,
        name=_text(row, 'plan_name') or plan_id,
        carrier=_text(row, 'carrier') or "",
        carrier_id=_text(row, 'carrier_id'),
        metal_level=_text(row, 'metal_level') or "",
        plan_type=_text(row, 'plan_type') or "",
        on_market=_flag(row, 'on_market', True),
        off_market=_flag(row, 'off_market', None),
        age_rates=age_table,
        family_rates=build_family_table(row, plan_id),
        deductible=deductible if deductible is not None else 0,
        oop_max=_amount(row, 'oop_max'),
        network_size=_text(row, 'network_size'),
        hsa_eligible=_flag(row, 'hsa_eligible', False),
        prescription_coverage=_flag(row, 'prescription_coverage', True),
        ichra_compliant=_flag(row, 'ichra_compliant', True),
    )


def load_plans_from_dataframe(df: pd.DataFrame) -> Tuple[List[Plan], List[DataIssue]]:
    """
    Convert a pricing DataFrame into Plans.

    Args:
        df: One row per plan (see module docstring for columns)

    Returns:
        (plans in row order, data issues for rejected rows)
    """
    plans = []
    issues = []

    if df is None or df.empty:
        return plans, issues
    if 'plan_id' not in df.columns:
        raise RatingDataError("Pricing data has no plan_id column")

    df = df.reset_index(drop=True)
    regular, tobacco = age_rate_matrix(df)

    for i, row in df.iterrows():
        plan_id = _text(row, 'plan_id')
        if plan_id is None:
            issues.append(DataIssue.rating(f"row {i + 2}", "Pricing row has no plan_id"))
            continue
        try:
            age_table = None
            if regular is not None:
                age_table = build_age_table(regular[i], tobacco[i], plan_id)
            plan = row_to_plan(row, age_table)
            if not plan.has_rate_data:
                raise RatingDataError(f"Plan {plan_id} has no rate table", plan_id=plan_id)
        except RatingDataError as e:
            logger.warning(f"CATALOG LOAD: Rejected plan {plan_id}: {e}")
            issues.append(DataIssue.rating(plan_id, str(e)))
            continue
        plans.append(plan)

    logger.info(f"CATALOG LOAD: {len(plans)} plans loaded, {len(issues)} rejected")
    return plans, issues

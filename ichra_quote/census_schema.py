"""
Census DataFrame Schema - roster columns and Member construction

Roster frames arrive with inconsistent headers ('Employee Number' vs
'member_id', 'Tobacco' vs 'tobacco_user', ...). normalize_census_df()
renames aliases to the canonical names below; dataframe_to_members()
turns each normalized row into a Member.
"""

import logging
from typing import List, Optional, Tuple

import pandas as pd

from ichra_quote.quote_types import DataIssue, Member, PriorCoverage
from ichra_quote.utils import parse_currency, parse_date

logger = logging.getLogger(__name__)


# =============================================================================
# CANONICAL COLUMN NAMES
# =============================================================================

# Member identification
COL_MEMBER_ID = 'member_id'
COL_FIRST_NAME = 'first_name'
COL_LAST_NAME = 'last_name'

# Demographics
COL_DOB = 'dob'
COL_AGE = 'age'
COL_TOBACCO = 'tobacco'
COL_FAMILY_STATUS = 'family_status'    # EE / ES / EC / F
COL_FAMILY_SIZE = 'family_size'
COL_HAS_SPOUSE = 'has_spouse'
COL_NUM_CHILDREN = 'num_children'

# Location
COL_ZIP = 'zip_code'
COL_RATING_AREA = 'rating_area_id'

# Financial data
COL_HOUSEHOLD_INCOME = 'household_income'   # annual
COL_CLASS_ID = 'class_id'

# Prior coverage (monthly)
COL_PRIOR_ER = 'prior_employer_contribution'
COL_PRIOR_EE = 'prior_member_contribution'
COL_PRIOR_PLAN_NAME = 'prior_plan_name'
COL_PRIOR_PLAN_TYPE = 'prior_plan_type'
COL_PRIOR_METAL_LEVEL = 'prior_metal_level'
COL_PRIOR_CARRIER = 'prior_carrier'

REQUIRED_COLUMNS = [COL_MEMBER_ID]


# =============================================================================
# COLUMN ALIASES
# =============================================================================
# Key = alias that might appear in raw data
# Value = canonical name to normalize to

COLUMN_ALIASES = {
    # Member ID aliases
    'Employee Number': COL_MEMBER_ID,
    'employee_id': COL_MEMBER_ID,
    'emp_id': COL_MEMBER_ID,
    'Member ID': COL_MEMBER_ID,

    # Name aliases
    'First Name': COL_FIRST_NAME,
    'Last Name': COL_LAST_NAME,

    # Demographic aliases
    'DOB': COL_DOB,
    'date_of_birth': COL_DOB,
    'Date of Birth': COL_DOB,
    'Age': COL_AGE,
    'ee_age': COL_AGE,
    'Tobacco': COL_TOBACCO,
    'tobacco_user': COL_TOBACCO,
    'Tobacco User': COL_TOBACCO,
    'Family Status': COL_FAMILY_STATUS,
    'Family Size': COL_FAMILY_SIZE,
    'household_size': COL_FAMILY_SIZE,

    # Location aliases
    'Home Zip': COL_ZIP,
    'zip': COL_ZIP,
    'rating_area': COL_RATING_AREA,
    'Rating Area': COL_RATING_AREA,

    # Income aliases
    'Household Income': COL_HOUSEHOLD_INCOME,
    'income': COL_HOUSEHOLD_INCOME,
    'annual_income': COL_HOUSEHOLD_INCOME,

    # Class aliases
    'Class': COL_CLASS_ID,
    'ichra_class': COL_CLASS_ID,

    # Prior coverage aliases
    'Current ER Monthly': COL_PRIOR_ER,
    'current_er_monthly': COL_PRIOR_ER,
    'Current EE Monthly': COL_PRIOR_EE,
    'current_ee_monthly': COL_PRIOR_EE,
    'Current Plan': COL_PRIOR_PLAN_NAME,
    'Current Carrier': COL_PRIOR_CARRIER,
}

# Family status codes -> (family size, has spouse)
FAMILY_STATUS_COMPOSITION = {
    'EE': (1, False),   # Employee only
    'ES': (2, True),    # Employee + Spouse
    'EC': (2, False),   # Employee + Child (assumes 1 child)
    'F': (4, True),     # Family (assumes 2 adults + 2 children)
}

TRUE_VALUES = {'y', 'yes', 'true', 't', '1'}
FALSE_VALUES = {'n', 'no', 'false', 'f', '0', ''}


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_census_df(df: pd.DataFrame, inplace: bool = False) -> pd.DataFrame:
    """
    Normalize column names to the canonical schema.

    Args:
        df: Roster DataFrame to normalize
        inplace: If True, modify df in place. If False, return a copy.

    Returns:
        DataFrame with canonical column names

    Example:
        >>> df = pd.DataFrame({'Employee Number': ['E1'], 'Tobacco': ['Y']})
        >>> sorted(normalize_census_df(df).columns)
        ['member_id', 'tobacco']
    """
    if df is None:
        return pd.DataFrame()
    if df.empty:
        return df if inplace else df.copy()

    if not inplace:
        df = df.copy()

    rename_map = {}
    for alias, canonical in COLUMN_ALIASES.items():
        if alias in df.columns and canonical not in df.columns:
            rename_map[alias] = canonical

    if rename_map:
        df.rename(columns=rename_map, inplace=True)

    return df


def has_column(df: pd.DataFrame, canonical_name: str) -> bool:
    """Check for a column under its canonical name or any alias"""
    if canonical_name in df.columns:
        return True
    return any(canon == canonical_name and alias in df.columns
               for alias, canon in COLUMN_ALIASES.items())


# =============================================================================
# ROW PARSING
# =============================================================================

def _value(row: pd.Series, col: str):
    if col not in row.index:
        return None
    val = row[col]
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    return val


def _text(row: pd.Series, col: str, default: str = "") -> str:
    val = _value(row, col)
    return default if val is None else str(val).strip()


def parse_flag(value) -> bool:
    """
    Parse a Y/N style flag.

    Raises:
        ValueError: If the value is not a recognizable boolean
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"Not a Y/N value: {value!r}")


def _int(row: pd.Series, col: str) -> Optional[int]:
    val = _value(row, col)
    if val is None or str(val).strip() == '':
        return None
    try:
        return int(float(val))
    except (ValueError, TypeError):
        raise ValueError(f"Column '{col}' must be a whole number, got {val!r}")


def get_member_rating_area(row: pd.Series) -> Optional[str]:
    """
    Rating area id from a row, accepting 'Rating Area 7' style strings.

    Returns:
        Rating area id as a string, or None
    """
    val = _value(row, COL_RATING_AREA)
    if val is None:
        return None
    if isinstance(val, float) and val.is_integer():
        val = int(val)
    text = str(val).strip()
    if text.startswith('Rating Area '):
        text = text.replace('Rating Area ', '')
    return text or None


def _money(row: pd.Series, col: str):
    val = _value(row, col)
    if val is None or str(val).strip() == '':
        return None
    amount = parse_currency(str(val))
    if amount is None:
        raise ValueError(f"Column '{col}' must be a dollar amount, got {val!r}")
    return amount


def row_to_member(row: pd.Series) -> Member:
    """
    Build a Member from one normalized roster row.

    Family composition comes from family_size/has_spouse/num_children when
    present, otherwise from the EE/ES/EC/F family status code.

    Raises:
        ValueError: If a required value is missing or malformed
    """
    member_id = _text(row, COL_MEMBER_ID)
    if not member_id:
        raise ValueError("Missing member id")

    dob = parse_date(_value(row, COL_DOB))
    age = _int(row, COL_AGE)

    family_size = _int(row, COL_FAMILY_SIZE)
    has_spouse_raw = _value(row, COL_HAS_SPOUSE)
    has_spouse = parse_flag(has_spouse_raw) if has_spouse_raw is not None else None

    status = _text(row, COL_FAMILY_STATUS).upper()
    if status:
        if status not in FAMILY_STATUS_COMPOSITION:
            raise ValueError(f"Unknown family status {status!r} (expected EE, ES, EC or F)")
        status_size, status_spouse = FAMILY_STATUS_COMPOSITION[status]
        if family_size is None:
            family_size = status_size
        if has_spouse is None:
            has_spouse = status_spouse

    prior = PriorCoverage(
        employer_contribution=_money(row, COL_PRIOR_ER) or 0,
        member_contribution=_money(row, COL_PRIOR_EE) or 0,
        plan_name=_text(row, COL_PRIOR_PLAN_NAME),
        plan_type=_text(row, COL_PRIOR_PLAN_TYPE, "Other"),
        metal_level=_text(row, COL_PRIOR_METAL_LEVEL, "Other"),
        carrier=_text(row, COL_PRIOR_CARRIER) or None,
    )

    class_id = _text(row, COL_CLASS_ID) or None

    return Member(
        member_id=member_id,
        first_name=_text(row, COL_FIRST_NAME),
        last_name=_text(row, COL_LAST_NAME),
        date_of_birth=dob,
        age=age,
        zip_code=_text(row, COL_ZIP),
        rating_area_id=get_member_rating_area(row),
        tobacco=parse_flag(_value(row, COL_TOBACCO)),
        household_income=_money(row, COL_HOUSEHOLD_INCOME) or 0,
        family_size=family_size or 1,
        class_id=class_id,
        prior_coverage=prior,
        has_spouse=bool(has_spouse),
        num_children=_int(row, COL_NUM_CHILDREN),
    )


def load_members_from_dataframe(df: pd.DataFrame) -> Tuple[List[Member], List[DataIssue]]:
    """
    Convert a roster DataFrame to Members, reporting rejected rows as
    roster DataIssues keyed "Row N" (a frame-level problem is keyed "census").

    Returns:
        (members in row order, data issues for rejected rows)
    """
    df = normalize_census_df(df)
    members = []
    issues = []

    if df.empty:
        return members, issues

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        return members, [DataIssue.roster("census", f"Missing required columns: {', '.join(missing)}")]

    # Header is row 1
    for row_num, (_, row) in enumerate(df.iterrows(), start=2):
        try:
            members.append(row_to_member(row))
        except ValueError as e:
            issues.append(DataIssue.roster(f"Row {row_num}", str(e)))

    if issues:
        logger.warning(f"CENSUS LOAD: {len(issues)} of {len(df)} rows rejected")
    logger.info(f"CENSUS LOAD: {len(members)} members loaded")
    return members, issues


def roster_error_message(issue: DataIssue) -> str:
    """Error text for a roster issue ("Row N: ..." for rejected rows)"""
    if issue.subject_id == "census":
        return issue.message
    return f"{issue.subject_id}: {issue.message}"


def dataframe_to_members(df: pd.DataFrame) -> Tuple[List[Member], List[str]]:
    """
    Convert a roster DataFrame to Members.

    Rows that fail validation are skipped and reported.

    Returns:
        (members in row order, error messages "Row N: ...")
    """
    members, issues = load_members_from_dataframe(df)
    return members, [roster_error_message(issue) for issue in issues]

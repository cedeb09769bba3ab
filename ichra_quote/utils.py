"""
Utility functions for the ICHRA quote engine
Includes money handling, currency parsing and age calculation
"""

from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

import pandas as pd

from ichra_quote.constants import DEFAULT_REFERENCE_DATE

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """
    Convert a number to a Decimal rounded to cents (half-up).

    Floats go through str() so 612.3 becomes Decimal('612.30'), not the
    binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values) -> Decimal:
    """Exact sum of monetary Decimals (0.00 for an empty iterable)"""
    total = Decimal("0.00")
    for value in values:
        total += value
    return total


def parse_currency(value_str: str) -> Optional[Decimal]:
    """
    Parse a currency string to a Decimal.

    Args:
        value_str: Currency value as string (e.g., "$5,920.23", "$4500", "4500", "5920.23")

    Returns:
        Decimal value rounded to cents, or None if empty/invalid

    Examples:
        >>> parse_currency('$5,920.23')
        Decimal('5920.23')
        >>> parse_currency('4500')
        Decimal('4500.00')
        >>> parse_currency('')
        None
    """
    if value_str is None or (not isinstance(value_str, str) and pd.isna(value_str)):
        return None

    value_str = str(value_str).strip()
    if value_str == '' or value_str.lower() in ('nan', 'none', 'null'):
        return None

    # Remove currency symbols and commas
    cleaned = value_str.replace('$', '').replace(',', '').strip()

    try:
        return to_money(cleaned)
    except ValueError:
        return None


def parse_date(value) -> Optional[date]:
    """
    Parse a date of birth from a date, datetime, Timestamp or string.

    Accepts: m/d/yy, mm/dd/yy, m/d/yyyy, mm/dd/yyyy, yyyy-mm-dd.
    Two-digit years 00-29 map to the 2000s, 30-99 to the 1900s.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, pd.Timestamp):
        return value.date()

    dob_str = str(value).strip()
    if dob_str == '' or dob_str.lower() in ('nan', 'nat', 'none'):
        return None

    if '/' in dob_str:
        parts = dob_str.split('/')
        if len(parts) == 3:
            month, day, year = parts

            # Handle 2-digit year conversion
            if len(year) == 2:
                year_int = int(year)
                year = f"20{year}" if year_int <= 29 else f"19{year}"

            try:
                normalized_date = f"{int(month):02d}/{int(day):02d}/{year}"
                return datetime.strptime(normalized_date, '%m/%d/%Y').date()
            except ValueError:
                pass
    elif '-' in dob_str:
        try:
            return datetime.strptime(dob_str[:10], '%Y-%m-%d').date()
        except ValueError:
            pass

    raise ValueError(
        f"Invalid date format: {dob_str}. "
        f"Accepted formats: m/d/yy, mm/dd/yy, m/d/yyyy, mm/dd/yyyy, or yyyy-mm-dd"
    )


def calculate_age(date_of_birth: date, reference_date: Optional[date] = None) -> int:
    """
    Calculate age in whole years as of a reference date

    Args:
        date_of_birth: Date of birth
        reference_date: Date to calculate age as of (default: plan effective date)

    Returns:
        Age in years

    Raises:
        ValueError: If the birth date is after the reference date
    """
    if reference_date is None:
        reference_date = DEFAULT_REFERENCE_DATE

    age = reference_date.year - date_of_birth.year

    # Adjust if birthday hasn't occurred yet this year
    if (reference_date.month, reference_date.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1

    if age < 0:
        raise ValueError(f"DOB {date_of_birth.isoformat()} is after {reference_date.isoformat()}")

    return age


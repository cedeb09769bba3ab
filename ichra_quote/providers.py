"""
Input providers for the quote engine.

The engine consumes three collaborators, each with a single method:
- roster provider:  get_members() -> list of Member
- class provider:   get_classes() -> list of BenefitClass
- catalog provider: get_plans()   -> list of Plan (already narrowed to
  the group's rating area)

Any object with these methods works. The DataFrame-backed providers here
cover the common case of data already loaded into pandas.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from ichra_quote.census_schema import load_members_from_dataframe, roster_error_message
from ichra_quote.exceptions import ConfigurationError
from ichra_quote.quote_types import (
    AgeBand,
    BenefitClass,
    DataIssue,
    FilterSpec,
    QuoteInputs,
)
from ichra_quote.rate_table_loader import load_plans_from_dataframe
from ichra_quote.utils import parse_currency

logger = logging.getLogger(__name__)

CLASS_MONEY_COLUMNS = [
    'employee_contribution',
    'spouse_contribution',
    'children_contribution',
    'family_contribution',
]


class CensusRosterProvider:
    """Roster provider backed by a census DataFrame"""

    def __init__(self, census_df: pd.DataFrame):
        """
        Args:
            census_df: Census rows (any supported column aliases)
        """
        self.census_df = census_df
        self.issues: List[DataIssue] = []

    @property
    def errors(self) -> List[str]:
        """Rejected rows as "Row N: ..." messages"""
        return [roster_error_message(issue) for issue in self.issues]

    def get_members(self):
        members, self.issues = load_members_from_dataframe(self.census_df)
        return members


class DataFrameClassProvider:
    """
    Class provider backed by a classes DataFrame and an optional age-band
    DataFrame (class_id, min_age, max_age, employee_contribution,
    dependent_contribution).
    """

    def __init__(self, classes_df: pd.DataFrame, age_bands_df: Optional[pd.DataFrame] = None):
        self.classes_df = classes_df
        self.age_bands_df = age_bands_df

    def _money(self, value, column: str, class_id: str):
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return 0
        amount = parse_currency(str(value))
        if amount is None:
            raise ConfigurationError(
                f"Class {class_id}: {column} must be a dollar amount, got {value!r}",
                class_id=class_id,
            )
        return amount

    def _bands_by_class(self) -> Dict[str, List[AgeBand]]:
        bands: Dict[str, List[AgeBand]] = {}
        if self.age_bands_df is None or self.age_bands_df.empty:
            return bands

        for _, row in self.age_bands_df.iterrows():
            class_id = str(row['class_id'])
            try:
                min_age = int(row['min_age'])
                max_age = int(row['max_age'])
            except (ValueError, TypeError):
                raise ConfigurationError(
                    f"Class {class_id}: age band bounds must be whole numbers, "
                    f"got {row['min_age']!r}-{row['max_age']!r}",
                    class_id=class_id,
                )
            bands.setdefault(class_id, []).append(AgeBand(
                min_age=min_age,
                max_age=max_age,
                employee_contribution=self._money(row.get('employee_contribution'),
                                                  'employee_contribution', class_id),
                dependent_contribution=self._money(row.get('dependent_contribution'),
                                                   'dependent_contribution', class_id),
            ))
        return bands

    def get_classes(self):
        """
        Raises:
            ConfigurationError: If a class or band row is malformed
        """
        if self.classes_df is None or self.classes_df.empty:
            return []

        bands = self._bands_by_class()
        classes = []
        for _, row in self.classes_df.iterrows():
            class_id = str(row['class_id'])
            money = {col: self._money(row.get(col), col, class_id) for col in CLASS_MONEY_COLUMNS}
            parent = row.get('parent_class_id')
            classes.append(BenefitClass(
                class_id=class_id,
                name=str(row.get('name') or class_id),
                age_bands=tuple(bands.get(class_id, [])),
                parent_class_id=None if parent is None or pd.isna(parent) else str(parent),
                **money,
            ))

        unknown = set(bands) - {c.class_id for c in classes}
        if unknown:
            logger.warning(f"CLASS LOAD: Age bands reference unknown classes: {sorted(unknown)}")
        logger.info(f"CLASS LOAD: {len(classes)} classes loaded")
        return classes


class DataFrameCatalogProvider:
    """Catalog provider backed by a pricing DataFrame (one row per plan)"""

    def __init__(self, pricing_df: pd.DataFrame):
        self.pricing_df = pricing_df
        self.issues: List[DataIssue] = []

    def get_plans(self):
        plans, self.issues = load_plans_from_dataframe(self.pricing_df)
        return plans


def build_quote_inputs(roster_provider, class_provider, catalog_provider,
                       filter_spec: Optional[FilterSpec] = None,
                       reference_date: Optional[date] = None,
                       include_subsidy_estimates: bool = False) -> QuoteInputs:
    """
    Snapshot the providers into one immutable QuoteInputs bundle.

    Load-time data issues reported by the roster provider (rejected census
    rows) and the catalog provider (plans rejected while building rate
    tables) travel with the bundle.
    """
    members = roster_provider.get_members()
    classes = class_provider.get_classes()
    plans = catalog_provider.get_plans()
    load_issues = (
        list(getattr(roster_provider, 'issues', []))
        + list(getattr(catalog_provider, 'issues', []))
    )

    logger.info(
        f"INPUTS: {len(members)} members, {len(classes)} classes, {len(plans)} plans, "
        f"{len(load_issues)} load issues"
    )
    return QuoteInputs(
        members=tuple(members),
        classes=tuple(classes),
        plans=tuple(plans),
        filter_spec=filter_spec or FilterSpec(),
        reference_date=reference_date,
        load_issues=tuple(load_issues),
        include_subsidy_estimates=include_subsidy_estimates,
    )

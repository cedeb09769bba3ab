"""
Test Suite for the Census Schema
Column aliasing, family status codes and row-level error reporting.
"""

import unittest
from datetime import date
from decimal import Decimal

import pandas as pd

from ichra_quote.census_schema import (
    COL_MEMBER_ID,
    COL_TOBACCO,
    dataframe_to_members,
    has_column,
    load_members_from_dataframe,
    normalize_census_df,
    parse_flag,
)
from ichra_quote.quote_types import IssueKind


class TestNormalize(unittest.TestCase):

    def test_aliases_renamed(self):
        df = pd.DataFrame({'Employee Number': ['E1'], 'Tobacco': ['Y'], 'zip': ['30301']})
        normalized = normalize_census_df(df)
        self.assertEqual(sorted(normalized.columns), ['member_id', 'tobacco', 'zip_code'])
        # Original frame untouched
        self.assertIn('Employee Number', df.columns)

    def test_canonical_column_wins_over_alias(self):
        df = pd.DataFrame({'member_id': ['A'], 'emp_id': ['B']})
        normalized = normalize_census_df(df)
        self.assertEqual(list(normalized['member_id']), ['A'])
        self.assertIn('emp_id', normalized.columns)

    def test_has_column(self):
        df = pd.DataFrame({'Tobacco User': ['N']})
        self.assertTrue(has_column(df, COL_TOBACCO))
        self.assertFalse(has_column(df, COL_MEMBER_ID))

    def test_none_frame(self):
        self.assertTrue(normalize_census_df(None).empty)


class TestParseFlag(unittest.TestCase):

    def test_values(self):
        for value in ('Y', 'yes', 'TRUE', '1', True):
            self.assertTrue(parse_flag(value), value)
        for value in ('N', 'no', 'false', '0', '', None, False):
            self.assertFalse(parse_flag(value), value)

    def test_unrecognized(self):
        with self.assertRaises(ValueError):
            parse_flag('maybe')


class TestDataframeToMembers(unittest.TestCase):

    def setUp(self):
        self.df = pd.DataFrame([
            {'Employee Number': 'E1', 'First Name': 'Ana', 'Last Name': 'Diaz', 'DOB': '3/15/90',
             'Tobacco': 'N', 'Family Status': 'EE', 'Household Income': '$65,000',
             'Class': 'C1', 'Current ER Monthly': '$400', 'Current EE Monthly': '125.50',
             'Rating Area': 'Rating Area 7'},
            {'Employee Number': 'E2', 'First Name': 'Ben', 'Last Name': 'Ng', 'DOB': '1982-07-01',
             'Tobacco': 'Y', 'Family Status': 'F', 'Household Income': '98000',
             'Class': 'C2', 'Current ER Monthly': '', 'Current EE Monthly': '',
             'Rating Area': ''},
        ])

    def test_members_built(self):
        members, errors = dataframe_to_members(self.df)
        self.assertEqual(errors, [])
        ana, ben = members

        self.assertEqual(ana.member_id, 'E1')
        self.assertEqual(ana.display_name, 'Ana Diaz')
        self.assertEqual(ana.date_of_birth, date(1990, 3, 15))
        self.assertFalse(ana.tobacco)
        self.assertEqual(ana.family_size, 1)
        self.assertEqual(ana.household_income, Decimal('65000.00'))
        self.assertEqual(ana.class_id, 'C1')
        self.assertEqual(ana.rating_area_id, '7')
        self.assertEqual(ana.prior_coverage.total_cost, Decimal('525.50'))

        self.assertTrue(ben.tobacco)
        self.assertEqual(ben.family_size, 4)
        self.assertTrue(ben.has_spouse)
        self.assertEqual(ben.children_count, 2)
        self.assertEqual(ben.prior_coverage.total_cost, Decimal('0.00'))

    def test_explicit_family_columns_override_status(self):
        df = pd.DataFrame([{'member_id': 'E3', 'age': 40, 'family_status': 'F',
                            'family_size': 3, 'has_spouse': 'N'}])
        members, errors = dataframe_to_members(df)
        self.assertEqual(errors, [])
        self.assertEqual(members[0].family_size, 3)
        self.assertFalse(members[0].has_spouse)
        self.assertEqual(members[0].children_count, 2)

    def test_bad_rows_reported_with_row_number(self):
        """AC: Bad rows are skipped and reported as 'Row N' (header is row 1)"""
        df = pd.DataFrame([
            {'member_id': 'OK', 'age': 30},
            {'member_id': 'BAD_STATUS', 'age': 30, 'family_status': 'XX'},
            {'member_id': 'NO_AGE'},
            {'member_id': 'BAD_DOB', 'dob': '13/45/1990'},
        ])
        members, errors = dataframe_to_members(df)
        self.assertEqual([m.member_id for m in members], ['OK'])
        self.assertEqual(len(errors), 3)
        self.assertTrue(errors[0].startswith('Row 3:'))
        self.assertIn('family status', errors[0])
        self.assertTrue(errors[1].startswith('Row 4:'))
        self.assertTrue(errors[2].startswith('Row 5:'))

    def test_missing_member_id_column(self):
        members, errors = dataframe_to_members(pd.DataFrame([{'age': 30}]))
        self.assertEqual(members, [])
        self.assertEqual(errors, ['Missing required columns: member_id'])

    def test_rejected_rows_as_roster_issues(self):
        df = pd.DataFrame([
            {'member_id': 'OK', 'age': 30, 'tobacco': 'N'},
            {'member_id': 'BAD', 'age': 30, 'tobacco': 'maybe'},
        ])
        members, issues = load_members_from_dataframe(df)
        self.assertEqual([m.member_id for m in members], ['OK'])
        self.assertEqual(len(issues), 1)
        self.assertIs(issues[0].kind, IssueKind.ROSTER)
        self.assertEqual(issues[0].subject_id, 'Row 3')
        self.assertIn("'maybe'", issues[0].message)

    def test_missing_columns_issue(self):
        _, issues = load_members_from_dataframe(pd.DataFrame([{'age': 30}]))
        self.assertEqual(issues[0].subject_id, 'census')

    def test_empty_frame(self):
        self.assertEqual(dataframe_to_members(pd.DataFrame()), ([], []))


if __name__ == '__main__':
    unittest.main()

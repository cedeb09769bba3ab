"""
Test Suite for the Rating Table Resolver
Covers age-table lookup, family-tier mapping and rate-table invariants.

Run with: python -m pytest tests/test_rating.py
"""

import unittest
from decimal import Decimal

from ichra_quote.constants import RATE_TABLE_SIZE
from ichra_quote.exceptions import RatingDataError
from ichra_quote.quote_types import AgeRateTable, FamilyTierTable, Plan, RatePair
from ichra_quote.rating import determine_family_tier, resolve_premium

from factories import make_plan, stepped_age_table


# =============================================================================
# AC: Age-indexed tables
# =============================================================================

class TestAgeTableLookup(unittest.TestCase):
    """Age tables are looked up by integer age, clamped to 0-65"""

    def setUp(self):
        self.plan = make_plan("AGE", age_rates=stepped_age_table(base=200, step=10, tobacco_surcharge=50))

    def test_regular_rate_by_age(self):
        """AC: Age 34 non-tobacco returns the age-34 regular rate"""
        self.assertEqual(resolve_premium(self.plan, 34, tobacco=False), Decimal("540.00"))

    def test_tobacco_rate_by_age(self):
        """AC: Tobacco users get the tobacco sub-rate"""
        self.assertEqual(resolve_premium(self.plan, 34, tobacco=True), Decimal("590.00"))

    def test_age_above_65_uses_age_65(self):
        """AC: Ages above the table use the age-65 rate"""
        self.assertEqual(resolve_premium(self.plan, 70), resolve_premium(self.plan, 65))
        self.assertEqual(resolve_premium(self.plan, 65), Decimal("850.00"))

    def test_negative_age_clamps_to_zero(self):
        self.assertEqual(resolve_premium(self.plan, -1), Decimal("200.00"))

    def test_age_table_used_for_single_coverage_when_both_tables(self):
        """AC: Plans with both tables age-rate individuals"""
        plan = make_plan("BOTH", premium=500, family_rates={'individual': 650, 'family': 1500})
        self.assertEqual(resolve_premium(plan, 40, family_size=1), Decimal("500"))

    def test_family_table_used_for_households_when_both_tables(self):
        """AC: Plans with both tables structure-rate households"""
        plan = make_plan("BOTH", premium=500, family_rates={'individual': 650, 'family': 1500})
        self.assertEqual(
            resolve_premium(plan, 40, family_size=4, has_spouse=True),
            Decimal("1500.00"),
        )

    def test_age_only_plan_prices_households_by_member_age(self):
        plan = make_plan("AGE_ONLY", premium=500)
        self.assertEqual(resolve_premium(plan, 40, family_size=3, has_spouse=True), Decimal("500"))


# =============================================================================
# AC: Family-structure tables
# =============================================================================

class TestFamilyTier(unittest.TestCase):
    """Family composition maps to exactly one tier"""

    def test_single_adult_is_individual(self):
        self.assertEqual(determine_family_tier(34, 1), 'individual')

    def test_child_alone_is_child_only(self):
        self.assertEqual(determine_family_tier(12, 1), 'child_only')

    def test_spouse_without_children_is_couple(self):
        self.assertEqual(determine_family_tier(40, 2, has_spouse=True), 'couple')

    def test_spouse_and_children_is_family(self):
        self.assertEqual(determine_family_tier(40, 4, has_spouse=True), 'family')

    def test_children_without_spouse_is_single_parent(self):
        self.assertEqual(determine_family_tier(40, 3, has_spouse=False), 'single_parent')

    def test_explicit_children_count_overrides_family_size(self):
        """AC: An explicit zero children keeps a 2-person spouse household a couple"""
        self.assertEqual(determine_family_tier(40, 3, has_spouse=True, num_children=0), 'couple')

    def test_invalid_family_size(self):
        with self.assertRaises(ValueError):
            determine_family_tier(40, 0)


class TestFamilyTablePricing(unittest.TestCase):

    def test_tier_price_returned(self):
        plan = make_plan("FAM", family_rates={'individual': 450, 'couple': 900})
        self.assertEqual(resolve_premium(plan, 34, family_size=2, has_spouse=True), Decimal("900.00"))

    def test_tier_mismatch_is_ineligible_not_error(self):
        """AC: No matching tier -> None (plan excluded for this member)"""
        plan = make_plan("FAM", family_rates={'couple': 600})
        self.assertIsNone(resolve_premium(plan, 34, family_size=1))

    def test_tobacco_single_tier(self):
        plan = make_plan("FAM", family_rates={'individual': 450, 'individual_tobacco': 520})
        self.assertEqual(resolve_premium(plan, 34, tobacco=True), Decimal("520.00"))

    def test_tobacco_single_falls_back_to_individual(self):
        plan = make_plan("FAM", family_rates={'individual': 450})
        self.assertEqual(resolve_premium(plan, 34, tobacco=True), Decimal("450.00"))

    def test_fixed_price_applies_to_every_structure(self):
        """AC: A fixed price takes precedence over tier prices"""
        plan = make_plan("FIXED", family_rates={'fixed': 700, 'family': 1500})
        self.assertEqual(resolve_premium(plan, 34), Decimal("700.00"))
        self.assertEqual(resolve_premium(plan, 34, family_size=4, has_spouse=True), Decimal("700.00"))


# =============================================================================
# AC: Rate data errors
# =============================================================================

class TestRatingDataErrors(unittest.TestCase):
    """Corrupt rate data raises RatingDataError, never coerces to zero"""

    def test_plan_without_tables_raises(self):
        plan = Plan(plan_id="EMPTY", name="Empty")
        with self.assertRaises(RatingDataError) as ctx:
            resolve_premium(plan, 34)
        self.assertEqual(ctx.exception.plan_id, "EMPTY")

    def test_tobacco_below_regular_raises_at_construction(self):
        """AC: Age-65 tobacco $1,100 < regular $1,200 is rejected at load"""
        regular = [Decimal("300")] * RATE_TABLE_SIZE
        tobacco = [Decimal("350")] * RATE_TABLE_SIZE
        regular[65] = Decimal("1200")
        tobacco[65] = Decimal("1100")
        with self.assertRaises(RatingDataError) as ctx:
            AgeRateTable.from_columns(regular, tobacco, plan_id="BAD")
        self.assertIn("age 65", str(ctx.exception))
        self.assertEqual(ctx.exception.plan_id, "BAD")

    def test_wrong_table_length_raises(self):
        with self.assertRaises(RatingDataError):
            AgeRateTable(rates=tuple(RatePair(Decimal("1"), Decimal("1")) for _ in range(65)))

    def test_negative_cell_raises(self):
        rates = [RatePair(Decimal("100"), Decimal("100"))] * RATE_TABLE_SIZE
        rates[10] = RatePair(Decimal("-1"), Decimal("0"))
        with self.assertRaises(RatingDataError):
            AgeRateTable(rates=tuple(rates))

    def test_negative_family_tier_raises(self):
        with self.assertRaises(RatingDataError):
            FamilyTierTable(tiers=(('individual', Decimal("-5")),))

    def test_unknown_family_tier_raises(self):
        with self.assertRaises(RatingDataError):
            FamilyTierTable(tiers=(('grandparent', Decimal("5")),))

    def test_tobacco_single_below_single_raises(self):
        with self.assertRaises(RatingDataError):
            FamilyTierTable(tiers=(('individual', Decimal("500")), ('individual_tobacco', Decimal("400"))))

    def test_every_age_satisfies_tobacco_invariant(self):
        """AC: For all ages in a valid table, tobacco >= regular"""
        table = stepped_age_table(base=150, step=7, tobacco_surcharge=25)
        for age in range(RATE_TABLE_SIZE):
            self.assertGreaterEqual(table.rate_for(age, True), table.rate_for(age, False))


class TestReferencePremium(unittest.TestCase):

    def test_age_table_reference_is_age_21(self):
        plan = make_plan("AGE", age_rates=stepped_age_table(base=200, step=10))
        self.assertEqual(plan.reference_premium, Decimal("410.00"))

    def test_family_table_reference_prefers_fixed_then_individual(self):
        self.assertEqual(make_plan("F1", family_rates={'fixed': 300, 'individual': 400}).reference_premium,
                         Decimal("300.00"))
        self.assertEqual(make_plan("F2", family_rates={'individual': 400, 'family': 900}).reference_premium,
                         Decimal("400.00"))

    def test_family_table_reference_falls_back_to_cheapest(self):
        plan = make_plan("F3", family_rates={'couple': 800, 'family': 1200})
        self.assertEqual(plan.reference_premium, Decimal("800.00"))

    def test_no_tables_has_no_reference(self):
        self.assertIsNone(Plan(plan_id="X").reference_premium)


if __name__ == '__main__':
    unittest.main()

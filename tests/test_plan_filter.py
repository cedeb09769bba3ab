"""
Test Suite for the Plan Filter Engine
Each FilterSpec dimension is exercised on its own, then combined.
"""

import unittest
from decimal import Decimal

from ichra_quote.plan_filter import (
    available_filter_values,
    filter_plans,
    filter_stats,
    first_failing_dimension,
)
from ichra_quote.quote_types import FilterSpec, MarketSegment, TriState, ValueRange

from factories import make_plan


def catalog():
    return [
        make_plan("S1", premium=420, metal_level="silver", carrier="Acme Health", carrier_id="acme",
                  plan_type="HMO", deductible=3000, network_size="large", hsa_eligible=False),
        make_plan("G1", premium=560, metal_level="gold", carrier="Blue Ridge", carrier_id="br",
                  plan_type="PPO", deductible=1000, network_size="medium", on_market=False, off_market=True),
        make_plan("S2", premium=400, metal_level="silver", carrier="Blue Ridge", carrier_id="br",
                  plan_type="EPO", deductible=4500, network_size="small", prescription_coverage=False),
        make_plan("G2", premium=610, metal_level="gold", carrier="Acme Health", carrier_id="acme",
                  plan_type="HMO", deductible=750, network_size="large", ichra_compliant=False),
        make_plan("S3", premium=380, metal_level="silver", carrier="Summit", carrier_id="summit",
                  plan_type="HDHP", deductible=6000, network_size="medium", hsa_eligible=True),
    ]


def ids(plans):
    return [p.plan_id for p in plans]


class TestFilterDimensions(unittest.TestCase):

    def setUp(self):
        self.catalog = catalog()

    def test_no_filters_returns_catalog(self):
        self.assertEqual(ids(filter_plans(self.catalog, FilterSpec())), ["S1", "G1", "S2", "G2", "S3"])

    def test_gold_filter_example(self):
        """AC: metal_levels={'gold'} on 2 gold + 3 silver yields the 2 gold plans in catalog order"""
        result = filter_plans(self.catalog, FilterSpec(metal_levels=frozenset({'gold'})))
        self.assertEqual(ids(result), ["G1", "G2"])

    def test_metal_level_case_insensitive(self):
        result = filter_plans(self.catalog, FilterSpec(metal_levels=frozenset({'Gold'})))
        self.assertEqual(ids(result), ["G1", "G2"])

    def test_carrier_by_name_or_id(self):
        by_name = filter_plans(self.catalog, FilterSpec(carriers=frozenset({'Blue Ridge'})))
        by_id = filter_plans(self.catalog, FilterSpec(carriers=frozenset({'br'})))
        self.assertEqual(ids(by_name), ["G1", "S2"])
        self.assertEqual(ids(by_id), ["G1", "S2"])

    def test_plan_type(self):
        result = filter_plans(self.catalog, FilterSpec(plan_types=frozenset({'hmo'})))
        self.assertEqual(ids(result), ["S1", "G2"])

    def test_market_segment(self):
        on = filter_plans(self.catalog, FilterSpec(market=MarketSegment.ON_MARKET))
        off = filter_plans(self.catalog, FilterSpec(market=MarketSegment.OFF_MARKET))
        self.assertEqual(ids(on), ["S1", "S2", "G2", "S3"])
        self.assertEqual(ids(off), ["G1"])

    def test_premium_range_inclusive(self):
        spec = FilterSpec(premium_range=ValueRange(Decimal("400"), Decimal("560")))
        self.assertEqual(ids(filter_plans(self.catalog, spec)), ["S1", "G1", "S2"])

    def test_premium_range_open_bound(self):
        spec = FilterSpec(premium_range=ValueRange(maximum=Decimal("400")))
        self.assertEqual(ids(filter_plans(self.catalog, spec)), ["S2", "S3"])

    def test_deductible_range(self):
        spec = FilterSpec(deductible_range=ValueRange(minimum=Decimal("4500")))
        self.assertEqual(ids(filter_plans(self.catalog, spec)), ["S2", "S3"])

    def test_network_size(self):
        spec = FilterSpec(network_size="Large")
        self.assertEqual(ids(filter_plans(self.catalog, spec)), ["S1", "G2"])

    def test_network_size_any_is_unconstrained(self):
        self.assertFalse(FilterSpec(network_size="any").is_filtered)

    def test_hsa_tristate(self):
        required = filter_plans(self.catalog, FilterSpec(hsa_eligible=TriState.REQUIRED))
        forbidden = filter_plans(self.catalog, FilterSpec(hsa_eligible=TriState.FORBIDDEN))
        self.assertEqual(ids(required), ["S3"])
        self.assertEqual(ids(forbidden), ["S1", "G1", "S2", "G2"])

    def test_prescription_tristate(self):
        forbidden = filter_plans(self.catalog, FilterSpec(prescription_coverage=TriState.FORBIDDEN))
        self.assertEqual(ids(forbidden), ["S2"])

    def test_ichra_compliant_only(self):
        result = filter_plans(self.catalog, FilterSpec(ichra_compliant_only=True))
        self.assertNotIn("G2", ids(result))
        self.assertEqual(len(result), 4)

    def test_combined_filters_are_conjunctive(self):
        spec = FilterSpec(metal_levels=frozenset({'silver'}), carriers=frozenset({'acme', 'summit'}),
                          hsa_eligible=TriState.FORBIDDEN)
        self.assertEqual(ids(filter_plans(self.catalog, spec)), ["S1"])

    def test_empty_result_is_valid(self):
        spec = FilterSpec(metal_levels=frozenset({'platinum'}))
        self.assertEqual(filter_plans(self.catalog, spec), [])

    def test_first_failing_dimension(self):
        spec = FilterSpec(metal_levels=frozenset({'gold'}), plan_types=frozenset({'PPO'}))
        self.assertEqual(first_failing_dimension(self.catalog[0], spec), 'metal_level')
        self.assertEqual(first_failing_dimension(self.catalog[3], spec), 'plan_type')
        self.assertIsNone(first_failing_dimension(self.catalog[1], spec))


class TestFilterProperties(unittest.TestCase):
    """AC: Filtering is pure, order-preserving and monotone"""

    def setUp(self):
        self.catalog = catalog()

    def test_deterministic(self):
        spec = FilterSpec(carriers=frozenset({'Acme Health', 'Summit'}))
        self.assertEqual(filter_plans(self.catalog, spec), filter_plans(self.catalog, spec))

    def test_tightening_never_increases_count(self):
        """AC: Tightening any single dimension never grows the candidate set"""
        base = FilterSpec(metal_levels=frozenset({'silver', 'gold'}))
        base_count = len(filter_plans(self.catalog, base))
        tightened = [
            base.replace(metal_levels=frozenset({'silver'})),
            base.replace(carriers=frozenset({'Acme Health'})),
            base.replace(plan_types=frozenset({'HMO'})),
            base.replace(market=MarketSegment.ON_MARKET),
            base.replace(premium_range=ValueRange(maximum=Decimal("500"))),
            base.replace(deductible_range=ValueRange(minimum=Decimal("1000"))),
            base.replace(network_size="medium"),
            base.replace(hsa_eligible=TriState.REQUIRED),
            base.replace(prescription_coverage=TriState.REQUIRED),
            base.replace(ichra_compliant_only=True),
        ]
        for spec in tightened:
            self.assertLessEqual(len(filter_plans(self.catalog, spec)), base_count)

    def test_replace_returns_new_spec(self):
        base = FilterSpec()
        changed = base.replace(metal_levels=frozenset({'gold'}))
        self.assertIsNot(base, changed)
        self.assertEqual(base.metal_levels, frozenset())


class TestFilterSpec(unittest.TestCase):

    def test_active_filter_count(self):
        spec = FilterSpec(metal_levels=frozenset({'gold', 'silver'}), market=MarketSegment.ON_MARKET,
                          hsa_eligible=TriState.REQUIRED)
        self.assertEqual(spec.active_filter_count, 4)
        self.assertTrue(spec.is_filtered)
        self.assertFalse(FilterSpec().is_filtered)

    def test_from_dict(self):
        spec = FilterSpec.from_dict({
            'metal_levels': ['gold'],
            'market': 'off-market',
            'premium_max': 600,
            'hsa_eligible': True,
            'prescription_coverage': None,
        })
        self.assertEqual(spec.metal_levels, frozenset({'gold'}))
        self.assertIs(spec.market, MarketSegment.OFF_MARKET)
        self.assertEqual(spec.premium_range.maximum, Decimal("600.00"))
        self.assertIs(spec.hsa_eligible, TriState.REQUIRED)
        self.assertIs(spec.prescription_coverage, TriState.UNCONSTRAINED)

    def test_invalid_range_rejected(self):
        with self.assertRaises(ValueError):
            ValueRange(Decimal("10"), Decimal("5"))


class TestFilterStats(unittest.TestCase):

    def test_stats(self):
        plans = catalog()
        spec = FilterSpec(metal_levels=frozenset({'gold'}))
        stats = filter_stats(plans, filter_plans(plans, spec), spec)
        self.assertEqual(stats.total_plans, 5)
        self.assertEqual(stats.filtered_count, 2)
        self.assertEqual(stats.filter_percentage, Decimal("40.0"))
        self.assertEqual(stats.active_filter_count, 1)

    def test_stats_empty_catalog(self):
        stats = filter_stats([], [], FilterSpec())
        self.assertEqual(stats.filter_percentage, Decimal("0.0"))

    def test_available_values(self):
        values = available_filter_values(catalog())
        # Known vocabulary values keep their canonical order
        self.assertEqual(values['metal_levels'], ['silver', 'gold'])
        self.assertEqual(values['plan_types'], ['HMO', 'PPO', 'EPO', 'HDHP'])
        self.assertEqual(values['network_sizes'], ['small', 'medium', 'large'])
        self.assertEqual(values['premium_bounds'], (Decimal("380"), Decimal("610")))

    def test_available_values_unknown_entries_sort_last(self):
        plans = catalog() + [make_plan("X1", premium=500, metal_level="diamond", plan_type="MSP")]
        values = available_filter_values(plans)
        self.assertEqual(values['metal_levels'], ['silver', 'gold', 'diamond'])
        self.assertEqual(values['plan_types'][-1], 'MSP')


class TestMarketSegmentDefault(unittest.TestCase):

    def test_not_on_market_is_off_market(self):
        """AC: A plan not sold on the exchange shows under the off-market filter"""
        plans = [make_plan("ON", premium=400), make_plan("OFF", premium=410, on_market=False)]
        self.assertFalse(plans[0].off_market)
        self.assertTrue(plans[1].off_market)
        self.assertEqual(ids(filter_plans(plans, FilterSpec(market=MarketSegment.OFF_MARKET))), ["OFF"])
        self.assertEqual(ids(filter_plans(plans, FilterSpec(market=MarketSegment.ON_MARKET))), ["ON"])

    def test_explicit_flags_kept(self):
        plan = make_plan("BOTH", premium=400, on_market=True, off_market=True)
        self.assertTrue(plan.on_market)
        self.assertTrue(plan.off_market)


if __name__ == '__main__':
    unittest.main()

"""
Test suite for the market analytics core.

Tests build small custom DimensionTables and hand-made FactRecords, so the
full ~985K-row default table is never generated here.

Tests cover:
  1. Seeded PRNG (reference stream, determinism, reset)
  2. Dimension tables (leaves, neutral lookups, brand tiers, channels)
  3. Fact generator (ids, derived fields, draw order, determinism)
  4. Fact cache (lazy build, invalidate, failure, re-entrancy, concurrent callers)
  5. Filter engine (no-op law, plain fields, hierarchical selections)
  6. Aggregation (segment, stacked, percentage, waterfall, growth, bubbles)
  7. Dimension hierarchy graph (cascading options)
  8. Filter options (distinct values, defaults)
  9. Settings (defaults, env overrides, validation)
  10. Chart builders (one trace per segment, waterfall measures)

Run: python -m pytest tests/test_market.py -v
"""

import threading
import time
from dataclasses import replace

import pytest
from pydantic import ValidationError

from market.aggregation import (
    BY_VALUE, BY_VOLUME, DEFAULT_BASE_VALUE, DEFAULT_INCREMENTS,
    attractiveness_points, channel_subtype_series, growth_series, measure_for,
    measure_label, percentage_series, segment_year_series, stacked_share_series,
    total_for_year, waterfall_series, yearly_totals,
)
from market.cache import FactCache
from market.charts import (
    bubble_chart, bubble_sizes, growth_chart, grouped_bar_chart, share_bar_chart,
    stacked_bar_chart, waterfall_chart,
)
from market.config import MarketSettings, load_settings
from market.dimensions import (
    BRANDS, CHANNEL_GROUPS, COMPANIES, DEFAULT_DIMENSIONS, END_USERS, SALES_CHANNELS,
    DimensionTables, ProductFactors, RegionFactors, channel_group, leaves,
)
from market.filters import Leaf, Pair, compile_criteria, decode_selection, filter_records
from market.generator import (
    FACT_COLUMNS, FIRST_RECORD_ID, FactRecord, count_leaf_combinations,
    generate_fact_table, records_to_frame, round2,
)
from market.hierarchy import DimensionGraph
from market.options import default_filters, default_years, unique_options
from market.prng import MODULUS, SeededRandom

# Two leaf combinations: one per region, single year / category / material / tier / application
TWO_RECORD_DIMS = DimensionTables(
    years=(2024,),
    regions={"North": ["N1"], "South": ["S1"]},
    product_categories={"Cat": []},
    blade_materials=("Steel",),
    handle_lengths=("Mass",),
    applications=("Potable Water Distribution",),
)

SMALL_DIMS = DimensionTables(
    years=(2023, 2024, 2025),
    regions={"Northeast": ["New York", "Maine"], "West": []},
    product_categories={"Valve Solutions": ["Gate Valves", "Check Valves"], "Corporation Stops": []},
    blade_materials=("PVC", "Steel"),
    handle_lengths=("Mass", "Luxury"),
    applications=("Others",),
)

RECORD_DEFAULTS = dict(
    record_id=1, year=2024, region="North", country="N1",
    product_category="Cat", sub_product_category="Sub",
    blade_material="Steel", handle_length="Mass", application="App",
    end_user="Others", distribution_channel_type="Direct Sales",
    distribution_channel="E-commerce", brand="Mueller", company="Krausz USA",
    price=10.0, volume_units=100, qty=90, revenue=1000.0,
    market_value_usd=1000.0, market_share_pct=5.0, cagr=3.0, yoy_growth=2.0,
)


def make_record(**overrides) -> FactRecord:
    return FactRecord(**{**RECORD_DEFAULTS, **overrides})


def by_market_value(r):
    return r.market_value_usd


@pytest.fixture(scope="module")
def small_table():
    """Module-scoped fixture: the SMALL_DIMS table, generated once."""
    return generate_fact_table(SMALL_DIMS, SeededRandom(42))


# ═══════════════════════════════════════════════════════════════════════════════
# 1. SEEDED PRNG
# ═══════════════════════════════════════════════════════════════════════════════

class TestSeededRandom:
    def test_reference_states_for_seed_42(self):
        rng = SeededRandom(42)
        states = []
        for _ in range(3):
            rng.next()
            states.append(rng.state)
        assert states == [206659, 190736, 223713]

    def test_values_are_state_over_modulus(self):
        rng = SeededRandom(42)
        assert rng.next() == 206659 / MODULUS

    def test_values_in_unit_interval(self):
        rng = SeededRandom(7)
        for _ in range(1000):
            v = rng.next()
            assert 0.0 <= v < 1.0

    def test_same_seed_same_stream(self):
        a, b = SeededRandom(123), SeededRandom(123)
        assert [a.next() for _ in range(50)] == [b.next() for _ in range(50)]

    def test_instances_do_not_share_state(self):
        a, b = SeededRandom(42), SeededRandom(42)
        a.next()
        a.next()
        assert b.next() == 206659 / MODULUS

    def test_reset_rewinds(self):
        rng = SeededRandom(42)
        first = [rng.next() for _ in range(5)]
        rng.reset()
        assert [rng.next() for _ in range(5)] == first

    def test_scaled_uses_one_draw(self):
        rng, ref = SeededRandom(42), SeededRandom(42)
        assert rng.scaled(10, 90) == 10 + ref.next() * 90
        assert rng.state == ref.state

    def test_choice_index_is_floor_of_draw(self):
        rng, ref = SeededRandom(42), SeededRandom(42)
        options = ["a", "b", "c", "d", "e"]
        assert rng.choice(options) == options[int(ref.next() * len(options))]

    def test_choice_on_empty_returns_default_and_consumes_draw(self):
        rng, ref = SeededRandom(42), SeededRandom(42)
        assert rng.choice(()) == ""
        assert rng.choice([], default="n/a") == "n/a"
        ref.next()
        ref.next()
        assert rng.state == ref.state


# ═══════════════════════════════════════════════════════════════════════════════
# 2. DIMENSION TABLES
# ═══════════════════════════════════════════════════════════════════════════════

class TestDimensionTables:
    def test_empty_child_list_is_own_leaf(self):
        assert leaves({"A": ["a1", "a2"], "B": []}) == [("A", "a1"), ("A", "a2"), ("B", "B")]

    def test_default_product_pairs(self):
        pairs = DEFAULT_DIMENSIONS.product_pairs()
        assert len(pairs) == 19
        assert ("Corporation Stops", "Corporation Stops") in pairs
        assert ("Valve Solutions", "Gate Valves") in pairs

    def test_default_country_pairs(self):
        assert len(DEFAULT_DIMENSIONS.country_pairs()) == 24

    def test_default_years(self):
        assert DEFAULT_DIMENSIONS.years == tuple(range(2021, 2036))
        assert DEFAULT_DIMENSIONS.first_year == 2021

    def test_unknown_keys_are_neutral(self):
        dims = DEFAULT_DIMENSIONS
        assert dims.product_factors("Unknown") == ProductFactors(1.0, 1.0, 1.0)
        assert dims.region_factors("Atlantis") == RegionFactors(1.0, 1.0)
        assert dims.material_factors("Unobtainium").price == 1.0
        assert dims.application_factors("Space").volume == 1.0
        assert dims.price_tier_factor("Ultra") == 1.0
        assert dims.brand_premium("No Name") == 1.0

    def test_known_factors(self):
        assert DEFAULT_DIMENSIONS.price_tier_factor("Luxury") == 1.5
        assert DEFAULT_DIMENSIONS.region_factors("South").volume == 1.5
        assert DEFAULT_DIMENSIONS.product_factors("Valve Solutions").price == 1.2

    @pytest.mark.parametrize("index,expected", [(0, 0.8), (1, 1.2), (2, 1.6), (3, 0.8), (9, 0.8)])
    def test_brand_premium_tiers_repeat(self, index, expected):
        assert DEFAULT_DIMENSIONS.brand_premium(BRANDS[index]) == pytest.approx(expected)

    def test_channel_group_by_label_text(self):
        assert channel_group("Offline Retail") == "Offline"
        assert channel_group("Direct Sales") == "Online"

    def test_default_sales_channels_map_to_online_channels(self):
        for sales_channel in SALES_CHANNELS:
            assert DEFAULT_DIMENSIONS.channels_for(sales_channel) == CHANNEL_GROUPS["Online"]

    def test_group_without_channels_is_its_own_channel(self):
        dims = DimensionTables(channel_groups={"Offline": [], "Online": ["Web"]})
        assert dims.channels_for("Offline Stores") == ["Offline"]

    def test_with_years(self):
        dims = DEFAULT_DIMENSIONS.with_years(2030, 3)
        assert dims.years == (2030, 2031, 2032)
        assert dims.regions == DEFAULT_DIMENSIONS.regions


# ═══════════════════════════════════════════════════════════════════════════════
# 3. FACT GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════

class TestGenerator:
    def test_two_record_scenario(self):
        records = generate_fact_table(TWO_RECORD_DIMS, SeededRandom(42))
        assert len(records) == 2
        assert [r.record_id for r in records] == [100000, 100001]
        assert [(r.region, r.country) for r in records] == [("North", "N1"), ("South", "S1")]
        for r in records:
            assert r.sub_product_category == "Cat"
            assert r.product_type == "Cat - Cat"
            assert r.year == 2024

    def test_row_count_matches_leaf_combinations(self, small_table):
        # 3 years x 3 geographies x 3 product types x 2 materials x 2 tiers x 1 application
        assert count_leaf_combinations(SMALL_DIMS) == 108
        assert len(small_table) == 108

    def test_default_leaf_count(self):
        assert count_leaf_combinations(DEFAULT_DIMENSIONS) == 15 * 24 * 19 * 6 * 3 * 8

    def test_ids_strictly_increasing(self, small_table):
        ids = [r.record_id for r in small_table]
        assert ids == list(range(FIRST_RECORD_ID, FIRST_RECORD_ID + len(small_table)))

    def test_custom_first_record_id(self):
        records = generate_fact_table(TWO_RECORD_DIMS, SeededRandom(42), first_record_id=5)
        assert [r.record_id for r in records] == [5, 6]

    def test_derived_fields(self, small_table):
        for r in small_table:
            assert r.product_type == f"{r.product_category} - {r.sub_product_category}"
            assert r.value == r.market_value_usd

    def test_region_without_countries(self, small_table):
        west = [r for r in small_table if r.region == "West"]
        assert west
        assert all(r.country == "West" for r in west)

    def test_generation_order(self, small_table):
        first = small_table[0]
        assert (first.year, first.country, first.sub_product_category,
                first.blade_material, first.handle_length) == (2023, "New York", "Gate Valves", "PVC", "Mass")
        assert small_table[1].handle_length == "Luxury"
        assert small_table[-1].year == 2025

    def test_first_record_follows_draw_order(self):
        record = generate_fact_table(TWO_RECORD_DIMS, SeededRandom(42))[0]
        ref = SeededRandom(42)
        dims = TWO_RECORD_DIMS

        assert record.end_user == END_USERS[int(ref.next() * len(END_USERS))]
        sales_channel = SALES_CHANNELS[int(ref.next() * len(SALES_CHANNELS))]
        assert record.distribution_channel_type == sales_channel
        channels = dims.channels_for(sales_channel)
        assert record.distribution_channel == channels[int(ref.next() * len(channels))]
        brand = BRANDS[int(ref.next() * len(BRANDS))]
        assert record.brand == brand
        assert record.company == COMPANIES[int(ref.next() * len(COMPANIES))]

        base_price = 10 + ref.next() * 90
        price = base_price * 1.0 * 1.3 * dims.brand_premium(brand) * 0.8 * 1
        assert record.price == round2(price)

    def test_revenue_uses_unrounded_price(self, small_table):
        # revenue = round2(unrounded price * volume); the rounded price can only drift by 0.005/unit
        for r in small_table:
            assert abs(r.revenue - r.price * r.volume_units) <= 0.005 * r.volume_units + 0.01

    def test_market_value_within_perturbation(self, small_table):
        for r in small_table:
            assert 0.9 * r.revenue - 0.01 <= r.market_value_usd <= 1.1 * r.revenue + 0.01

    def test_measure_ranges(self, small_table):
        for r in small_table:
            assert r.volume_units >= 100
            assert 0.8 * r.volume_units - 1 <= r.qty < 1.2 * r.volume_units
            assert -5 <= r.yoy_growth <= 15

    def test_deterministic_for_seed(self, small_table):
        assert generate_fact_table(SMALL_DIMS, SeededRandom(42)) == small_table

    def test_different_seed_differs(self, small_table):
        assert generate_fact_table(SMALL_DIMS, SeededRandom(43)) != small_table

    def test_records_are_immutable(self, small_table):
        with pytest.raises(AttributeError):
            small_table[0].price = 0.0

    @pytest.mark.parametrize("x,expected", [(0.125, 0.13), (0.375, 0.38), (-0.125, -0.12), (-1.234, -1.23), (3.0, 3.0)])
    def test_round2_half_up(self, x, expected):
        assert round2(x) == pytest.approx(expected)

    def test_records_to_frame(self, small_table):
        df = records_to_frame(small_table)
        assert list(df.columns) == FACT_COLUMNS
        assert len(df) == len(small_table)
        assert df["record_id"].iloc[0] == FIRST_RECORD_ID
        assert (df["value"] == df["market_value_usd"]).all()


# ═══════════════════════════════════════════════════════════════════════════════
# 4. FACT CACHE
# ═══════════════════════════════════════════════════════════════════════════════

class TestFactCache:
    def test_lazy_single_build(self):
        cache = FactCache(TWO_RECORD_DIMS)
        assert not cache.is_loaded
        first = cache.get()
        second = cache.get()
        assert first is second
        assert len(first) == 2
        assert cache.generation_count == 1

    def test_invalidate_regenerates_same_table(self):
        cache = FactCache(TWO_RECORD_DIMS, seed=42)
        first = cache.get()
        cache.invalidate()
        assert not cache.is_loaded
        second = cache.get()
        assert second is not first
        assert second == first
        assert cache.generation_count == 2

    def test_injected_rng_gives_fresh_randomness(self):
        cache = FactCache(TWO_RECORD_DIMS, rng=SeededRandom(42))
        first = cache.get()
        cache.invalidate()
        assert cache.get() != first

    def test_failure_caches_empty_table(self):
        def failing(dims, rng, first_id):
            raise RuntimeError("boom")

        cache = FactCache(TWO_RECORD_DIMS, generate=failing)
        assert cache.get() == []
        assert cache.is_loaded
        assert cache.last_error == "RuntimeError: boom"
        # Empty result is cached; no retry until invalidated
        cache.get()
        assert cache.generation_count == 1

    def test_invalidate_clears_error(self):
        calls = []

        def flaky(dims, rng, first_id):
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("first build fails")
            return generate_fact_table(dims, rng, first_id)

        cache = FactCache(TWO_RECORD_DIMS, generate=flaky)
        assert cache.get() == []
        cache.invalidate()
        assert cache.last_error is None
        assert len(cache.get()) == 2
        assert cache.last_error is None

    def test_reentrant_get_returns_empty(self):
        inner = []

        def reentrant(dims, rng, first_id):
            inner.append(cache.get())
            return generate_fact_table(dims, rng, first_id)

        cache = FactCache(TWO_RECORD_DIMS, generate=reentrant)
        assert len(cache.get()) == 2
        assert inner == [[]]
        assert cache.generation_count == 1

    def test_concurrent_gets_share_one_generation(self):
        def slow(dims, rng, first_id):
            time.sleep(0.2)
            return generate_fact_table(dims, rng, first_id)

        cache = FactCache(TWO_RECORD_DIMS, generate=slow)
        results = [None] * 8

        def worker(idx):
            results[idx] = cache.get()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.generation_count == 1
        assert len(results[0]) == 2
        assert all(r is results[0] for r in results)

    def test_empty_sampled_dimension_still_generates(self):
        cache = FactCache(replace(TWO_RECORD_DIMS, end_users=(), brands=(), companies=()))
        records = cache.get()
        assert cache.last_error is None
        assert len(records) == 2
        assert {r.end_user for r in records} == {""}
        assert {r.brand for r in records} == {""}


# ═══════════════════════════════════════════════════════════════════════════════
# 5. FILTER ENGINE
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="module")
def product_records():
    return [
        make_record(record_id=1, product_category="Valve Solutions", sub_product_category="Gate Valves"),
        make_record(record_id=2, product_category="Valve Solutions", sub_product_category="Check Valves"),
        make_record(record_id=3, product_category="Corporation Stops", sub_product_category="Corporation Stops"),
        make_record(record_id=4, product_category="Hydrants & Flow Control", sub_product_category="Fire Hydrants",
                    year=2025, end_user="Municipal Water Utilities"),
    ]


def ids(records):
    return [r.record_id for r in records]


class TestFilterEngine:
    @pytest.mark.parametrize("criteria", [None, {}, {"year": []}, {"year": None, "region": ""}])
    def test_empty_criteria_is_identity(self, product_records, criteria):
        assert filter_records(product_records, criteria) == product_records

    def test_unknown_field_ignored(self, product_records):
        assert filter_records(product_records, {"colour": ["red"]}) == product_records

    def test_year_label_matches_int_year(self, product_records):
        assert ids(filter_records(product_records, {"year": ["2025"]})) == [4]
        assert ids(filter_records(product_records, {"year": [2025]})) == [4]

    def test_single_value_criterion(self, product_records):
        assert ids(filter_records(product_records, {"year": 2024})) == [1, 2, 3]

    def test_fields_are_anded(self, product_records):
        criteria = {"year": [2024], "product_category": ["Valve Solutions", "Hydrants & Flow Control"]}
        assert ids(filter_records(product_records, criteria)) == [1, 2]

    def test_order_preserved(self, product_records):
        reordered = list(reversed(product_records))
        assert ids(filter_records(reordered, {"year": [2024]})) == [3, 2, 1]

    def test_country_falls_back_to_region(self):
        records = [make_record(record_id=1, region="West", country=""), make_record(record_id=2)]
        assert ids(filter_records(records, {"country": ["West"]})) == [1]

    def test_decode_selection(self):
        assert decode_selection("Valve Solutions") == Leaf("Valve Solutions")
        assert decode_selection("Valve Solutions - Gate Valves") == Pair("Valve Solutions", "Gate Valves")
        assert decode_selection("A - B - C") == Pair("A", "B - C")
        assert decode_selection(2024) == Leaf("2024")

    def test_category_selects_all_children(self, product_records):
        assert ids(filter_records(product_records, {"product_type": ["Valve Solutions"]})) == [1, 2]

    def test_pair_selects_one_child(self, product_records):
        assert ids(filter_records(product_records, {"product_type": ["Valve Solutions - Gate Valves"]})) == [1]

    def test_pair_requires_parent(self, product_records):
        assert filter_records(product_records, {"product_type": ["Hydrants & Flow Control - Gate Valves"]}) == []

    def test_leaf_category_without_children(self, product_records):
        assert ids(filter_records(product_records, {"product_type": ["Corporation Stops"]})) == [3]
        assert ids(filter_records(product_records, {"product_type": ["Corporation Stops - Corporation Stops"]})) == [3]

    def test_hierarchical_selections_are_ored(self, product_records):
        criteria = {"product_type": ["Valve Solutions - Gate Valves", "Corporation Stops"]}
        assert ids(filter_records(product_records, criteria)) == [1, 3]

    def test_end_user_group_label(self, product_records):
        criteria = {"end_user": ["Utilities - Municipal Water Utilities"]}
        assert ids(filter_records(product_records, criteria)) == [4]

    def test_end_user_bare_group_matches_substring(self, product_records):
        assert ids(filter_records(product_records, {"end_user": ["Utilities"]})) == [4]
        assert ids(filter_records(product_records, {"end_user": ["Others"]})) == [1, 2, 3]
        assert filter_records(product_records, {"end_user": ["Industrial"]}) == []

    def test_distribution_channel_leaf_or_type(self):
        records = [
            make_record(record_id=1, distribution_channel_type="Direct Sales", distribution_channel="E-commerce"),
            make_record(record_id=2, distribution_channel_type="Offline Retail", distribution_channel="Direct Sales"),
        ]
        assert ids(filter_records(records, {"distribution_channel": ["E-commerce"]})) == [1]
        assert ids(filter_records(records, {"distribution_channel": ["Direct Sales"]})) == [1, 2]
        assert ids(filter_records(records, {"distribution_channel": ["Offline Retail - Direct Sales"]})) == [2]

    def test_compile_skips_empty_and_unknown(self):
        predicates = compile_criteria({"year": [], "colour": ["red"], "region": ["North"]})
        assert len(predicates) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# 6. AGGREGATION
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="module")
def xy_records():
    """2024: X=10, Y=30 (Y split over two records)."""
    return [
        make_record(record_id=1, region="X", market_value_usd=10.0),
        make_record(record_id=2, region="Y", market_value_usd=20.0),
        make_record(record_id=3, region="Y", market_value_usd=10.0),
    ]


def by_region(r):
    return r.region


class TestAggregation:
    def test_segment_year_scenario(self, xy_records):
        result = segment_year_series(xy_records, by_region, by_market_value)
        assert result.rows == [{"year": "2024", "X": 10, "Y": 30}]
        assert result.segments == ["X", "Y"]

    def test_missing_cells_are_zero(self):
        records = [make_record(year=2024, region="X"), make_record(year=2025, region="Y")]
        result = segment_year_series(records, by_region, by_market_value)
        assert result.rows == [
            {"year": "2024", "X": 1000.0, "Y": 0},
            {"year": "2025", "X": 0, "Y": 1000.0},
        ]

    def test_explicit_segments_cleaned_and_sorted(self, xy_records):
        result = segment_year_series(xy_records, by_region, by_market_value, ["Y", "", None, "X"])
        assert result.segments == ["X", "Y"]

    def test_empty_segment_values_skipped(self):
        records = [make_record(region=""), make_record(region="X")]
        assert segment_year_series(records, by_region, by_market_value).segments == ["X"]

    def test_total_preserved(self, small_table):
        result = segment_year_series(small_table, lambda r: r.product_category, by_market_value)
        total = sum(row[s] for row in result.rows for s in result.segments)
        assert total == pytest.approx(sum(r.market_value_usd for r in small_table))

    def test_years_ascending(self, small_table):
        result = segment_year_series(list(reversed(small_table)), by_region, by_market_value)
        assert [row["year"] for row in result.rows] == ["2023", "2024", "2025"]

    def test_empty_input(self):
        result = segment_year_series([], by_region, by_market_value)
        assert result.rows == []
        assert result.segments == []

    def test_stacked_prunes_all_zero_segments(self, xy_records):
        result = stacked_share_series(xy_records, by_region, by_market_value, ["X", "Y", "Z"])
        assert result.segments == ["X", "Y"]
        assert result.rows[0]["Z"] == 0

    def test_percentage_scenario(self, xy_records):
        result = percentage_series(xy_records, by_region, by_market_value)
        assert result.rows == [
            {"year": 2024, "region": "X", "value": 25.0},
            {"year": 2024, "region": "Y", "value": 75.0},
        ]

    def test_percentages_sum_to_100(self, small_table):
        result = percentage_series(small_table, by_region, by_market_value)
        for year in (2023, 2024, 2025):
            total = sum(row["value"] for row in result.rows if row["year"] == year)
            assert total == pytest.approx(100.0)

    def test_explicit_segments_still_sum_to_100(self):
        records = [
            make_record(record_id=1, region="X", market_value_usd=10.0),
            make_record(record_id=2, region="Y", market_value_usd=30.0),
            make_record(record_id=3, region="Z", market_value_usd=60.0),
        ]
        result = percentage_series(records, by_region, by_market_value, ["X", "Y"])
        assert result.rows == [
            {"year": 2024, "region": "X", "value": 25.0},
            {"year": 2024, "region": "Y", "value": 75.0},
        ]
        assert sum(row["value"] for row in result.rows) == pytest.approx(100.0)

    def test_percentage_zero_total(self):
        records = [make_record(region="X", market_value_usd=0.0), make_record(region="Y", market_value_usd=0.0)]
        result = percentage_series(records, by_region, by_market_value)
        assert [row["value"] for row in result.rows] == [0, 0]

    def test_percentage_raw_values_and_key(self, xy_records):
        result = percentage_series(xy_records, by_region, by_market_value, segment_key="segment", as_percentage=False)
        assert result.rows[1] == {"year": 2024, "segment": "Y", "value": 30.0}

    def test_waterfall_deltas_and_fallback(self):
        records = [
            make_record(year=2024, market_value_usd=100.0),
            make_record(year=2025, market_value_usd=150.0),
        ]
        result = waterfall_series(
            records, by_market_value, base_year=2024, end_year=2026,
            default_increments=(5.0, 7.0), fallback_scale=2.0,
        )
        assert result.rows == [
            {"year": "2024", "base_value": 100.0, "total_value": 100.0, "is_base": True},
            {"year": "2025", "incremental_value": 50.0, "total_value": 150.0},
            {"year": "2026", "incremental_value": 14.0, "total_value": 164.0},
            {"year": "2027", "base_value": 164.0, "total_value": 164.0, "is_total": True},
        ]
        assert result.total_increment == 64.0

    def test_waterfall_empty_uses_defaults(self):
        result = waterfall_series([], by_market_value)
        assert len(result.rows) == 9
        assert result.rows[0]["base_value"] == DEFAULT_BASE_VALUE
        assert result.rows[-1]["year"] == "2032"
        assert result.total_increment == pytest.approx(sum(DEFAULT_INCREMENTS))

    def test_waterfall_cumulative_law(self, small_table):
        result = waterfall_series(small_table, by_market_value, base_year=2023, end_year=2025)
        base = result.rows[0]["base_value"]
        running = base
        for row in result.rows[1:-1]:
            running += row["incremental_value"]
            assert row["total_value"] == pytest.approx(running)
        assert result.rows[-1]["total_value"] == pytest.approx(base + result.total_increment)

    def test_yearly_totals(self, xy_records):
        assert yearly_totals(xy_records, by_market_value) == {2024: 40.0}
        assert total_for_year(xy_records, by_market_value, 2024) == 40.0
        assert total_for_year(xy_records, by_market_value, 1999) == 0.0

    def test_measures(self):
        r = make_record(market_value_usd=2500.0, volume_units=42)
        assert measure_for(BY_VALUE)(r) == 2.5
        assert measure_for(BY_VOLUME)(r) == 42
        assert measure_for("Nonsense")(r) == 2.5
        assert measure_label(BY_VALUE) == "Market Size (US$ Million)"
        assert measure_label(BY_VOLUME) == "Market Volume (Units)"

    def test_channel_subtype_series(self):
        records = [
            make_record(year=2024, distribution_channel_type="Direct Sales", distribution_channel="E-commerce"),
            make_record(year=2025, distribution_channel_type="Offline Stores", distribution_channel="Dealers"),
        ]
        online = channel_subtype_series(records, "Online", by_market_value)
        assert online.segments == ["E-commerce"]
        assert online.rows == [{"year": "2024", "E-commerce": 1000.0}, {"year": "2025", "E-commerce": 0}]
        offline = channel_subtype_series(records, "Offline", by_market_value)
        assert offline.segments == ["Dealers"]

    def test_attractiveness_points(self):
        records = [
            make_record(year=2024, region="A", market_value_usd=100.0, cagr=2.0, market_share_pct=4.0),
            make_record(year=2025, region="A", market_value_usd=160.0, cagr=4.0, market_share_pct=6.0),
            make_record(year=2024, region="B", market_value_usd=50.0),
        ]
        points = attractiveness_points(records, by_region, by_market_value)
        assert [p["segment"] for p in points] == ["A", "B"]
        assert points[0]["cagr_index"] == pytest.approx(3.0)
        assert points[0]["market_share_index"] == pytest.approx(5.0)
        assert points[0]["incremental_opportunity"] == pytest.approx(60.0)
        assert points[1]["incremental_opportunity"] == pytest.approx(-50.0)

    def test_attractiveness_empty(self):
        assert attractiveness_points([], by_region, by_market_value) == []

    def test_growth_series(self):
        records = [
            make_record(year=2024, market_value_usd=100.0),
            make_record(year=2025, market_value_usd=110.0),
            make_record(year=2026, market_value_usd=121.0),
        ]
        result = growth_series(records, by_market_value)
        assert result.entities == ["All"]
        first, second, third = result.rows
        assert first["yoy_pct"] is None and first["cagr_pct"] is None
        assert second["yoy_pct"] == pytest.approx(10.0)
        assert third["cagr_pct"] == pytest.approx(10.0)

    def test_growth_per_entity(self, xy_records):
        result = growth_series(xy_records, by_market_value, by_region)
        assert result.entities == ["X", "Y"]
        assert [row["value"] for row in result.rows] == [10.0, 30.0]


# ═══════════════════════════════════════════════════════════════════════════════
# 7. DIMENSION HIERARCHY GRAPH
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="module")
def graph():
    return DimensionGraph(DEFAULT_DIMENSIONS)


class TestDimensionGraph:
    def test_node_counts(self, graph):
        assert len(graph.get_nodes_by_type("region")) == 4
        assert len(graph.get_nodes_by_type("country")) == 24
        assert len(graph.get_nodes_by_type("category")) == 7
        assert len(graph.get_nodes_by_type("subcategory")) == 19

    def test_countries_for_regions(self, graph):
        assert graph.countries_for_regions(["Northeast"]) == sorted(
            ["New York", "Pennsylvania", "Massachusetts", "New Jersey", "Connecticut", "Maine"]
        )
        assert len(graph.countries_for_regions([])) == 24

    def test_region_of(self, graph):
        assert graph.region_of("Texas") == "South"
        assert graph.region_of("Atlantis") is None

    def test_country_option_labels(self, graph):
        options = graph.country_options(["West"])
        assert ("Nevada", "Nevada (West)") in options
        assert len(options) == 6

    def test_subcategories_cascade(self, graph):
        assert graph.subcategories_for(["Hydrants & Flow Control"]) == ["Fire Hydrants", "Hydrant Repair Kits"]
        assert graph.subcategories_for(["Corporation Stops"]) == ["Corporation Stops"]

    def test_product_category_hierarchy(self, graph):
        hierarchy = graph.product_category_hierarchy()
        assert list(hierarchy) == list(DEFAULT_DIMENSIONS.product_categories)
        assert hierarchy["Corporation Stops"] == ["Corporation Stops - Corporation Stops"]
        assert "Valve Solutions - Gate Valves" in hierarchy["Valve Solutions"]

    def test_channel_groups(self, graph):
        groups = graph.channel_groups()
        assert sorted(groups["Online"]) == sorted(CHANNEL_GROUPS["Online"])
        assert graph.group_of("E-commerce") == "Online"
        assert graph.group_of("Carrier Pigeon") is None

    def test_edges_point_child_to_parent(self, graph):
        attrs = graph.graph.edges["country:Texas", "region:South"]
        assert attrs["edge_type"] == "IN_REGION"


# ═══════════════════════════════════════════════════════════════════════════════
# 8. FILTER OPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class TestFilterOptions:
    def test_unique_options(self, small_table):
        options = unique_options(small_table)
        assert options.years == [2023, 2024, 2025]
        assert options.regions == ["Northeast", "West"]
        assert options.countries == ["Maine", "New York", "West"]
        assert options.product_types == [
            "Corporation Stops - Corporation Stops",
            "Valve Solutions - Check Valves",
            "Valve Solutions - Gate Valves",
        ]
        assert not options.is_empty

    def test_empty_values_excluded(self):
        options = unique_options([make_record(end_user=""), make_record(end_user="Others")])
        assert options.end_users == ["Others"]

    def test_empty_table(self):
        assert unique_options([]).is_empty

    @pytest.mark.parametrize("years,expected", [
        (list(range(2021, 2036)), [2024, 2025]),
        ([2030, 2031, 2032], [2031, 2032]),
        ([2024], [2024]),
        ([], []),
    ])
    def test_default_years(self, years, expected):
        assert default_years(years) == expected

    def test_default_filters_take_first_two(self, small_table):
        defaults = default_filters(unique_options(small_table))
        assert defaults["year"] == [2024, 2025]
        assert defaults["product_category"] == ["Corporation Stops", "Valve Solutions"]
        assert defaults["blade_material"] == ["PVC", "Steel"]
        assert defaults["application"] == ["Others"]


# ═══════════════════════════════════════════════════════════════════════════════
# 9. SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

class TestSettings:
    def test_defaults(self):
        settings = MarketSettings()
        assert settings.seed == 42
        assert settings.first_record_id == 100000
        assert settings.end_year == 2035
        assert settings.dimensions().years == DEFAULT_DIMENSIONS.years

    def test_env_overrides(self):
        settings = load_settings({"MARKET_SEED": "7", "MARKET_NUM_YEARS": "3", "MARKET_LOG_LEVEL": "debug"})
        assert settings.seed == 7
        assert settings.dimensions().years == (2021, 2022, 2023)
        assert settings.log_level == "DEBUG"

    def test_unrelated_env_ignored(self):
        assert load_settings({"SEED": "9"}).seed == 42

    @pytest.mark.parametrize("overrides", [
        {"seed": -1},
        {"num_years": 0},
        {"num_years": 51},
        {"log_level": "LOUD"},
        {"base_year": 2031, "forecast_end_year": 2031},
    ])
    def test_invalid_settings_rejected(self, overrides):
        with pytest.raises(ValidationError):
            MarketSettings(**overrides)


# ═══════════════════════════════════════════════════════════════════════════════
# 10. CHART BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════

class TestCharts:
    def test_grouped_bars_one_trace_per_segment(self, xy_records):
        result = segment_year_series(xy_records, by_region, by_market_value)
        fig = grouped_bar_chart(result.rows, result.segments, "By Region", "US$")
        assert [trace.name for trace in fig.data] == ["X", "Y"]
        assert fig.layout.barmode == "group"

    def test_stacked_bars(self, xy_records):
        result = stacked_share_series(xy_records, by_region, by_market_value)
        assert stacked_bar_chart(result.rows, result.segments).layout.barmode == "stack"

    def test_share_bars(self, xy_records):
        result = percentage_series(xy_records, by_region, by_market_value)
        fig = share_bar_chart(result.rows, "region")
        assert len(fig.data) == 2
        assert list(fig.data[1].y) == [75.0]

    def test_waterfall_measures(self):
        result = waterfall_series([], by_market_value)
        fig = waterfall_chart(result.rows)
        measures = list(fig.data[0].measure)
        assert measures[0] == "absolute"
        assert measures[-1] == "total"
        assert measures[1:-1] == ["relative"] * 7

    def test_bubble_sizes(self):
        assert list(bubble_sizes([0, 100])) == [12.0, 60.0]
        assert list(bubble_sizes([5, 5])) == [36.0, 36.0]
        assert list(bubble_sizes([-10, 100])) == [12.0, 60.0]
        assert bubble_sizes([]).size == 0

    def test_bubble_chart(self):
        points = [
            {"segment": "A", "cagr_index": 3.0, "market_share_index": 5.0, "incremental_opportunity": 60.0},
            {"segment": "B", "cagr_index": 1.0, "market_share_index": 2.0, "incremental_opportunity": 10.0},
        ]
        fig = bubble_chart(points)
        assert [trace.name for trace in fig.data] == ["A", "B"]

    def test_growth_chart_two_traces_per_entity(self, xy_records):
        result = growth_series(xy_records, by_market_value, by_region)
        assert len(growth_chart(result.rows, result.entities).data) == 4

"""Tests for deterministic basket selection and replication planning.

Tests cover:
- FNV-1a hashing and the Mulberry32 stream
- Basket weights and share flooring
- Plan determinism, cash conservation and degenerate inputs
"""

import math
from unittest.mock import Mock

import numpy as np
import pytest

from teenvest.config.settings import ReplicationConfig, WeightingScheme
from teenvest.phantom import (
    DEFAULT_INSTRUMENTS,
    Instrument,
    PortfolioReplicationPlanner,
    SourceType,
    StaticInstrumentCatalog,
    basket_weights,
    format_ratio,
    mulberry32,
    seeded_sample,
    stable_hash,
)
from teenvest.phantom.planner import floor_to_precision


@pytest.fixture
def planner():
    return PortfolioReplicationPlanner()


class TestStableHash:
    """Tests for the FNV-1a hash."""

    @pytest.mark.parametrize(
        "value,expected",
        [("", 0x811C9DC5), ("a", 0xE40C292C), ("foobar", 0xBF9CF968)],
    )
    def test_known_vectors(self, value, expected):
        assert stable_hash(value) == expected

    def test_fits_in_32_bits(self):
        assert 0 <= stable_hash("guru-with-a-much-longer-identifier") < 2**32


class TestMulberry32:
    """Tests for the seeded generator."""

    def test_same_seed_same_sequence(self):
        a, b = mulberry32(42), mulberry32(42)
        assert [a() for _ in range(20)] == [b() for _ in range(20)]

    def test_values_in_unit_interval(self):
        rng = mulberry32(stable_hash("guru"))
        for _ in range(500):
            assert 0.0 <= rng() < 1.0

    def test_sample_without_replacement(self):
        picks = seeded_sample(list(range(10)), 10, seed=99)
        assert sorted(picks) == list(range(10))

    def test_sample_count_capped(self):
        assert len(seeded_sample(["a", "b"], 5, seed=1)) == 2
        assert seeded_sample(["a", "b"], -1, seed=1) == []


class TestBasketWeights:
    """Tests for weighting schemes."""

    def test_rank_weights(self):
        weights = basket_weights(3, WeightingScheme.RANK)
        np.testing.assert_allclose(weights, [3 / 6, 2 / 6, 1 / 6])

    def test_equal_weights(self):
        np.testing.assert_allclose(basket_weights(4, WeightingScheme.EQUAL), [0.25] * 4)

    @pytest.mark.parametrize("count", [1, 6, 15])
    def test_weights_sum_to_one(self, count):
        assert basket_weights(count, WeightingScheme.RANK).sum() == pytest.approx(1.0)

    def test_empty_basket(self):
        assert len(basket_weights(0, WeightingScheme.RANK)) == 0


class TestFloorToPrecision:
    def test_never_rounds_up(self):
        assert floor_to_precision(1.23459, 4) == 1.2345
        assert floor_to_precision(0.00009, 4) == 0.0


class TestFormatRatio:
    def test_user_larger(self):
        assert format_ratio(20_000, 10_000) == "2.00 : 1"

    def test_target_larger(self):
        assert format_ratio(2_500, 10_000) == "1 : 4.00"

    def test_degenerate(self):
        assert format_ratio(0, 10_000) == "-"
        assert format_ratio(10_000, 0) == "-"


class TestPortfolioReplicationPlanner:
    """Tests for replication planning."""

    def test_same_target_same_plan(self, planner):
        first = planner.plan("guru-1", 50_000, 10_000)
        second = PortfolioReplicationPlanner().plan("guru-1", 50_000, 10_000)
        assert first.to_dict() == second.to_dict()

    def test_basket_size_and_universe(self, planner):
        plan = planner.plan("guru-1", 50_000, 10_000)
        symbols = [h.symbol for h in plan.holdings]
        universe = {i.symbol for i in DEFAULT_INSTRUMENTS}
        assert len(symbols) == 6
        assert len(set(symbols)) == 6
        assert set(symbols) <= universe

    def test_cash_is_conserved(self, planner):
        plan = planner.plan("guru-2", 123_456.78, 9_876.54)
        assert plan.cash_remainder >= 0
        assert plan.phantom_total + plan.cash_remainder == pytest.approx(9_876.54)

    def test_ratio(self, planner):
        plan = planner.plan("guru-1", 50_000, 10_000)
        assert plan.ratio == pytest.approx(0.2)

    def test_rank_weighting_favors_first_pick(self, planner):
        plan = planner.plan("guru-1", 50_000, 10_000)
        weights = [h.weight for h in plan.holdings]
        assert weights == sorted(weights, reverse=True)
        assert weights[0] == pytest.approx(6 / 21)
        assert plan.holdings[0].target_allocation == pytest.approx(50_000 * 6 / 21)

    def test_shares_floored_to_four_places(self, planner):
        plan = planner.plan("guru-3", 1_000_000, 3_333.33)
        for holding in plan.holdings:
            assert holding.phantom_shares == round(holding.phantom_shares, 4)
            assert holding.phantom_value <= 3_333.33 * holding.weight + 1e-9

    def test_selection_ignores_catalog_order(self):
        reversed_catalog = StaticInstrumentCatalog(list(reversed(DEFAULT_INSTRUMENTS)))
        a = PortfolioReplicationPlanner().plan("guru-9", 10_000, 10_000)
        b = PortfolioReplicationPlanner(catalog=reversed_catalog).plan("guru-9", 10_000, 10_000)
        assert [h.symbol for h in a.holdings] == [h.symbol for h in b.holdings]

    def test_holdings_count_capped_by_universe(self, planner):
        plan = planner.plan("guru-1", 10_000, 10_000, holdings_count=50)
        assert len(plan.holdings) == len(DEFAULT_INSTRUMENTS)

    def test_equal_weighting_config(self):
        config = ReplicationConfig(holdings_count=5, weighting=WeightingScheme.EQUAL)
        plan = PortfolioReplicationPlanner(config=config).plan("guru-1", 10_000, 10_000)
        assert plan.weighting == WeightingScheme.EQUAL
        assert all(h.weight == pytest.approx(0.2) for h in plan.holdings)

    def test_tiny_capital_buys_nothing(self, planner):
        plan = planner.plan("guru-1", 50_000, 0.01)
        assert plan.is_all_cash
        assert plan.cash_remainder == pytest.approx(0.01)

    def test_unpriced_symbols_omitted(self):
        catalog = Mock()
        catalog.universe.return_value = ["AAA", "BBB"]
        catalog.price_of.side_effect = lambda s: None if s == "AAA" else 50.0
        catalog.get.return_value = Instrument("BBB", "Bee Corp", 50.0)

        plan = PortfolioReplicationPlanner(catalog=catalog).plan("guru-1", 1_000, 1_000)

        assert [h.symbol for h in plan.holdings] == ["BBB"]
        assert plan.holdings[0].company_name == "Bee Corp"
        assert plan.phantom_total + plan.cash_remainder == pytest.approx(1_000)

    @pytest.mark.parametrize(
        "target_id,target_value,user_value",
        [
            ("", 50_000, 10_000),
            ("guru-1", 0, 10_000),
            ("guru-1", -5, 10_000),
            ("guru-1", math.nan, 10_000),
            ("guru-1", 50_000, 0),
        ],
    )
    def test_degenerate_input_is_all_cash(self, planner, target_id, target_value, user_value):
        plan = planner.plan(target_id, target_value, user_value)
        assert plan.is_all_cash
        assert plan.ratio == 0.0
        assert plan.cash_remainder == max(0.0, user_value)

    def test_to_state_records_copy_source(self, planner, clock):
        plan = planner.plan("guru-1", 50_000, 10_000)
        state = plan.to_state(now=clock())

        assert state.source.type == SourceType.COPY
        assert state.source.target_id == "guru-1"
        assert state.source.ratio == pytest.approx(0.2)
        assert state.source.guru_value == 50_000
        assert state.starting_balance == 10_000
        assert state.cash_balance == plan.cash_remainder
        assert len(state.holdings) == len(plan.holdings)
        assert state.last_updated_at == clock()

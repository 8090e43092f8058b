"""Unit tests for the LMSR cost/price functions."""

import pytest

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.fixed_point import LN2_WAD, div_wad, mul_wad
from src.pm_common.enums import Outcome
from src.pm_common.errors import ArithmeticOverflowError
from src.pm_common.wad import WAD

B = div_wad(500 * WAD, LN2_WAD)  # market seeded with 500


class TestCost:
    def test_empty_market_costs_b_ln2(self) -> None:
        assert lmsr.cost(0, 0, B) == mul_wad(B, LN2_WAD)

    def test_symmetric(self) -> None:
        assert lmsr.cost(70 * WAD, 10 * WAD, B) == lmsr.cost(10 * WAD, 70 * WAD, B)

    def test_large_imbalance_does_not_overflow(self) -> None:
        q = 10**6 * WAD
        c = lmsr.cost(q, 0, 100 * WAD)
        assert q <= c <= q + WAD

    def test_non_positive_b_raises(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            lmsr.cost(0, 0, 0)


class TestPrice:
    def test_even_market_is_half(self) -> None:
        assert lmsr.price(0, 0, B) == WAD // 2

    def test_prices_sum_to_one(self) -> None:
        p_yes, p_no = lmsr.prices(123 * WAD, 45 * WAD, B)
        assert abs(p_yes + p_no - WAD) <= 10
        assert p_yes > p_no

    def test_extreme_imbalance_stays_inside_open_interval(self) -> None:
        p_yes, p_no = lmsr.prices(10**6 * WAD, 0, 100 * WAD)
        assert 0 < p_no < p_yes < WAD


class TestTradeCost:
    def test_buy_cost_positive_and_increasing(self) -> None:
        small = lmsr.trade_cost(0, 0, B, Outcome.YES, 10 * WAD)
        large = lmsr.trade_cost(0, 0, B, Outcome.YES, 20 * WAD)
        assert 0 < small < large

    def test_buy_cost_is_superlinear(self) -> None:
        first = lmsr.trade_cost(0, 0, B, Outcome.YES, 100 * WAD)
        second = lmsr.trade_cost(100 * WAD, 0, B, Outcome.YES, 100 * WAD)
        assert second > first

    def test_sell_mirrors_buy(self) -> None:
        bought = lmsr.trade_cost(5 * WAD, 0, B, Outcome.YES, 40 * WAD)
        sold = lmsr.trade_cost(45 * WAD, 0, B, Outcome.YES, -40 * WAD)
        assert sold == -bought

    def test_no_side_moves_q_no(self) -> None:
        assert lmsr.shifted(1, 2, Outcome.NO, 5) == (1, 7)
        assert lmsr.shifted(1, 2, Outcome.YES, 5) == (6, 2)


class TestSearchMaxQuantity:
    def test_finds_largest_affordable(self) -> None:
        assert lmsr.search_max_quantity(lambda q: 3 * q, 10, 100) == 3

    def test_upper_bound_affordable(self) -> None:
        assert lmsr.search_max_quantity(lambda q: q, 1000, 100) == 100

    def test_nothing_affordable(self) -> None:
        assert lmsr.search_max_quantity(lambda q: q + 5, 4, 100) == 0
        assert lmsr.search_max_quantity(lambda q: q, 10, 0) == 0

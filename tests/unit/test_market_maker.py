"""Unit tests for LmsrMarketMaker."""

import pytest

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.fixed_point import LN2_WAD, div_wad
from src.pm_amm.engine.market_maker import ROUNDING_GUARD, LmsrMarketMaker
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    CapabilityAlreadyBoundError,
    DeadlineExpiredError,
    MarketNotActiveError,
    MarketNotFoundError,
    QuantityOutOfBoundsError,
    SlippageExceededError,
    StateError,
    UnauthorizedCallerError,
    ValidationError,
)
from src.pm_common.wad import WAD, calculate_fee

ENGINE = "engine"
NOW = 1_000
HALF = WAD // 2


def _maker(**kwargs: int) -> LmsrMarketMaker:
    mm = LmsrMarketMaker(ENGINE, **kwargs)
    mm.create_market(ENGINE, "m1", 1, 500 * WAD, NOW)
    return mm


@pytest.fixture
def mm() -> LmsrMarketMaker:
    return _maker()


class TestCreateMarket:
    def test_b_derived_from_funding(self, mm: LmsrMarketMaker) -> None:
        market = mm.get_market("m1")
        assert market.b == div_wad(500 * WAD, LN2_WAD)
        assert market.total_collateral == 500 * WAD
        assert mm.get_prices("m1") == (HALF, HALF)

    def test_only_authorized_caller(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(UnauthorizedCallerError):
            mm.create_market("mallory", "m2", 1, 500 * WAD, NOW)

    def test_capability_cannot_be_rebound(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(CapabilityAlreadyBoundError):
            mm.capability.bind("mallory")
        assert mm.capability.holder == ENGINE

    def test_duplicate_and_unfunded_rejected(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(ValidationError):
            mm.create_market(ENGINE, "m1", 1, 500 * WAD, NOW)
        with pytest.raises(ValidationError):
            mm.create_market(ENGINE, "m2", 1, 0, NOW)

    def test_b_is_immutable(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(AttributeError):
            mm.get_market("m1").b = 1

    def test_unknown_market(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(MarketNotFoundError):
            mm.get_price("nope", Outcome.YES)

    def test_fee_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            LmsrMarketMaker(ENGINE, fee_bps=10_000)


class TestBuy:
    def test_exact_buy(self, mm: LmsrMarketMaker) -> None:
        quoted = mm.calc_buy_cost("m1", Outcome.YES, 10 * WAD)
        result = mm.buy(ENGINE, "m1", Outcome.YES, 10 * WAD, quoted, NOW, NOW)
        assert result.quantity == 10 * WAD
        assert result.amount + result.fee == quoted
        market = mm.get_market("m1")
        assert market.q_yes == 10 * WAD
        assert market.total_collateral == 500 * WAD + result.amount
        assert result.price_yes > HALF > result.price_no

    def test_budget_cap_buys_largest_affordable(self, mm: LmsrMarketMaker) -> None:
        cap = mm.calc_buy_cost("m1", Outcome.YES, 10 * WAD)
        result = mm.buy(ENGINE, "m1", Outcome.YES, 100 * WAD, cap, NOW, NOW)
        assert 10 * WAD <= result.quantity < 11 * WAD
        assert result.amount + result.fee <= cap

    def test_zero_budget_aborts_without_change(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(SlippageExceededError):
            mm.buy(ENGINE, "m1", Outcome.YES, 10 * WAD, 0, NOW, NOW)
        assert mm.get_market("m1").q_yes == 0

    def test_expired_deadline(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(DeadlineExpiredError):
            mm.buy(ENGINE, "m1", Outcome.YES, WAD, 10 * WAD, NOW + 1, NOW)

    def test_unauthorized(self, mm: LmsrMarketMaker) -> None:
        with pytest.raises(UnauthorizedCallerError):
            mm.buy("mallory", "m1", Outcome.YES, WAD, 10 * WAD, NOW, NOW)

    def test_quantity_bound(self) -> None:
        mm = _maker(max_q=100 * WAD)
        with pytest.raises(QuantityOutOfBoundsError):
            mm.calc_buy_cost("m1", Outcome.YES, 101 * WAD)
        with pytest.raises(QuantityOutOfBoundsError):
            mm.buy(ENGINE, "m1", Outcome.YES, 101 * WAD, 10**6 * WAD, NOW, NOW)
        assert mm.get_market("m1").q_yes == 0

    def test_oracle_sees_pre_trade_price(self, mm: LmsrMarketMaker) -> None:
        mm.buy(ENGINE, "m1", Outcome.YES, 10 * WAD, 100 * WAD, NOW + 600, NOW + 600)
        oracle = mm.get_market("m1").oracle
        assert oracle.cumulative_yes == HALF * 600
        assert oracle.last_update_time == NOW + 600

    def test_calc_buy_amount(self, mm: LmsrMarketMaker) -> None:
        assert mm.calc_buy_amount("m1", Outcome.YES, 0) == 0
        tokens = mm.calc_buy_amount("m1", Outcome.YES, 100 * WAD)
        assert mm.calc_buy_cost("m1", Outcome.YES, tokens) <= 100 * WAD
        assert tokens > 100 * WAD  # price below 1


class TestSell:
    def test_round_trip_never_profits(self, mm: LmsrMarketMaker) -> None:
        bought = mm.buy(ENGINE, "m1", Outcome.YES, 50 * WAD, 100 * WAD, NOW, NOW)
        sold = mm.sell(ENGINE, "m1", Outcome.YES, 50 * WAD, 0, NOW, NOW)
        assert sold.amount == bought.amount - ROUNDING_GUARD
        market = mm.get_market("m1")
        assert market.q_yes == 0
        assert market.total_collateral == 500 * WAD + ROUNDING_GUARD

    def test_min_return_guard(self, mm: LmsrMarketMaker) -> None:
        mm.buy(ENGINE, "m1", Outcome.YES, 50 * WAD, 100 * WAD, NOW, NOW)
        with pytest.raises(SlippageExceededError):
            mm.sell(ENGINE, "m1", Outcome.YES, 50 * WAD, 100 * WAD, NOW, NOW)
        assert mm.get_market("m1").q_yes == 50 * WAD

    def test_sell_quote_matches_execution(self, mm: LmsrMarketMaker) -> None:
        mm.buy(ENGINE, "m1", Outcome.NO, 30 * WAD, 100 * WAD, NOW, NOW)
        quoted = mm.calc_sell_return("m1", Outcome.NO, 10 * WAD)
        result = mm.sell(ENGINE, "m1", Outcome.NO, 10 * WAD, quoted, NOW, NOW)
        assert result.amount - result.fee == quoted


class TestFees:
    def test_buy_fee_on_top_of_cost(self) -> None:
        mm = _maker(fee_bps=100)
        market = mm.get_market("m1")
        pool = lmsr.trade_cost(0, 0, market.b, Outcome.YES, 10 * WAD) + ROUNDING_GUARD
        assert mm.calc_buy_cost("m1", Outcome.YES, 10 * WAD) == pool + calculate_fee(pool, 100)

    def test_sell_fee_deducted(self) -> None:
        mm = _maker(fee_bps=100)
        mm.buy(ENGINE, "m1", Outcome.YES, 10 * WAD, 100 * WAD, NOW, NOW)
        result = mm.sell(ENGINE, "m1", Outcome.YES, 10 * WAD, 0, NOW, NOW)
        assert result.fee == calculate_fee(result.amount, 100)
        assert mm.get_market("m1").accumulated_fees > result.fee


class TestClose:
    def test_close_freezes_twap(self, mm: LmsrMarketMaker) -> None:
        mm.buy(ENGINE, "m1", Outcome.YES, 20 * WAD, 100 * WAD, NOW, NOW)
        spot_yes, _ = mm.get_prices("m1")
        final = mm.close_market(ENGINE, "m1", NOW + 3600, 3600)
        market = mm.get_market("m1")
        assert not market.active
        assert (market.final_price_yes, market.final_price_no) == final
        assert abs(final[0] - spot_yes) <= 1
        assert mm.get_twap("m1", NOW + 10 * 3600, 3600) == final

    def test_late_trade_moves_final_price_only_partly(self, mm: LmsrMarketMaker) -> None:
        mm.buy(ENGINE, "m1", Outcome.YES, 200 * WAD, 1_000 * WAD, NOW + 3500, NOW + 3500)
        spot_yes, _ = mm.get_prices("m1")
        final_yes, _ = mm.close_market(ENGINE, "m1", NOW + 3600, 3600)
        # 3500s at 0.5, then 100s at the new spot
        expected = (HALF * 3500 + spot_yes * 100) // 3600
        assert HALF < final_yes < spot_yes
        assert abs(final_yes - expected) <= 1

    def test_closed_market_without_final_price_is_a_state_error(self, mm: LmsrMarketMaker) -> None:
        market = mm.get_market("m1")
        market.active = False
        with pytest.raises(StateError):
            mm.get_twap("m1", NOW + 60, 3600)

    def test_closed_market_rejects_activity(self, mm: LmsrMarketMaker) -> None:
        mm.close_market(ENGINE, "m1", NOW + 60, 3600)
        with pytest.raises(MarketNotActiveError):
            mm.buy(ENGINE, "m1", Outcome.YES, WAD, 10 * WAD, NOW + 60, NOW + 60)
        with pytest.raises(MarketNotActiveError):
            mm.poke("m1", NOW + 120)
        with pytest.raises(MarketNotActiveError):
            mm.close_market(ENGINE, "m1", NOW + 120, 3600)

    def test_poke_refreshes_oracle(self, mm: LmsrMarketMaker) -> None:
        mm.poke("m1", NOW + 600)
        assert mm.get_market("m1").oracle.last_update_time == NOW + 600

    def test_market_info(self, mm: LmsrMarketMaker) -> None:
        info = mm.get_market_info("m1")
        assert info.id == "m1"
        assert info.price_yes == HALF
        assert info.active
        assert info.final_price_yes is None

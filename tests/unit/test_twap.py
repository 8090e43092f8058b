"""Unit tests for the embedded TWAP oracle."""

from src.pm_amm.domain.twap import (
    MAX_ELAPSED_SECONDS,
    MAX_OBSERVATIONS,
    MIN_TWAP_AGE_SECONDS,
    TwapOracle,
)
from src.pm_common.wad import WAD

HALF = WAD // 2


class TestAccumulate:
    def test_start_records_origin(self) -> None:
        oracle = TwapOracle.start(1000)
        assert oracle.last_update_time == 1000
        assert len(oracle.observations) == 1

    def test_zero_elapsed_is_noop(self) -> None:
        oracle = TwapOracle.start(1000)
        oracle.accumulate(1000, HALF, HALF)
        assert oracle.cumulative_yes == 0
        assert len(oracle.observations) == 1

    def test_integrates_price_times_time(self) -> None:
        oracle = TwapOracle.start(0)
        oracle.accumulate(100, HALF, HALF)
        assert oracle.cumulative_yes == HALF * 100
        assert oracle.accounted_seconds == 100
        assert oracle.last_update_time == 100

    def test_elapsed_capped(self) -> None:
        oracle = TwapOracle.start(0)
        oracle.accumulate(10 * 24 * 3600, HALF, HALF)
        assert oracle.accounted_seconds == MAX_ELAPSED_SECONDS
        assert oracle.cumulative_yes == HALF * MAX_ELAPSED_SECONDS
        assert oracle.last_update_time == 10 * 24 * 3600

    def test_observation_buffer_bounded(self) -> None:
        oracle = TwapOracle.start(0)
        for t in range(1, MAX_OBSERVATIONS + 100):
            oracle.accumulate(t, HALF, HALF)
        assert len(oracle.observations) == MAX_OBSERVATIONS
        assert oracle.observations[0].timestamp == 0
        assert oracle.observations[-1].timestamp == MAX_OBSERVATIONS + 99


class TestTwap:
    def test_young_market_reports_spot(self) -> None:
        oracle = TwapOracle.start(0)
        spot = (WAD * 8 // 10, WAD * 2 // 10)
        assert oracle.twap(MIN_TWAP_AGE_SECONDS - 1, 3600, *spot) == spot

    def test_window_longer_than_age_uses_age(self) -> None:
        oracle = TwapOracle.start(0)
        oracle.accumulate(100, HALF, HALF)  # price 0.5 for [0, 100)
        # price 0.8 since t=100
        twap_yes, twap_no = oracle.twap(200, 10_000, 8 * WAD // 10, 2 * WAD // 10)
        assert twap_yes == 65 * WAD // 100
        assert twap_no == 35 * WAD // 100

    def test_trailing_window(self) -> None:
        oracle = TwapOracle.start(0)
        oracle.accumulate(100, HALF, HALF)
        twap_yes, _ = oracle.twap(200, 100, 8 * WAD // 10, 2 * WAD // 10)
        assert twap_yes == 8 * WAD // 10

    def test_window_start_interpolated_between_observations(self) -> None:
        oracle = TwapOracle.start(0)
        oracle.accumulate(100, HALF, HALF)
        oracle.accumulate(300, 8 * WAD // 10, 2 * WAD // 10)
        # [50, 100) at 0.5 and [100, 300) at 0.8 over 250s
        twap_yes, _ = oracle.twap(300, 250, 8 * WAD // 10, 2 * WAD // 10)
        assert twap_yes == 74 * WAD // 100

    def test_idle_market_extends_at_spot(self) -> None:
        oracle = TwapOracle.start(0)
        twap_yes, twap_no = oracle.twap(5000, 3600, HALF, HALF)
        assert (twap_yes, twap_no) == (HALF, HALF)

    def test_trade_burst_cannot_shrink_window(self) -> None:
        window = 3 * 24 * 3600
        end = 4 * 24 * 3600
        high = (9 * WAD // 10, WAD // 10)
        low = (WAD // 10, 9 * WAD // 10)
        oracle = TwapOracle.start(0)
        oracle.accumulate(100, HALF, HALF)
        oracle.accumulate(end - 600, *high)
        # one observation per second right before the end, enough to overflow the buffer
        for t in range(end - 599, end - 599 + MAX_OBSERVATIONS + 8):
            oracle.accumulate(t, *low)

        twap_yes, twap_no = oracle.twap(end, window, *low)

        expected_yes = (high[0] * (window - 600) + low[0] * 600) // window
        expected_no = (high[1] * (window - 600) + low[1] * 600) // window
        assert len(oracle.observations) <= MAX_OBSERVATIONS
        assert abs(twap_yes - expected_yes) <= 10**6
        assert abs(twap_no - expected_no) <= 10**6
        assert twap_yes > 85 * WAD // 100

"""Engine configuration — built from settings, constructible directly in tests."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EngineConfig:
    engine_id: str = "futarchy-engine"
    guardian_id: str = "guardian"
    proposal_stake: int = 50_000 * 10**18
    min_liquidity: int = 1_000 * 10**18
    trading_duration: int = 3 * 24 * 3600
    closing_delay: int = 3600
    resolution_delay: int = 3600
    twap_window: int = 3 * 24 * 3600
    clarity_threshold_bps: int = 200
    trade_fee_bps: int = 0

    def __post_init__(self) -> None:
        if self.engine_id == self.guardian_id:
            raise ValueError("engine_id and guardian_id must differ")
        if not 0 <= self.clarity_threshold_bps <= 10_000:
            raise ValueError("clarity_threshold_bps must be within [0, 10000]")
        if self.trading_duration <= 0:
            raise ValueError("trading_duration must be positive")

    @classmethod
    def from_settings(cls, settings: Any) -> "EngineConfig":
        return cls(
            engine_id=settings.ENGINE_ID,
            guardian_id=settings.GUARDIAN_ID,
            proposal_stake=settings.PROPOSAL_STAKE,
            min_liquidity=settings.MIN_LIQUIDITY,
            trading_duration=settings.TRADING_DURATION_SECONDS,
            closing_delay=settings.CLOSING_DELAY_SECONDS,
            resolution_delay=settings.RESOLUTION_DELAY_SECONDS,
            twap_window=settings.TWAP_WINDOW_SECONDS,
            clarity_threshold_bps=settings.CLARITY_THRESHOLD_BPS,
            trade_fee_bps=settings.TRADE_FEE_BPS,
        )

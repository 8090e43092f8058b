"""Domain models for pm_amm — pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.pm_amm.domain.twap import TwapOracle
from src.pm_common.enums import Outcome


@dataclass
class Market:
    id: str
    proposal_id: int
    b: int                    # liquidity parameter, WAD; frozen after creation
    funding: int              # initial collateral seeded by the proposer
    created_at: int
    oracle: TwapOracle
    q_yes: int = 0
    q_no: int = 0
    total_collateral: int = 0
    accumulated_fees: int = 0
    active: bool = True
    closed_at: int | None = None
    final_price_yes: int | None = None
    final_price_no: int | None = None

    def __setattr__(self, name: str, value: object) -> None:
        if name == "b" and "b" in self.__dict__:
            raise AttributeError("Liquidity parameter b is immutable")
        super().__setattr__(name, value)

    def quantity(self, outcome: Outcome) -> int:
        return self.q_yes if outcome is Outcome.YES else self.q_no


@dataclass(frozen=True)
class TradeResult:
    market_id: str
    outcome: Outcome
    quantity: int
    amount: int      # collateral entering (buy) or leaving (sell) the pool
    fee: int
    price_yes: int   # post-trade spot
    price_no: int


@dataclass(frozen=True)
class MarketInfo:
    """Read-only view returned to callers."""

    id: str
    proposal_id: int
    b: int
    funding: int
    q_yes: int
    q_no: int
    total_collateral: int
    accumulated_fees: int
    active: bool
    created_at: int
    price_yes: int
    price_no: int
    final_price_yes: int | None = None
    final_price_no: int | None = None

"""Domain models for pm_proposal — pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.pm_amm.domain.models import Market
from src.pm_common.enums import OutcomeSide, ProposalState
from src.pm_ledger.domain.models import LedgerPartition


@dataclass
class Proposal:
    id: int
    proposer: str
    target: str                 # action descriptor, e.g. recipient / contract
    payload: str                # opaque action payload handed to the executor
    requested_amount: int       # treasury amount, WAD
    description_ref: str        # content hash of the off-engine description
    pass_market_id: str
    fail_market_id: str
    trading_start: int
    trading_end: int
    resolution_time: int
    stake: int
    liquidity: int
    created_at: int
    state: ProposalState = ProposalState.ACTIVE
    collateral: int = 0         # pool backing outcome tokens, WAD
    final_pass_price: int | None = None
    final_fail_price: int | None = None
    pass_wins: bool | None = None
    stake_returned: bool = False
    closed_at: int | None = None
    resolved_at: int | None = None
    finalized_at: int | None = None

    def market_id(self, side: OutcomeSide) -> str:
        return self.pass_market_id if side is OutcomeSide.PASS else self.fail_market_id

    @property
    def winning_side(self) -> OutcomeSide | None:
        if self.pass_wins is None:
            return None
        return OutcomeSide.PASS if self.pass_wins else OutcomeSide.FAIL


@dataclass
class ProposalSnapshot:
    """Everything the engine holds for one proposal; unit of rollback and persistence."""

    proposal: Proposal
    pass_market: Market
    fail_market: Market
    ledger: LedgerPartition | None

    def market(self, side: OutcomeSide) -> Market:
        return self.pass_market if side is OutcomeSide.PASS else self.fail_market

    def balance_of(self, holder: str, side: OutcomeSide) -> int:
        if self.ledger is None:
            return 0
        return self.ledger.balances.get((holder, side), 0)


@dataclass(frozen=True)
class ProposalPrices:
    """Spot and time-weighted PASS/FAIL prices (YES outcome of each market), WAD."""

    proposal_id: int
    pass_spot: int
    fail_spot: int
    pass_twap: int
    fail_twap: int
    as_of: int

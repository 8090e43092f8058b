"""Domain models for pm_ledger — pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.pm_common.enums import OutcomeSide


@dataclass
class SupplyCounter:
    total_minted: int = 0
    total_redeemed: int = 0

    @property
    def outstanding(self) -> int:
        return self.total_minted - self.total_redeemed


@dataclass
class LedgerPartition:
    """All ledger state belonging to one proposal."""

    proposal_id: int
    balances: dict[tuple[str, OutcomeSide], int]
    supply: dict[OutcomeSide, SupplyCounter]


@dataclass(frozen=True)
class BalanceRow:
    holder: str
    proposal_id: int
    side: OutcomeSide
    amount: int

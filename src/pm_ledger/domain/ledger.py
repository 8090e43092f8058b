"""OutcomeTokenLedger — balance bookkeeping for conditional outcome tokens.

Balances are keyed by (holder, proposal, side) and partitioned by proposal so
one proposal's ledger state can be snapshotted and restored on its own.
Every mint/burn also moves the per-(proposal, side) aggregate counters that
back the conservation check:

    total_minted - total_redeemed == sum of holder balances
"""
import copy
import logging
from collections.abc import Sequence

from src.pm_common.capability import Capability
from src.pm_common.enums import OutcomeSide
from src.pm_common.errors import InsufficientBalanceError, ValidationError
from src.pm_ledger.domain.models import BalanceRow, LedgerPartition, SupplyCounter

logger = logging.getLogger(__name__)


class OutcomeTokenLedger:
    def __init__(self, authorized_caller: str) -> None:
        self.capability = Capability("outcome-ledger", authorized_caller)
        self._partitions: dict[int, LedgerPartition] = {}

    def _partition(self, proposal_id: int) -> LedgerPartition:
        part = self._partitions.get(proposal_id)
        if part is None:
            part = LedgerPartition(
                proposal_id=proposal_id,
                balances={},
                supply={side: SupplyCounter() for side in OutcomeSide},
            )
            self._partitions[proposal_id] = part
        return part

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance_of(self, holder: str, proposal_id: int, side: OutcomeSide) -> int:
        part = self._partitions.get(proposal_id)
        if part is None:
            return 0
        return part.balances.get((holder, side), 0)

    def supply_counter(self, proposal_id: int, side: OutcomeSide) -> SupplyCounter:
        part = self._partitions.get(proposal_id)
        if part is None:
            return SupplyCounter()
        return copy.copy(part.supply[side])

    def current_supply(self, proposal_id: int, side: OutcomeSide) -> int:
        """Sum of all holder balances for (proposal, side)."""
        part = self._partitions.get(proposal_id)
        if part is None:
            return 0
        return sum(amount for (_, s), amount in part.balances.items() if s is side)

    def holders(self, proposal_id: int) -> list[BalanceRow]:
        part = self._partitions.get(proposal_id)
        if part is None:
            return []
        return [
            BalanceRow(holder, proposal_id, side, amount)
            for (holder, side), amount in sorted(part.balances.items())
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_amount(amount: int) -> None:
        if amount <= 0:
            raise ValidationError(f"Token amount must be positive, got {amount}")

    def mint(
        self, caller: str, holder: str, proposal_id: int, side: OutcomeSide, amount: int
    ) -> int:
        """Credit ``amount`` tokens; returns the new balance."""
        self.capability.require(caller)
        if not holder:
            raise ValidationError("Holder must be set")
        self._validate_amount(amount)
        part = self._partition(proposal_id)
        new_balance = part.balances.get((holder, side), 0) + amount
        part.balances[(holder, side)] = new_balance
        part.supply[side].total_minted += amount
        logger.debug(
            "Mint: holder=%s proposal=%s side=%s amount=%d", holder, proposal_id, side.value, amount
        )
        return new_balance

    def burn(
        self, caller: str, holder: str, proposal_id: int, side: OutcomeSide, amount: int
    ) -> int:
        """Debit ``amount`` tokens; returns the new balance."""
        self.capability.require(caller)
        self._validate_amount(amount)
        available = self.balance_of(holder, proposal_id, side)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=available)
        part = self._partition(proposal_id)
        new_balance = available - amount
        if new_balance == 0:
            del part.balances[(holder, side)]
        else:
            part.balances[(holder, side)] = new_balance
        part.supply[side].total_redeemed += amount
        logger.debug(
            "Burn: holder=%s proposal=%s side=%s amount=%d", holder, proposal_id, side.value, amount
        )
        return new_balance

    @staticmethod
    def _zip_batch(
        proposal_ids: Sequence[int], sides: Sequence[OutcomeSide], amounts: Sequence[int]
    ) -> list[tuple[int, OutcomeSide, int]]:
        if not (len(proposal_ids) == len(sides) == len(amounts)):
            raise ValidationError(
                f"Batch length mismatch: {len(proposal_ids)} proposals, "
                f"{len(sides)} sides, {len(amounts)} amounts"
            )
        if not proposal_ids:
            raise ValidationError("Batch must not be empty")
        return list(zip(proposal_ids, sides, amounts))

    def mint_batch(
        self,
        caller: str,
        holder: str,
        proposal_ids: Sequence[int],
        sides: Sequence[OutcomeSide],
        amounts: Sequence[int],
    ) -> None:
        """Mint several (proposal, side, amount) entries; all or nothing."""
        self.capability.require(caller)
        entries = self._zip_batch(proposal_ids, sides, amounts)
        for _, _, amount in entries:
            self._validate_amount(amount)
        for proposal_id, side, amount in entries:
            self.mint(caller, holder, proposal_id, side, amount)

    def burn_batch(
        self,
        caller: str,
        holder: str,
        proposal_ids: Sequence[int],
        sides: Sequence[OutcomeSide],
        amounts: Sequence[int],
    ) -> None:
        """Burn several (proposal, side, amount) entries; all or nothing."""
        self.capability.require(caller)
        entries = self._zip_batch(proposal_ids, sides, amounts)
        required: dict[tuple[int, OutcomeSide], int] = {}
        for proposal_id, side, amount in entries:
            self._validate_amount(amount)
            required[(proposal_id, side)] = required.get((proposal_id, side), 0) + amount
        for (proposal_id, side), amount in required.items():
            available = self.balance_of(holder, proposal_id, side)
            if available < amount:
                raise InsufficientBalanceError(required=amount, available=available)
        for proposal_id, side, amount in entries:
            self.burn(caller, holder, proposal_id, side, amount)

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def export_partition(self, proposal_id: int) -> LedgerPartition | None:
        part = self._partitions.get(proposal_id)
        return copy.deepcopy(part) if part is not None else None

    def import_partition(
        self, caller: str, proposal_id: int, partition: LedgerPartition | None
    ) -> None:
        """Replace a proposal's ledger state wholesale (rollback / hydration)."""
        self.capability.require(caller)
        if partition is None:
            self._partitions.pop(proposal_id, None)
        else:
            self._partitions[proposal_id] = copy.deepcopy(partition)

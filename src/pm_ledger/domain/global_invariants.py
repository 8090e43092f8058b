"""Global custody invariant check (INV-G)."""
import logging
from collections.abc import Iterable

from src.pm_common.enums import ProposalState

logger = logging.getLogger(__name__)


def verify_custody_invariants(
    proposals: Iterable[object],
    treasury_balance: int,
    custody_balance: int,
) -> list[str]:
    """Check INV-G: collateral + unreturned stakes + treasury <= value under custody.

    Returns a list of violation strings (empty when balanced).
    """
    violations: list[str] = []
    collateral = 0
    stakes = 0
    for proposal in proposals:
        pid = proposal.id  # type: ignore[attr-defined]
        pool = proposal.collateral  # type: ignore[attr-defined]
        if pool < 0:
            violations.append(f"INV-G violated: proposal {pid} collateral({pool}) < 0")
        collateral += pool
        if not proposal.stake_returned:  # type: ignore[attr-defined]
            stakes += proposal.stake  # type: ignore[attr-defined]
        state = proposal.state  # type: ignore[attr-defined]
        if state is ProposalState.CANCELED and not proposal.stake_returned:  # type: ignore[attr-defined]
            violations.append(f"INV-G violated: canceled proposal {pid} still holds its stake")

    owed = collateral + stakes + treasury_balance
    if owed > custody_balance:
        violations.append(
            f"INV-G violated: collateral({collateral}) + stakes({stakes}) + "
            f"treasury({treasury_balance}) = {owed} > custody({custody_balance})"
        )
    for msg in violations:
        logger.error(msg)
    return violations

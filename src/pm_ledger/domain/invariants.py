"""Proposal invariant verification after each mutating operation."""

import logging

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.models import Market
from src.pm_common.enums import OutcomeSide, ProposalState
from src.pm_common.wad import WAD
from src.pm_ledger.domain.ledger import OutcomeTokenLedger

logger = logging.getLogger(__name__)

PRICE_SUM_TOLERANCE = 10**10  # 1e-8 in WAD


def verify_market_invariants(market: Market) -> None:
    """Raises AssertionError if a market invariant is violated.

    INV-M1: price_yes + price_no within tolerance of 1.0
    INV-M2: both prices strictly inside (0, 1)
    INV-M3: total_collateral >= 0
    """
    price_yes, price_no = lmsr.prices(market.q_yes, market.q_no, market.b)
    assert abs(price_yes + price_no - WAD) <= PRICE_SUM_TOLERANCE, (
        f"INV-M1 violated: market={market.id} price_yes({price_yes}) + "
        f"price_no({price_no}) deviates from {WAD}"
    )
    assert 0 < price_yes < WAD and 0 < price_no < WAD, (
        f"INV-M2 violated: market={market.id} prices ({price_yes}, {price_no}) not in (0, 1)"
    )
    assert market.total_collateral >= 0, (
        f"INV-M3 violated: market={market.id} collateral={market.total_collateral}"
    )


def verify_proposal_invariants(
    proposal: object,
    pass_market: Market,
    fail_market: Market,
    ledger: OutcomeTokenLedger,
) -> None:
    """Raises AssertionError if a proposal-level invariant is violated.

    INV-L1: total_minted - total_redeemed == current supply, per side
    INV-P1: proposal collateral >= 0
    INV-P2: while trading is live or just closed, proposal collateral equals the
            sum of both market pools and each market's q_yes equals the token
            supply of its side
    """
    proposal_id: int = proposal.id  # type: ignore[attr-defined]
    collateral: int = proposal.collateral  # type: ignore[attr-defined]
    state: ProposalState = proposal.state  # type: ignore[attr-defined]

    for side in OutcomeSide:
        counter = ledger.supply_counter(proposal_id, side)
        supply = ledger.current_supply(proposal_id, side)
        assert counter.outstanding == supply, (
            f"INV-L1 violated: proposal={proposal_id} side={side.value} "
            f"minted({counter.total_minted}) - redeemed({counter.total_redeemed}) "
            f"!= supply({supply})"
        )

    assert collateral >= 0, f"INV-P1 violated: proposal={proposal_id} collateral={collateral}"

    verify_market_invariants(pass_market)
    verify_market_invariants(fail_market)

    if state in (ProposalState.ACTIVE, ProposalState.CLOSED):
        pools = pass_market.total_collateral + fail_market.total_collateral
        assert collateral == pools, (
            f"INV-P2 violated: proposal={proposal_id} collateral({collateral}) "
            f"!= market pools({pools})"
        )
        for side, market in ((OutcomeSide.PASS, pass_market), (OutcomeSide.FAIL, fail_market)):
            supply = ledger.current_supply(proposal_id, side)
            assert market.q_yes == supply, (
                f"INV-P2 violated: market={market.id} q_yes({market.q_yes}) "
                f"!= {side.value} supply({supply})"
            )

    logger.debug("Invariants OK: proposal=%s collateral=%d", proposal_id, collateral)

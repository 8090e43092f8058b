"""End-to-end proposal lifecycle on in-memory collaborators.

Two proposals share one treasury: the first passes and is executed, the
second fails and is rejected. Every party's funds are accounted for at the end.
"""
import pytest

from src.pm_common.enums import OutcomeSide, ProposalState
from src.pm_common.wad import WAD
from src.pm_proposal.infrastructure.in_memory import ExecutedAction

pytestmark = pytest.mark.integration

HOUR = 3600
DAY = 24 * HOUR
FUNDS = 1_000_000 * WAD
PASS = OutcomeSide.PASS
FAIL = OutcomeSide.FAIL


async def test_pass_then_fail(orchestrator, vault, executor, clock) -> None:
    engine = orchestrator
    deadline = clock.now + 30 * DAY
    await engine.deposit_to_treasury("dao", 2_000 * WAD)

    grant = await engine.create_proposal("proposer", "grants", "fund-team", 800 * WAD, "QmA", 1_000 * WAD)
    audit = await engine.create_proposal("carol", "audits", "hire-firm", 300 * WAD, "QmB", 500 * WAD)

    # grant: traders believe it helps
    await engine.buy_outcome("alice", grant, PASS, 200 * WAD, 0, deadline)
    await engine.buy_outcome("bob", grant, FAIL, 40 * WAD, 0, deadline)
    # audit: traders believe it hurts
    await engine.buy_outcome("alice", audit, FAIL, 120 * WAD, 0, deadline)
    bob_pass = await engine.buy_outcome("bob", audit, PASS, 30 * WAD, 0, deadline)

    # mid-window: bob changes his mind on the audit and exits
    clock.advance(DAY)
    await engine.sell_outcome("bob", audit, PASS, bob_pass // 2, 0, deadline)
    await engine.poke(grant)
    assert engine.check_custody(vault.custody_balance) == []

    clock.advance(2 * DAY + HOUR)
    g_pass, g_fail = await engine.close_trading(grant)
    a_pass, a_fail = await engine.close_trading(audit)
    assert g_pass > g_fail
    assert a_fail > a_pass

    clock.advance(HOUR)
    assert await engine.resolve_market(grant) is True
    assert await engine.resolve_market(audit) is False

    await engine.execute_proposal(grant)
    await engine.reject_proposal(audit)
    assert executor.executed == [ExecutedAction("grants", "fund-team", 800 * WAD)]
    assert engine.treasury_balance() == 1_200 * WAD

    # winners redeem; every winning token is cleared and the pools are empty
    await engine.redeem_winnings("alice", grant)
    await engine.redeem_winnings("alice", audit)
    for pid, side in ((grant, PASS), (audit, FAIL)):
        assert engine.ledger.current_supply(pid, side) == 0
        assert engine.get_proposal(pid).collateral == 0

    # losing tokens stay on the books and redeem nothing
    assert engine.balance_of("bob", grant, FAIL) > 0
    assert engine.get_proposal(grant).state is ProposalState.EXECUTED
    assert engine.get_proposal(audit).state is ProposalState.REJECTED

    # value conservation: everything outside custody is back with a party
    assert engine.check_custody(vault.custody_balance) == []
    parties = ("proposer", "alice", "bob", "carol", "dao")
    total = sum(vault.balance_of(p) for p in parties) + vault.custody_balance
    assert total == len(parties) * FUNDS
    # both proposers got their stake back but not their seed liquidity
    assert vault.balance_of("proposer") == FUNDS - 1_000 * WAD
    assert vault.balance_of("carol") == FUNDS - 500 * WAD


async def test_guardian_cancel_refunds_everyone(orchestrator, vault, clock) -> None:
    engine = orchestrator
    deadline = clock.now + DAY
    pid = await engine.create_proposal("proposer", "grants", "", 10 * WAD, "QmC", 100 * WAD)
    await engine.buy_outcome("alice", pid, PASS, 5 * WAD, 0, deadline)
    await engine.buy_outcome("bob", pid, FAIL, 5 * WAD, 0, deadline)

    await engine.cancel_proposal("guardian", pid)
    alice = await engine.refund_canceled("alice", pid)
    bob = await engine.refund_canceled("bob", pid)

    assert alice > 0 and bob > 0
    assert engine.get_proposal(pid).collateral == 0
    assert vault.balance_of("proposer") == FUNDS
    assert vault.custody_balance == 0
    assert vault.balance_of("alice") + vault.balance_of("bob") == 2 * FUNDS

"""Unit tests for ProposalApplicationService persistence and hydration."""
import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.enums import EventType, OutcomeSide
from src.pm_common.errors import InsufficientLiquidityError
from src.pm_common.wad import WAD
from src.pm_proposal.application.schemas import BuyRequest, CreateProposalRequest
from src.pm_proposal.application.service import ProposalApplicationService
from src.pm_proposal.engine.orchestrator import ProposalOrchestrator
from src.pm_proposal.infrastructure.in_memory import InMemoryVault


def _db() -> MagicMock:
    db = MagicMock()

    @asynccontextmanager
    async def begin():
        yield

    db.begin = begin
    return db


class _SlowVault(InMemoryVault):
    """Unfunded vault whose deposits can be held open with ``hold``."""

    def __init__(self) -> None:
        super().__init__(require_funds=False)
        self.hold: asyncio.Event | None = None

    async def deposit(self, payer: str, amount: int) -> bool:
        if self.hold is not None:
            await self.hold.wait()
        return await super().deposit(payer, amount)


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(orchestrator, repo) -> ProposalApplicationService:
    return ProposalApplicationService(orchestrator=orchestrator, repo=repo)


CREATE = CreateProposalRequest(
    target="grants", payload="", requested_amount=str(5 * WAD),
    description_ref="QmHash", liquidity=str(100 * WAD),
)


class TestPersist:
    async def test_each_call_writes_only_new_events(self, service, repo, clock) -> None:
        db = _db()
        created = await service.create_proposal(db, "proposer", CREATE)
        first = repo.append_events.call_args[0][1]
        assert [e.event_type for e in first] == [EventType.PROPOSAL_CREATED]

        await service.buy(db, "alice", created.proposal_id, BuyRequest(
            side="FAIL", spend_amount=str(WAD), deadline=clock.now + 60,
        ))
        second = repo.append_events.call_args[0][1]
        assert [e.event_type for e in second] == [EventType.OUTCOME_BOUGHT]
        snapshot = repo.save_proposal_state.call_args[0][1]
        assert snapshot.proposal.id == created.proposal_id

    async def test_failed_operation_writes_nothing(self, service, repo) -> None:
        bad = CREATE.model_copy(update={"liquidity": "1"})
        with pytest.raises(InsufficientLiquidityError):
            await service.create_proposal(_db(), "proposer", bad)
        repo.save_proposal_state.assert_not_awaited()

    async def test_concurrent_persist_skips_uncommitted_trade(
        self, config, executor, clock, repo
    ) -> None:
        vault = _SlowVault()
        orch = ProposalOrchestrator(config, vault, executor, clock=clock)
        service = ProposalApplicationService(orchestrator=orch, repo=repo)
        db = _db()
        created = await service.create_proposal(db, "proposer", CREATE)
        pid = created.proposal_id

        held = vault.hold = asyncio.Event()
        buy = asyncio.create_task(orch.buy_outcome(
            "alice", pid, OutcomeSide.PASS, 10 * WAD, 0, clock.now + 60
        ))
        await asyncio.sleep(0)
        vault.hold = None
        await service.deposit_to_treasury(db, "dao", WAD)
        written = repo.append_events.call_args[0][1]
        assert [e.event_type for e in written] == [EventType.TREASURY_DEPOSIT]
        assert service.get_balances(pid, "alice").pass_balance == "0"

        held.set()
        await buy
        await service.poke(db, pid)
        snapshot = repo.save_proposal_state.call_args[0][1]
        assert snapshot.balance_of("alice", OutcomeSide.PASS) > 0

class TestHydrate:
    async def test_loads_proposals_and_treasury(self, orchestrator, config, vault, executor, clock) -> None:
        pid = await orchestrator.create_proposal("proposer", "grants", "", 5 * WAD, "QmHash", 100 * WAD)
        repo = AsyncMock()
        repo.list_proposal_ids.return_value = [pid]
        repo.load_proposal_state.return_value = orchestrator.snapshot(pid)
        repo.load_treasury_balance.return_value = 3 * WAD

        fresh = ProposalOrchestrator(config, vault, executor, clock=clock)
        service = ProposalApplicationService(orchestrator=fresh, repo=repo)
        assert await service.hydrate(MagicMock()) == 1
        assert service.get_proposal(pid).collateral == str(100 * WAD)
        assert service.treasury_balance().balance == str(3 * WAD)

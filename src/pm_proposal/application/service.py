"""ProposalApplicationService — composition layer between HTTP and the engine.

Runs one orchestrator call, then writes the affected proposal's snapshot,
the treasury balance and any new domain events inside `async with db.begin()`.
Reads are served from engine memory and need no session.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.enums import OutcomeSide
from src.pm_proposal.application.schemas import (
    BalanceResponse,
    BuyRequest,
    CreateProposalRequest,
    CreateProposalResponse,
    MarketResponse,
    PayoutResponse,
    PricesResponse,
    ProposalResponse,
    QuoteResponse,
    SellRequest,
    TradeResponse,
    TreasuryResponse,
)
from src.pm_proposal.domain.config import EngineConfig
from src.pm_proposal.domain.repository import ProposalRepositoryProtocol
from src.pm_proposal.engine.orchestrator import ProposalOrchestrator
from src.pm_proposal.infrastructure.in_memory import InMemoryActionExecutor, InMemoryVault
from src.pm_proposal.infrastructure.persistence import ProposalRepository

logger = logging.getLogger(__name__)


def build_orchestrator() -> ProposalOrchestrator:
    return ProposalOrchestrator(
        config=EngineConfig.from_settings(settings),
        vault=InMemoryVault(require_funds=False),
        executor=InMemoryActionExecutor(),
    )


class ProposalApplicationService:
    def __init__(
        self,
        orchestrator: ProposalOrchestrator | None = None,
        repo: ProposalRepositoryProtocol | None = None,
    ) -> None:
        self._engine = orchestrator or build_orchestrator()
        self._repo: ProposalRepositoryProtocol = repo or ProposalRepository()
        self._persisted_events = 0
        self._persist_lock = asyncio.Lock()

    @property
    def engine(self) -> ProposalOrchestrator:
        return self._engine

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def hydrate(self, db: AsyncSession) -> int:
        """Load every stored proposal and the treasury into the engine."""
        ids = await self._repo.list_proposal_ids(db)
        for proposal_id in ids:
            snapshot = await self._repo.load_proposal_state(db, proposal_id)
            if snapshot is not None:
                self._engine.restore(snapshot)
        self._engine.restore_treasury(await self._repo.load_treasury_balance(db))
        self._persisted_events = len(self._engine.events)
        logger.info("Engine hydrated: %d proposals", len(ids))
        return len(ids)

    async def _persist(self, db: AsyncSession, proposal_id: int | None) -> None:
        async with self._persist_lock:
            events = self._engine.events.since(self._persisted_events)
            async with db.begin():
                if proposal_id is not None:
                    await self._repo.save_proposal_state(db, self._engine.snapshot(proposal_id))
                await self._repo.save_treasury_balance(db, self._engine.treasury_balance())
                await self._repo.append_events(db, events)
            self._persisted_events += len(events)

    async def _proposal_after(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._persist(db, proposal_id)
        return ProposalResponse.from_domain(self._engine.get_proposal(proposal_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_proposal(self, proposal_id: int) -> ProposalResponse:
        return ProposalResponse.from_domain(self._engine.get_proposal(proposal_id))

    def list_proposals(self) -> list[ProposalResponse]:
        return [self.get_proposal(pid) for pid in self._engine.proposal_ids()]

    def get_markets(self, proposal_id: int) -> list[MarketResponse]:
        return [MarketResponse.from_domain(m) for m in self._engine.get_markets(proposal_id)]

    def get_prices(self, proposal_id: int) -> PricesResponse:
        return PricesResponse.from_domain(self._engine.get_prices(proposal_id))

    def get_balances(self, proposal_id: int, holder: str) -> BalanceResponse:
        return BalanceResponse(
            holder=holder,
            proposal_id=proposal_id,
            pass_balance=str(self._engine.balance_of(holder, proposal_id, OutcomeSide.PASS)),
            fail_balance=str(self._engine.balance_of(holder, proposal_id, OutcomeSide.FAIL)),
        )

    def quote_buy(self, proposal_id: int, side: str, spend_amount: int) -> QuoteResponse:
        tokens = self._engine.quote_buy(proposal_id, OutcomeSide(side), spend_amount)
        return QuoteResponse(
            proposal_id=proposal_id, side=side, direction="BUY",
            amount_in=str(spend_amount), amount_out=str(tokens),
        )

    def quote_sell(self, proposal_id: int, side: str, token_amount: int) -> QuoteResponse:
        proceeds = self._engine.quote_sell(proposal_id, OutcomeSide(side), token_amount)
        return QuoteResponse(
            proposal_id=proposal_id, side=side, direction="SELL",
            amount_in=str(token_amount), amount_out=str(proceeds),
        )

    def treasury_balance(self) -> TreasuryResponse:
        return TreasuryResponse(balance=str(self._engine.treasury_balance()))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_proposal(
        self, db: AsyncSession, caller: str, req: CreateProposalRequest
    ) -> CreateProposalResponse:
        proposal_id = await self._engine.create_proposal(
            caller,
            req.target,
            req.payload,
            int(req.requested_amount),
            req.description_ref,
            int(req.liquidity),
        )
        await self._persist(db, proposal_id)
        return CreateProposalResponse(proposal_id=proposal_id)

    async def buy(
        self, db: AsyncSession, caller: str, proposal_id: int, req: BuyRequest
    ) -> TradeResponse:
        tokens = await self._engine.buy_outcome(
            caller, proposal_id, OutcomeSide(req.side),
            int(req.spend_amount), int(req.min_tokens), req.deadline,
        )
        await self._persist(db, proposal_id)
        return TradeResponse(
            proposal_id=proposal_id, side=req.side, tokens=str(tokens), amount=req.spend_amount
        )

    async def sell(
        self, db: AsyncSession, caller: str, proposal_id: int, req: SellRequest
    ) -> TradeResponse:
        returned = await self._engine.sell_outcome(
            caller, proposal_id, OutcomeSide(req.side),
            int(req.token_amount), int(req.min_return), req.deadline,
        )
        await self._persist(db, proposal_id)
        return TradeResponse(
            proposal_id=proposal_id, side=req.side, tokens=req.token_amount, amount=str(returned)
        )

    async def poke(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._engine.poke(proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def close_trading(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._engine.close_trading(proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def resolve(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._engine.resolve_market(proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def emergency_resolve(
        self, db: AsyncSession, caller: str, proposal_id: int, pass_wins: bool
    ) -> ProposalResponse:
        await self._engine.emergency_resolve(caller, proposal_id, pass_wins)
        return await self._proposal_after(db, proposal_id)

    async def execute(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._engine.execute_proposal(proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def reject(self, db: AsyncSession, proposal_id: int) -> ProposalResponse:
        await self._engine.reject_proposal(proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def cancel(self, db: AsyncSession, caller: str, proposal_id: int) -> ProposalResponse:
        await self._engine.cancel_proposal(caller, proposal_id)
        return await self._proposal_after(db, proposal_id)

    async def redeem(self, db: AsyncSession, caller: str, proposal_id: int) -> PayoutResponse:
        payout = await self._engine.redeem_winnings(caller, proposal_id)
        await self._persist(db, proposal_id)
        return PayoutResponse(proposal_id=proposal_id, holder=caller, payout=str(payout))

    async def refund(self, db: AsyncSession, caller: str, proposal_id: int) -> PayoutResponse:
        payout = await self._engine.refund_canceled(caller, proposal_id)
        await self._persist(db, proposal_id)
        return PayoutResponse(proposal_id=proposal_id, holder=caller, payout=str(payout))

    async def deposit_to_treasury(
        self, db: AsyncSession, caller: str, amount: int
    ) -> TreasuryResponse:
        balance = await self._engine.deposit_to_treasury(caller, amount)
        await self._persist(db, None)
        return TreasuryResponse(balance=str(balance))


_service: ProposalApplicationService | None = None


def get_proposal_service() -> ProposalApplicationService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = ProposalApplicationService()
    return _service

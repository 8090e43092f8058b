"""ProposalOrchestrator — top-level futarchy state machine.

Creates a PASS and a FAIL market per proposal, routes trades to the market
maker, mints/burns outcome tokens, tracks each proposal's collateral pool and
drives the lifecycle:

    ACTIVE -> CLOSED -> RESOLVED -> EXECUTED | REJECTED
    ACTIVE | CLOSED -> CANCELED

Every mutating call runs under the proposal's asyncio.Lock inside a
UnitOfWork; the external value transfer is always the last step, so a failed
transfer (or any earlier error) rolls the whole call back. Reads are served
from the last committed copy of each proposal, so a call still waiting on its
transfer is invisible until it commits.
"""
import asyncio
import copy
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from src.pm_amm.domain.models import MarketInfo
from src.pm_amm.engine.market_maker import LmsrMarketMaker
from src.pm_common.datetime_utils import unix_now
from src.pm_common.enums import EventType, Outcome, OutcomeSide, ProposalState
from src.pm_common.errors import (
    ActionExecutionError,
    AppError,
    CancelNotAllowedError,
    DeadlineExpiredError,
    InsufficientLiquidityError,
    NoClearWinnerError,
    NothingToRedeemError,
    ProposalNotFoundError,
    SlippageExceededError,
    StateError,
    TimingError,
    TransferFailedError,
    UnauthorizedCallerError,
    ValidationError,
)
from src.pm_common.wad import gap_bps, wad_to_display
from src.pm_ledger.domain.global_invariants import verify_custody_invariants
from src.pm_ledger.domain.invariants import verify_proposal_invariants
from src.pm_ledger.domain.ledger import OutcomeTokenLedger
from src.pm_proposal.domain.collaborators import ActionExecutorProtocol, ValueTransferProtocol
from src.pm_proposal.domain.config import EngineConfig
from src.pm_proposal.domain.events import DomainEvent, EventLog
from src.pm_proposal.domain.models import Proposal, ProposalPrices, ProposalSnapshot
from src.pm_proposal.domain.state_machine import ensure_state, transition
from src.pm_proposal.engine.unit_of_work import UnitOfWork
from src.pm_treasury.domain.treasury import Treasury

logger = logging.getLogger(__name__)

_TRADED_OUTCOME = Outcome.YES


def _market_ids(proposal_id: int) -> tuple[str, str]:
    return f"P{proposal_id}-PASS", f"P{proposal_id}-FAIL"


class ProposalOrchestrator:
    def __init__(
        self,
        config: EngineConfig,
        vault: ValueTransferProtocol,
        executor: ActionExecutorProtocol,
        clock: Callable[[], int] = unix_now,
        event_log: EventLog | None = None,
    ) -> None:
        self._config = config
        self._vault = vault
        self._executor = executor
        self._clock = clock
        self.events = event_log or EventLog()
        self.market_maker = LmsrMarketMaker(
            authorized_caller=config.engine_id, fee_bps=config.trade_fee_bps
        )
        self.ledger = OutcomeTokenLedger(authorized_caller=config.engine_id)
        self.treasury = Treasury()
        self._proposals: dict[int, Proposal] = {}
        self._committed: dict[int, ProposalSnapshot] = {}
        self._proposal_locks: dict[int, asyncio.Lock] = {}
        self._next_proposal_id = 1

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    # Operations mutate the live market maker, ledger and proposal table.
    # Readers never see those: each proposal has a committed copy, replaced
    # when a unit of work commits, which also serves as the rollback point.

    def _capture(self, proposal_id: int) -> ProposalSnapshot | None:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            return None
        return ProposalSnapshot(
            proposal=copy.deepcopy(proposal),
            pass_market=copy.deepcopy(self.market_maker.get_market(proposal.pass_market_id)),
            fail_market=copy.deepcopy(self.market_maker.get_market(proposal.fail_market_id)),
            ledger=self.ledger.export_partition(proposal_id),
        )

    def _publish(self, proposal_id: int) -> None:
        snapshot = self._capture(proposal_id)
        if snapshot is None:
            self._committed.pop(proposal_id, None)
        else:
            self._committed[proposal_id] = snapshot

    def _restore(self, proposal_id: int, snapshot: ProposalSnapshot | None) -> None:
        engine = self._config.engine_id
        if snapshot is None:
            self._proposals.pop(proposal_id, None)
            self._proposal_locks.pop(proposal_id, None)
            for market_id in _market_ids(proposal_id):
                self.market_maker.drop_market(engine, market_id)
            self.ledger.import_partition(engine, proposal_id, None)
            return
        self._proposals[proposal_id] = copy.deepcopy(snapshot.proposal)
        self.market_maker.put_market(engine, copy.deepcopy(snapshot.pass_market))
        self.market_maker.put_market(engine, copy.deepcopy(snapshot.fail_market))
        self.ledger.import_partition(engine, proposal_id, snapshot.ledger)

    def _lock(self, proposal_id: int, creating: bool) -> asyncio.Lock:
        lock = self._proposal_locks.get(proposal_id)
        if lock is None:
            if not creating and proposal_id not in self._proposals:
                raise ProposalNotFoundError(proposal_id)
            lock = self._proposal_locks[proposal_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _transaction(
        self, proposal_id: int, creating: bool = False
    ) -> AsyncIterator[UnitOfWork[Any]]:
        async with self._lock(proposal_id, creating):
            uow: UnitOfWork[ProposalSnapshot | None] = UnitOfWork(
                capture=lambda: self._committed.get(proposal_id),
                restore=lambda saved: self._restore(proposal_id, saved),
                event_log=self.events,
            )
            uow.on_commit(lambda: self._publish(proposal_id))
            try:
                yield uow
            except BaseException:
                uow.rollback()
                raise
            uow.commit()

    def _event(
        self, event_type: EventType, proposal_id: int | None, now: int, **payload: Any
    ) -> DomainEvent:
        return DomainEvent(
            event_type=event_type, proposal_id=proposal_id, timestamp=now, payload=payload
        )

    def _check_invariants(self, proposal: Proposal) -> None:
        verify_proposal_invariants(
            proposal,
            self.market_maker.get_market(proposal.pass_market_id),
            self.market_maker.get_market(proposal.fail_market_id),
            self.ledger,
        )

    async def _deposit(self, payer: str, amount: int) -> None:
        if amount == 0:
            return
        if not await self._vault.deposit(payer, amount):
            raise TransferFailedError("deposit", payer, amount)

    async def _payout(self, payee: str, amount: int) -> None:
        if amount == 0:
            return
        if not await self._vault.payout(payee, amount):
            raise TransferFailedError("payout", payee, amount)

    def _get(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    # ------------------------------------------------------------------
    # Reads (committed state only; return copies)
    # ------------------------------------------------------------------

    def _view(self, proposal_id: int) -> ProposalSnapshot:
        snapshot = self._committed.get(proposal_id)
        if snapshot is None:
            raise ProposalNotFoundError(proposal_id)
        return snapshot

    @property
    def proposal_count(self) -> int:
        return len(self._committed)

    def proposal_ids(self) -> list[int]:
        return sorted(self._committed)

    def get_proposal(self, proposal_id: int) -> Proposal:
        return copy.deepcopy(self._view(proposal_id).proposal)

    def balance_of(self, holder: str, proposal_id: int, side: OutcomeSide) -> int:
        return self._view(proposal_id).balance_of(holder, side)

    def treasury_balance(self) -> int:
        return self.treasury.balance

    def get_prices(self, proposal_id: int) -> ProposalPrices:
        view = self._view(proposal_id)
        now = self._clock()
        window = self._config.twap_window
        mm = self.market_maker
        pass_spot = mm.price_of(view.pass_market, _TRADED_OUTCOME)
        fail_spot = mm.price_of(view.fail_market, _TRADED_OUTCOME)
        pass_twap, _ = mm.twap_of(view.pass_market, now, window)
        fail_twap, _ = mm.twap_of(view.fail_market, now, window)
        return ProposalPrices(proposal_id, pass_spot, fail_spot, pass_twap, fail_twap, now)

    def get_markets(self, proposal_id: int) -> tuple[MarketInfo, MarketInfo]:
        """(PASS market, FAIL market) views."""
        view = self._view(proposal_id)
        return (
            self.market_maker.info_of(view.pass_market),
            self.market_maker.info_of(view.fail_market),
        )

    def quote_buy(self, proposal_id: int, side: OutcomeSide, spend_amount: int) -> int:
        """Tokens ``spend_amount`` would buy right now (fee included)."""
        market = self._view(proposal_id).market(side)
        return self.market_maker.buy_amount_of(market, _TRADED_OUTCOME, spend_amount)

    def quote_sell(self, proposal_id: int, side: OutcomeSide, token_amount: int) -> int:
        market = self._view(proposal_id).market(side)
        return self.market_maker.sell_return_of(market, _TRADED_OUTCOME, token_amount)

    def check_custody(self, custody_balance: int) -> list[str]:
        return verify_custody_invariants(
            [s.proposal for s in self._committed.values()],
            self.treasury.balance,
            custody_balance,
        )

    # ------------------------------------------------------------------
    # Snapshot / hydration
    # ------------------------------------------------------------------

    def snapshot(self, proposal_id: int) -> ProposalSnapshot:
        """Last committed state of a proposal, detached from the engine."""
        return copy.deepcopy(self._view(proposal_id))

    def restore(self, snapshot: ProposalSnapshot) -> None:
        """Load a persisted proposal into the engine (startup / lazy rebuild)."""
        proposal_id = snapshot.proposal.id
        self._restore(proposal_id, snapshot)
        self._publish(proposal_id)
        self._next_proposal_id = max(self._next_proposal_id, proposal_id + 1)

    def restore_treasury(self, balance: int) -> None:
        self.treasury = Treasury(balance)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_proposal(
        self,
        caller: str,
        target: str,
        payload: str,
        requested_amount: int,
        description_ref: str,
        liquidity: int,
    ) -> int:
        """Open PASS/FAIL markets for a new proposal; caller deposits stake + liquidity."""
        if not target:
            raise ValidationError("Proposal target must be set")
        if requested_amount <= 0:
            raise ValidationError("Requested amount must be positive")
        if not description_ref:
            raise ValidationError("Description reference must be set")
        if liquidity < self._config.min_liquidity:
            raise InsufficientLiquidityError(liquidity, self._config.min_liquidity)

        proposal_id = self._next_proposal_id
        self._next_proposal_id += 1
        now = self._clock()
        cfg = self._config

        async with self._transaction(proposal_id, creating=True) as uow:
            pass_id, fail_id = _market_ids(proposal_id)
            pass_funding = liquidity // 2
            fail_funding = liquidity - pass_funding
            pass_market = self.market_maker.create_market(
                cfg.engine_id, pass_id, proposal_id, pass_funding, now
            )
            fail_market = self.market_maker.create_market(
                cfg.engine_id, fail_id, proposal_id, fail_funding, now
            )
            trading_end = now + cfg.trading_duration
            proposal = Proposal(
                id=proposal_id,
                proposer=caller,
                target=target,
                payload=payload,
                requested_amount=requested_amount,
                description_ref=description_ref,
                pass_market_id=pass_market.id,
                fail_market_id=fail_market.id,
                trading_start=now,
                trading_end=trading_end,
                resolution_time=trading_end + cfg.closing_delay + cfg.resolution_delay,
                stake=cfg.proposal_stake,
                liquidity=liquidity,
                created_at=now,
                collateral=liquidity,
            )
            self._proposals[proposal_id] = proposal
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.PROPOSAL_CREATED, proposal_id, now,
                proposer=caller, target=target, requested_amount=requested_amount,
                liquidity=liquidity, stake=cfg.proposal_stake, trading_end=trading_end,
            ))
            await self._deposit(caller, cfg.proposal_stake + liquidity)

        logger.info(
            "Proposal created: id=%s proposer=%s liquidity=%s",
            proposal_id, caller, wad_to_display(liquidity),
        )
        return proposal_id

    def _require_trading_open(self, proposal: Proposal, now: int) -> None:
        ensure_state(proposal, [ProposalState.ACTIVE], "trade")
        if not proposal.trading_start <= now < proposal.trading_end:
            raise TimingError(
                f"Trading window for proposal {proposal.id} is "
                f"[{proposal.trading_start}, {proposal.trading_end}), now={now}"
            )

    async def buy_outcome(
        self,
        caller: str,
        proposal_id: int,
        side: OutcomeSide,
        spend_amount: int,
        min_tokens: int,
        deadline: int,
    ) -> int:
        """Spend up to ``spend_amount`` on ``side`` tokens; returns tokens received."""
        now = self._clock()
        if now > deadline:
            raise DeadlineExpiredError(deadline, now)
        if spend_amount <= 0:
            raise ValidationError("Spend amount must be positive")
        if min_tokens < 0:
            raise ValidationError("min_tokens must be non-negative")

        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            self._require_trading_open(proposal, now)
            market_id = proposal.market_id(side)
            quantity = self.market_maker.calc_buy_amount(market_id, _TRADED_OUTCOME, spend_amount)
            if quantity == 0 or quantity < min_tokens:
                raise SlippageExceededError(
                    f"{spend_amount} buys {quantity} tokens, minimum is {min_tokens}"
                )
            result = self.market_maker.buy(
                self._config.engine_id, market_id, _TRADED_OUTCOME,
                quantity, spend_amount, now, deadline,
            )
            self.ledger.mint(self._config.engine_id, caller, proposal_id, side, result.quantity)
            proposal.collateral += result.amount
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.OUTCOME_BOUGHT, proposal_id, now,
                buyer=caller, side=side.value, tokens=result.quantity,
                cost=result.amount, fee=result.fee, price_after=result.price_yes,
            ))
            await self._deposit(caller, result.amount + result.fee)
            self.treasury.credit(result.fee)

        return result.quantity

    async def sell_outcome(
        self,
        caller: str,
        proposal_id: int,
        side: OutcomeSide,
        token_amount: int,
        min_return: int,
        deadline: int,
    ) -> int:
        """Sell ``token_amount`` of ``side`` back to the market; returns the net payout."""
        now = self._clock()
        if now > deadline:
            raise DeadlineExpiredError(deadline, now)
        if token_amount <= 0:
            raise ValidationError("Token amount must be positive")

        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            self._require_trading_open(proposal, now)
            self.ledger.burn(self._config.engine_id, caller, proposal_id, side, token_amount)
            result = self.market_maker.sell(
                self._config.engine_id, proposal.market_id(side), _TRADED_OUTCOME,
                token_amount, min_return, now, deadline,
            )
            proposal.collateral -= result.amount
            self._check_invariants(proposal)
            returned = result.amount - result.fee
            uow.emit(self._event(
                EventType.OUTCOME_SOLD, proposal_id, now,
                seller=caller, side=side.value, tokens=token_amount,
                returned=returned, fee=result.fee, price_after=result.price_yes,
            ))
            await self._payout(caller, returned)
            self.treasury.credit(result.fee)

        return returned

    async def poke(self, proposal_id: int) -> None:
        """Refresh both oracles without trading; anyone may call."""
        now = self._clock()
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.ACTIVE], "poke")
            self.market_maker.poke(proposal.pass_market_id, now)
            self.market_maker.poke(proposal.fail_market_id, now)
            uow.emit(self._event(EventType.ORACLE_POKED, proposal_id, now))

    async def close_trading(self, proposal_id: int) -> tuple[int, int]:
        """Freeze both markets' TWAPs as final prices; returns (pass, fail)."""
        now = self._clock()
        cfg = self._config
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.ACTIVE], "close trading")
            closes_at = proposal.trading_end + cfg.closing_delay
            if now < closes_at:
                raise TimingError(
                    f"Proposal {proposal_id} cannot close before {closes_at} (now={now})"
                )
            pass_final, _ = self.market_maker.close_market(
                cfg.engine_id, proposal.pass_market_id, now, cfg.twap_window
            )
            fail_final, _ = self.market_maker.close_market(
                cfg.engine_id, proposal.fail_market_id, now, cfg.twap_window
            )
            self._sweep_fees(proposal)
            proposal.final_pass_price = pass_final
            proposal.final_fail_price = fail_final
            proposal.closed_at = now
            transition(proposal, ProposalState.CLOSED, "close trading")
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.TRADING_CLOSED, proposal_id, now,
                pass_price=pass_final, fail_price=fail_final,
            ))

        logger.info(
            "Trading closed: proposal=%s pass=%d fail=%d", proposal_id, pass_final, fail_final
        )
        return pass_final, fail_final

    def _sweep_fees(self, proposal: Proposal) -> None:
        # Fees were credited to the treasury as they were charged; the
        # per-market counters are informational only.
        for market_id in (proposal.pass_market_id, proposal.fail_market_id):
            fees = self.market_maker.get_market(market_id).accumulated_fees
            if fees:
                logger.info("Market %s collected %d in fees", market_id, fees)

    async def resolve_market(self, proposal_id: int) -> bool:
        """Pick the winner from the frozen prices; returns pass_wins."""
        now = self._clock()
        threshold = self._config.clarity_threshold_bps
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.CLOSED], "resolve")
            if now < proposal.resolution_time:
                raise TimingError(
                    f"Proposal {proposal_id} resolves at {proposal.resolution_time} (now={now})"
                )
            if proposal.final_pass_price is None or proposal.final_fail_price is None:
                raise StateError(f"Proposal {proposal_id} has no final prices")
            gap = gap_bps(proposal.final_pass_price, proposal.final_fail_price)
            if gap < threshold:
                raise NoClearWinnerError(gap, threshold)
            pass_wins = proposal.final_pass_price > proposal.final_fail_price
            await self._finish_resolution(uow, proposal, pass_wins, now, emergency=False, gap=gap)

        return pass_wins

    async def emergency_resolve(self, caller: str, proposal_id: int, pass_wins: bool) -> None:
        """Guardian override: resolve a closed proposal without the clarity check."""
        now = self._clock()
        if caller != self._config.guardian_id:
            raise UnauthorizedCallerError(caller, "guardian")
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.CLOSED], "emergency resolve")
            await self._finish_resolution(uow, proposal, pass_wins, now, emergency=True, gap=None)

    async def _finish_resolution(
        self,
        uow: UnitOfWork[Any],
        proposal: Proposal,
        pass_wins: bool,
        now: int,
        emergency: bool,
        gap: int | None,
    ) -> None:
        proposal.pass_wins = pass_wins
        proposal.resolved_at = now
        proposal.stake_returned = True
        transition(proposal, ProposalState.RESOLVED, "resolve")
        self._check_invariants(proposal)
        uow.emit(self._event(
            EventType.PROPOSAL_RESOLVED, proposal.id, now,
            pass_wins=pass_wins, emergency=emergency, gap_bps=gap,
            pass_price=proposal.final_pass_price, fail_price=proposal.final_fail_price,
        ))
        await self._payout(proposal.proposer, proposal.stake)
        logger.info(
            "Proposal resolved: id=%s pass_wins=%s emergency=%s", proposal.id, pass_wins, emergency
        )

    async def execute_proposal(self, proposal_id: int) -> None:
        """Run the treasury action of a proposal whose PASS market won."""
        now = self._clock()
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.RESOLVED], "execute")
            if not proposal.pass_wins:
                raise StateError(f"Proposal {proposal_id} did not pass and cannot execute")
            amount = proposal.requested_amount
            self.treasury.reserve(amount)
            uow.on_rollback(lambda: self.treasury.release(amount))
            uow.on_commit(lambda: self.treasury.settle(amount))
            proposal.finalized_at = now
            transition(proposal, ProposalState.EXECUTED, "execute")
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.PROPOSAL_EXECUTED, proposal_id, now,
                target=proposal.target, amount=amount,
            ))
            try:
                await self._executor.execute(proposal.target, proposal.payload, amount)
            except AppError:
                raise
            except Exception as exc:
                raise ActionExecutionError(proposal.target, str(exc)) from exc

        logger.info("Proposal executed: id=%s amount=%s", proposal_id, wad_to_display(amount))

    async def reject_proposal(self, proposal_id: int) -> None:
        now = self._clock()
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.RESOLVED], "reject")
            if proposal.pass_wins:
                raise StateError(f"Proposal {proposal_id} passed and cannot be rejected")
            proposal.finalized_at = now
            transition(proposal, ProposalState.REJECTED, "reject")
            self._check_invariants(proposal)
            uow.emit(self._event(EventType.PROPOSAL_REJECTED, proposal_id, now))

        logger.info("Proposal rejected: id=%s", proposal_id)

    async def redeem_winnings(self, caller: str, proposal_id: int) -> int:
        """Pay the caller's pro-rata share of the pool for their winning tokens."""
        now = self._clock()
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.EXECUTED, ProposalState.REJECTED], "redeem")
            side = proposal.winning_side
            if side is None:
                raise StateError(f"Proposal {proposal_id} has no winning side")
            balance = self.ledger.balance_of(caller, proposal_id, side)
            if balance == 0:
                raise NothingToRedeemError(caller, proposal_id)
            supply = self.ledger.current_supply(proposal_id, side)
            payout = balance * proposal.collateral // supply
            self.ledger.burn(self._config.engine_id, caller, proposal_id, side, balance)
            proposal.collateral -= payout
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.WINNINGS_REDEEMED, proposal_id, now,
                redeemer=caller, side=side.value, tokens=balance, payout=payout,
            ))
            await self._payout(caller, payout)

        return payout

    async def cancel_proposal(self, caller: str, proposal_id: int) -> None:
        """Proposer (no trading yet) or guardian (any time before resolution) cancels.

        Stake and seed liquidity go back to the proposer.
        """
        now = self._clock()
        cfg = self._config
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            if caller == cfg.guardian_id:
                ensure_state(proposal, [ProposalState.ACTIVE, ProposalState.CLOSED], "cancel")
            elif caller == proposal.proposer:
                ensure_state(proposal, [ProposalState.ACTIVE], "cancel")
                traded = any(
                    self.ledger.supply_counter(proposal_id, side).total_minted
                    for side in OutcomeSide
                )
                if traded or proposal.collateral != proposal.liquidity:
                    raise StateError(
                        f"Proposal {proposal_id} has trading activity; only the guardian can cancel"
                    )
            else:
                raise CancelNotAllowedError(caller, proposal_id)
            for market_id in (proposal.pass_market_id, proposal.fail_market_id):
                if self.market_maker.get_market(market_id).active:
                    self.market_maker.close_market(cfg.engine_id, market_id, now, cfg.twap_window)
            refund = proposal.stake + proposal.liquidity
            proposal.collateral -= proposal.liquidity
            proposal.stake_returned = True
            proposal.finalized_at = now
            transition(proposal, ProposalState.CANCELED, "cancel")
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.PROPOSAL_CANCELED, proposal_id, now,
                canceled_by=caller, refund=refund,
            ))
            await self._payout(proposal.proposer, refund)

        logger.info("Proposal canceled: id=%s by=%s", proposal_id, caller)

    async def refund_canceled(self, caller: str, proposal_id: int) -> int:
        """Return a token holder's pro-rata share of a canceled proposal's pool."""
        now = self._clock()
        async with self._transaction(proposal_id) as uow:
            proposal = self._get(proposal_id)
            ensure_state(proposal, [ProposalState.CANCELED], "refund")
            holdings = {
                side: self.ledger.balance_of(caller, proposal_id, side) for side in OutcomeSide
            }
            held = sum(holdings.values())
            if held == 0:
                raise NothingToRedeemError(caller, proposal_id)
            outstanding = sum(
                self.ledger.current_supply(proposal_id, side) for side in OutcomeSide
            )
            payout = held * proposal.collateral // outstanding
            for side, amount in holdings.items():
                if amount:
                    self.ledger.burn(self._config.engine_id, caller, proposal_id, side, amount)
            proposal.collateral -= payout
            self._check_invariants(proposal)
            uow.emit(self._event(
                EventType.CANCEL_REFUNDED, proposal_id, now,
                holder=caller, tokens=held, payout=payout,
            ))
            await self._payout(caller, payout)

        return payout

    # ------------------------------------------------------------------
    # Treasury
    # ------------------------------------------------------------------

    async def deposit_to_treasury(self, caller: str, amount: int) -> int:
        """Move funds from ``caller`` into the treasury; returns the new balance."""
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        now = self._clock()
        await self._deposit(caller, amount)
        self.treasury.credit(amount)
        self.events.publish([
            self._event(EventType.TREASURY_DEPOSIT, None, now, depositor=caller, amount=amount)
        ])
        logger.info("Treasury deposit: from=%s amount=%s", caller, wad_to_display(amount))
        return self.treasury.balance

"""ProposalRepository — concrete implementation of ProposalRepositoryProtocol.

All queries use raw text() SQL (no ORM).
WAD amounts are bound as Decimal so asyncpg encodes them as NUMERIC; they are
read back as int. Oracle observations travel as a JSONB array.
Saving a proposal rewrites its whole ledger partition (balances + supply).
"""

import json
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import Market
from src.pm_amm.domain.twap import Observation, TwapOracle
from src.pm_common.enums import OutcomeSide, ProposalState
from src.pm_ledger.domain.models import LedgerPartition, SupplyCounter
from src.pm_proposal.domain.events import DomainEvent
from src.pm_proposal.domain.models import Proposal, ProposalSnapshot

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_UPSERT_PROPOSAL_SQL = text("""
    INSERT INTO futarchy_proposals (
        id, proposer, target, payload, requested_amount, description_ref,
        pass_market_id, fail_market_id, trading_start, trading_end,
        resolution_time, stake, liquidity, state, collateral,
        final_pass_price, final_fail_price, pass_wins, stake_returned,
        created_at, closed_at, resolved_at, finalized_at
    ) VALUES (
        :id, :proposer, :target, :payload, :requested_amount, :description_ref,
        :pass_market_id, :fail_market_id, :trading_start, :trading_end,
        :resolution_time, :stake, :liquidity, :state, :collateral,
        :final_pass_price, :final_fail_price, :pass_wins, :stake_returned,
        :created_at, :closed_at, :resolved_at, :finalized_at
    )
    ON CONFLICT (id) DO UPDATE SET
        state = EXCLUDED.state,
        collateral = EXCLUDED.collateral,
        final_pass_price = EXCLUDED.final_pass_price,
        final_fail_price = EXCLUDED.final_fail_price,
        pass_wins = EXCLUDED.pass_wins,
        stake_returned = EXCLUDED.stake_returned,
        closed_at = EXCLUDED.closed_at,
        resolved_at = EXCLUDED.resolved_at,
        finalized_at = EXCLUDED.finalized_at
""")

_UPSERT_MARKET_SQL = text("""
    INSERT INTO futarchy_markets (
        id, proposal_id, b, funding, q_yes, q_no, total_collateral,
        accumulated_fees, active, created_at, closed_at,
        final_price_yes, final_price_no,
        oracle_last_update, oracle_cumulative_yes, oracle_cumulative_no,
        oracle_accounted_seconds, oracle_observations
    ) VALUES (
        :id, :proposal_id, :b, :funding, :q_yes, :q_no, :total_collateral,
        :accumulated_fees, :active, :created_at, :closed_at,
        :final_price_yes, :final_price_no,
        :oracle_last_update, :oracle_cumulative_yes, :oracle_cumulative_no,
        :oracle_accounted_seconds, CAST(:oracle_observations AS JSONB)
    )
    ON CONFLICT (id) DO UPDATE SET
        q_yes = EXCLUDED.q_yes,
        q_no = EXCLUDED.q_no,
        total_collateral = EXCLUDED.total_collateral,
        accumulated_fees = EXCLUDED.accumulated_fees,
        active = EXCLUDED.active,
        closed_at = EXCLUDED.closed_at,
        final_price_yes = EXCLUDED.final_price_yes,
        final_price_no = EXCLUDED.final_price_no,
        oracle_last_update = EXCLUDED.oracle_last_update,
        oracle_cumulative_yes = EXCLUDED.oracle_cumulative_yes,
        oracle_cumulative_no = EXCLUDED.oracle_cumulative_no,
        oracle_accounted_seconds = EXCLUDED.oracle_accounted_seconds,
        oracle_observations = EXCLUDED.oracle_observations
""")

_DELETE_BALANCES_SQL = text("""
    DELETE FROM outcome_balances WHERE proposal_id = :proposal_id
""")

_INSERT_BALANCE_SQL = text("""
    INSERT INTO outcome_balances (holder, proposal_id, side, amount)
    VALUES (:holder, :proposal_id, :side, :amount)
""")

_UPSERT_SUPPLY_SQL = text("""
    INSERT INTO outcome_supply (proposal_id, side, total_minted, total_redeemed)
    VALUES (:proposal_id, :side, :total_minted, :total_redeemed)
    ON CONFLICT (proposal_id, side) DO UPDATE SET
        total_minted = EXCLUDED.total_minted,
        total_redeemed = EXCLUDED.total_redeemed
""")

_GET_PROPOSAL_SQL = text("""
    SELECT id, proposer, target, payload, requested_amount, description_ref,
           pass_market_id, fail_market_id, trading_start, trading_end,
           resolution_time, stake, liquidity, state, collateral,
           final_pass_price, final_fail_price, pass_wins, stake_returned,
           created_at, closed_at, resolved_at, finalized_at
    FROM futarchy_proposals
    WHERE id = :proposal_id
""")

_GET_MARKETS_SQL = text("""
    SELECT id, proposal_id, b, funding, q_yes, q_no, total_collateral,
           accumulated_fees, active, created_at, closed_at,
           final_price_yes, final_price_no,
           oracle_last_update, oracle_cumulative_yes, oracle_cumulative_no,
           oracle_accounted_seconds, oracle_observations
    FROM futarchy_markets
    WHERE proposal_id = :proposal_id
""")

_GET_BALANCES_SQL = text("""
    SELECT holder, side, amount
    FROM outcome_balances
    WHERE proposal_id = :proposal_id
""")

_GET_SUPPLY_SQL = text("""
    SELECT side, total_minted, total_redeemed
    FROM outcome_supply
    WHERE proposal_id = :proposal_id
""")

_LIST_PROPOSAL_IDS_SQL = text("""
    SELECT id FROM futarchy_proposals ORDER BY id
""")

_UPSERT_TREASURY_SQL = text("""
    INSERT INTO engine_treasury (id, balance) VALUES (1, :balance)
    ON CONFLICT (id) DO UPDATE SET balance = EXCLUDED.balance
""")

_GET_TREASURY_SQL = text("""
    SELECT balance FROM engine_treasury WHERE id = 1
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO engine_events (proposal_id, event_type, occurred_at, payload)
    VALUES (:proposal_id, :event_type, :occurred_at, CAST(:payload AS JSONB))
""")

# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _num(value: int | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _int(value: Any) -> int | None:
    return int(value) if value is not None else None


def _json(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    return json.loads(value) if isinstance(value, (str, bytes)) else value


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _proposal_params(p: Proposal) -> dict[str, Any]:
    return {
        "id": p.id,
        "proposer": p.proposer,
        "target": p.target,
        "payload": p.payload,
        "requested_amount": _num(p.requested_amount),
        "description_ref": p.description_ref,
        "pass_market_id": p.pass_market_id,
        "fail_market_id": p.fail_market_id,
        "trading_start": p.trading_start,
        "trading_end": p.trading_end,
        "resolution_time": p.resolution_time,
        "stake": _num(p.stake),
        "liquidity": _num(p.liquidity),
        "state": p.state.value,
        "collateral": _num(p.collateral),
        "final_pass_price": _num(p.final_pass_price),
        "final_fail_price": _num(p.final_fail_price),
        "pass_wins": p.pass_wins,
        "stake_returned": p.stake_returned,
        "created_at": p.created_at,
        "closed_at": p.closed_at,
        "resolved_at": p.resolved_at,
        "finalized_at": p.finalized_at,
    }


def _market_params(m: Market) -> dict[str, Any]:
    oracle = m.oracle
    observations = [
        [o.timestamp, str(o.cumulative_yes), str(o.cumulative_no), o.accounted_seconds]
        for o in oracle.observations
    ]
    return {
        "id": m.id,
        "proposal_id": m.proposal_id,
        "b": _num(m.b),
        "funding": _num(m.funding),
        "q_yes": _num(m.q_yes),
        "q_no": _num(m.q_no),
        "total_collateral": _num(m.total_collateral),
        "accumulated_fees": _num(m.accumulated_fees),
        "active": m.active,
        "created_at": m.created_at,
        "closed_at": m.closed_at,
        "final_price_yes": _num(m.final_price_yes),
        "final_price_no": _num(m.final_price_no),
        "oracle_last_update": oracle.last_update_time,
        "oracle_cumulative_yes": _num(oracle.cumulative_yes),
        "oracle_cumulative_no": _num(oracle.cumulative_no),
        "oracle_accounted_seconds": oracle.accounted_seconds,
        "oracle_observations": json.dumps(observations),
    }


def _row_to_proposal(row: Any) -> Proposal:
    return Proposal(
        id=row.id,
        proposer=row.proposer,
        target=row.target,
        payload=row.payload,
        requested_amount=int(row.requested_amount),
        description_ref=row.description_ref,
        pass_market_id=row.pass_market_id,
        fail_market_id=row.fail_market_id,
        trading_start=row.trading_start,
        trading_end=row.trading_end,
        resolution_time=row.resolution_time,
        stake=int(row.stake),
        liquidity=int(row.liquidity),
        created_at=row.created_at,
        state=ProposalState(row.state),
        collateral=int(row.collateral),
        final_pass_price=_int(row.final_pass_price),
        final_fail_price=_int(row.final_fail_price),
        pass_wins=row.pass_wins,
        stake_returned=row.stake_returned,
        closed_at=row.closed_at,
        resolved_at=row.resolved_at,
        finalized_at=row.finalized_at,
    )


def _row_to_market(row: Any) -> Market:
    oracle = TwapOracle(
        created_at=row.created_at,
        last_update_time=row.oracle_last_update,
        cumulative_yes=int(row.oracle_cumulative_yes),
        cumulative_no=int(row.oracle_cumulative_no),
        accounted_seconds=row.oracle_accounted_seconds,
        observations=[
            Observation(ts, int(cum_yes), int(cum_no), secs)
            for ts, cum_yes, cum_no, secs in _json(row.oracle_observations)
        ],
    )
    return Market(
        id=row.id,
        proposal_id=row.proposal_id,
        b=int(row.b),
        funding=int(row.funding),
        created_at=row.created_at,
        oracle=oracle,
        q_yes=int(row.q_yes),
        q_no=int(row.q_no),
        total_collateral=int(row.total_collateral),
        accumulated_fees=int(row.accumulated_fees),
        active=row.active,
        closed_at=row.closed_at,
        final_price_yes=_int(row.final_price_yes),
        final_price_no=_int(row.final_price_no),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProposalRepository:
    """Concrete repository — caller owns the transaction (db.begin())."""

    async def save_proposal_state(
        self, db: AsyncSession, snapshot: ProposalSnapshot
    ) -> None:
        proposal = snapshot.proposal
        await db.execute(_UPSERT_PROPOSAL_SQL, _proposal_params(proposal))
        for market in (snapshot.pass_market, snapshot.fail_market):
            await db.execute(_UPSERT_MARKET_SQL, _market_params(market))

        await db.execute(_DELETE_BALANCES_SQL, {"proposal_id": proposal.id})
        partition = snapshot.ledger
        if partition is None:
            return
        rows = [
            {
                "holder": holder,
                "proposal_id": proposal.id,
                "side": side.value,
                "amount": _num(amount),
            }
            for (holder, side), amount in sorted(partition.balances.items())
        ]
        if rows:
            await db.execute(_INSERT_BALANCE_SQL, rows)
        for side, counter in partition.supply.items():
            await db.execute(
                _UPSERT_SUPPLY_SQL,
                {
                    "proposal_id": proposal.id,
                    "side": side.value,
                    "total_minted": _num(counter.total_minted),
                    "total_redeemed": _num(counter.total_redeemed),
                },
            )

    async def load_proposal_state(
        self, db: AsyncSession, proposal_id: int
    ) -> ProposalSnapshot | None:
        params = {"proposal_id": proposal_id}
        result = await db.execute(_GET_PROPOSAL_SQL, params)
        row = result.fetchone()
        if row is None:
            return None
        proposal = _row_to_proposal(row)

        market_rows = (await db.execute(_GET_MARKETS_SQL, params)).fetchall()
        markets = {r.id: _row_to_market(r) for r in market_rows}

        balance_rows = (await db.execute(_GET_BALANCES_SQL, params)).fetchall()
        supply_rows = (await db.execute(_GET_SUPPLY_SQL, params)).fetchall()
        partition: LedgerPartition | None = None
        if balance_rows or supply_rows:
            supply = {side: SupplyCounter() for side in OutcomeSide}
            for r in supply_rows:
                supply[OutcomeSide(r.side)] = SupplyCounter(
                    int(r.total_minted), int(r.total_redeemed)
                )
            partition = LedgerPartition(
                proposal_id=proposal_id,
                balances={
                    (r.holder, OutcomeSide(r.side)): int(r.amount) for r in balance_rows
                },
                supply=supply,
            )

        return ProposalSnapshot(
            proposal=proposal,
            pass_market=markets[proposal.pass_market_id],
            fail_market=markets[proposal.fail_market_id],
            ledger=partition,
        )

    async def list_proposal_ids(self, db: AsyncSession) -> list[int]:
        result = await db.execute(_LIST_PROPOSAL_IDS_SQL)
        return [row.id for row in result.fetchall()]

    async def append_events(
        self, db: AsyncSession, events: list[DomainEvent]
    ) -> None:
        if not events:
            return
        await db.execute(
            _INSERT_EVENT_SQL,
            [
                {
                    "proposal_id": e.proposal_id,
                    "event_type": e.event_type.value,
                    "occurred_at": e.timestamp,
                    "payload": json.dumps(e.payload),
                }
                for e in events
            ],
        )

    async def save_treasury_balance(self, db: AsyncSession, balance: int) -> None:
        await db.execute(_UPSERT_TREASURY_SQL, {"balance": _num(balance)})

    async def load_treasury_balance(self, db: AsyncSession) -> int:
        result = await db.execute(_GET_TREASURY_SQL)
        row = result.fetchone()
        return int(row.balance) if row else 0

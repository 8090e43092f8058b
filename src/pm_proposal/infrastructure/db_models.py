"""SQLAlchemy ORM models for the futarchy tables.

Used for type reference only — persistence.py uses raw text() SQL.
Alembic migration 001_create_futarchy_tables.py is the authoritative DDL source.
WAD amounts exceed BIGINT, so they are stored as NUMERIC(78, 0).
"""

from typing import Any

from sqlalchemy import BigInteger, Boolean, Numeric, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

WadNumeric = Numeric(78, 0)


class Base(DeclarativeBase):
    pass


class FutarchyProposalORM(Base):
    __tablename__ = "futarchy_proposals"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    proposer: Mapped[str] = mapped_column(Text, nullable=False)
    target: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    requested_amount: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    description_ref: Mapped[str] = mapped_column(Text, nullable=False)
    pass_market_id: Mapped[str] = mapped_column(Text, nullable=False)
    fail_market_id: Mapped[str] = mapped_column(Text, nullable=False)
    trading_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    trading_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    resolution_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stake: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    liquidity: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False)
    collateral: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    final_pass_price: Mapped[int | None] = mapped_column(WadNumeric)
    final_fail_price: Mapped[int | None] = mapped_column(WadNumeric)
    pass_wins: Mapped[bool | None] = mapped_column(Boolean)
    stake_returned: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    closed_at: Mapped[int | None] = mapped_column(BigInteger)
    resolved_at: Mapped[int | None] = mapped_column(BigInteger)
    finalized_at: Mapped[int | None] = mapped_column(BigInteger)


class FutarchyMarketORM(Base):
    __tablename__ = "futarchy_markets"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    proposal_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    b: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    funding: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    q_yes: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    q_no: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    total_collateral: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    accumulated_fees: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    closed_at: Mapped[int | None] = mapped_column(BigInteger)
    final_price_yes: Mapped[int | None] = mapped_column(WadNumeric)
    final_price_no: Mapped[int | None] = mapped_column(WadNumeric)
    oracle_last_update: Mapped[int] = mapped_column(BigInteger, nullable=False)
    oracle_cumulative_yes: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    oracle_cumulative_no: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    oracle_accounted_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False)
    oracle_observations: Mapped[list[Any]] = mapped_column(JSONB, nullable=False)


class OutcomeBalanceORM(Base):
    __tablename__ = "outcome_balances"

    holder: Mapped[str] = mapped_column(Text, primary_key=True)
    proposal_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    side: Mapped[str] = mapped_column(Text, primary_key=True)
    amount: Mapped[int] = mapped_column(WadNumeric, nullable=False)


class OutcomeSupplyORM(Base):
    __tablename__ = "outcome_supply"

    proposal_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    side: Mapped[str] = mapped_column(Text, primary_key=True)
    total_minted: Mapped[int] = mapped_column(WadNumeric, nullable=False)
    total_redeemed: Mapped[int] = mapped_column(WadNumeric, nullable=False)


class EngineEventORM(Base):
    __tablename__ = "engine_events"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    proposal_id: Mapped[int | None] = mapped_column(BigInteger)
    event_type: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)


class EngineTreasuryORM(Base):
    __tablename__ = "engine_treasury"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    balance: Mapped[int] = mapped_column(WadNumeric, nullable=False)

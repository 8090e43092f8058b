"""Pydantic schemas for the proposal and treasury APIs.

WAD amounts travel as decimal strings ("1500000000000000000") in both
directions so JSON clients never round them through a float.
"""

from typing import Literal

from pydantic import BaseModel, field_validator

from src.pm_amm.domain.models import MarketInfo
from src.pm_proposal.domain.models import Proposal, ProposalPrices


def _wad_string(v: object) -> str:
    if isinstance(v, bool):
        raise ValueError("amount must be a decimal string")
    s = str(v) if isinstance(v, int) else v
    if not isinstance(s, str) or not s.isdigit():
        raise ValueError("amount must be a non-negative decimal integer string")
    return s


def _opt(v: int | None) -> str | None:
    return str(v) if v is not None else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateProposalRequest(BaseModel):
    target: str
    payload: str = ""
    requested_amount: str
    description_ref: str
    liquidity: str

    @field_validator("requested_amount", "liquidity", mode="before")
    @classmethod
    def amounts_are_decimal(cls, v: object) -> str:
        return _wad_string(v)


class BuyRequest(BaseModel):
    side: Literal["PASS", "FAIL"]
    spend_amount: str
    min_tokens: str = "0"
    deadline: int

    @field_validator("spend_amount", "min_tokens", mode="before")
    @classmethod
    def amounts_are_decimal(cls, v: object) -> str:
        return _wad_string(v)


class SellRequest(BaseModel):
    side: Literal["PASS", "FAIL"]
    token_amount: str
    min_return: str = "0"
    deadline: int

    @field_validator("token_amount", "min_return", mode="before")
    @classmethod
    def amounts_are_decimal(cls, v: object) -> str:
        return _wad_string(v)


class EmergencyResolveRequest(BaseModel):
    pass_wins: bool


class TreasuryDepositRequest(BaseModel):
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def amount_is_decimal(cls, v: object) -> str:
        return _wad_string(v)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ProposalResponse(BaseModel):
    id: int
    proposer: str
    target: str
    payload: str
    requested_amount: str
    description_ref: str
    pass_market_id: str
    fail_market_id: str
    trading_start: int
    trading_end: int
    resolution_time: int
    stake: str
    liquidity: str
    state: str
    collateral: str
    final_pass_price: str | None
    final_fail_price: str | None
    pass_wins: bool | None
    stake_returned: bool
    created_at: int
    closed_at: int | None
    resolved_at: int | None
    finalized_at: int | None

    @classmethod
    def from_domain(cls, p: Proposal) -> "ProposalResponse":
        return cls(
            id=p.id,
            proposer=p.proposer,
            target=p.target,
            payload=p.payload,
            requested_amount=str(p.requested_amount),
            description_ref=p.description_ref,
            pass_market_id=p.pass_market_id,
            fail_market_id=p.fail_market_id,
            trading_start=p.trading_start,
            trading_end=p.trading_end,
            resolution_time=p.resolution_time,
            stake=str(p.stake),
            liquidity=str(p.liquidity),
            state=p.state.value,
            collateral=str(p.collateral),
            final_pass_price=_opt(p.final_pass_price),
            final_fail_price=_opt(p.final_fail_price),
            pass_wins=p.pass_wins,
            stake_returned=p.stake_returned,
            created_at=p.created_at,
            closed_at=p.closed_at,
            resolved_at=p.resolved_at,
            finalized_at=p.finalized_at,
        )


class PricesResponse(BaseModel):
    proposal_id: int
    pass_spot: str
    fail_spot: str
    pass_twap: str
    fail_twap: str
    as_of: int

    @classmethod
    def from_domain(cls, prices: ProposalPrices) -> "PricesResponse":
        return cls(
            proposal_id=prices.proposal_id,
            pass_spot=str(prices.pass_spot),
            fail_spot=str(prices.fail_spot),
            pass_twap=str(prices.pass_twap),
            fail_twap=str(prices.fail_twap),
            as_of=prices.as_of,
        )


class MarketResponse(BaseModel):
    id: str
    proposal_id: int
    b: str
    funding: str
    q_yes: str
    q_no: str
    total_collateral: str
    accumulated_fees: str
    active: bool
    price_yes: str
    price_no: str
    final_price_yes: str | None
    final_price_no: str | None

    @classmethod
    def from_domain(cls, m: MarketInfo) -> "MarketResponse":
        return cls(
            id=m.id,
            proposal_id=m.proposal_id,
            b=str(m.b),
            funding=str(m.funding),
            q_yes=str(m.q_yes),
            q_no=str(m.q_no),
            total_collateral=str(m.total_collateral),
            accumulated_fees=str(m.accumulated_fees),
            active=m.active,
            price_yes=str(m.price_yes),
            price_no=str(m.price_no),
            final_price_yes=_opt(m.final_price_yes),
            final_price_no=_opt(m.final_price_no),
        )


class CreateProposalResponse(BaseModel):
    proposal_id: int


class TradeResponse(BaseModel):
    proposal_id: int
    side: str
    tokens: str
    amount: str  # spend cap on buy, net proceeds on sell


class QuoteResponse(BaseModel):
    proposal_id: int
    side: str
    direction: Literal["BUY", "SELL"]
    amount_in: str
    amount_out: str


class BalanceResponse(BaseModel):
    holder: str
    proposal_id: int
    pass_balance: str
    fail_balance: str


class PayoutResponse(BaseModel):
    proposal_id: int
    holder: str
    payout: str


class TreasuryResponse(BaseModel):
    balance: str

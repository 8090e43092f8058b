"""pm_proposal REST API — all endpoints require JWT authentication.

POST /proposals                              — create (caller = proposer)
GET  /proposals                              — list
GET  /proposals/{id}                         — detail
GET  /proposals/{id}/markets                 — PASS/FAIL market state
GET  /proposals/{id}/prices                  — spot + TWAP
GET  /proposals/{id}/quote/buy|sell          — quotes
GET  /proposals/{id}/balances                — caller's token balances
POST /proposals/{id}/buy|sell                — trade (rate limited)
POST /proposals/{id}/poke|close|resolve|execute|reject
POST /proposals/{id}/emergency-resolve       — guardian only
POST /proposals/{id}/cancel
POST /proposals/{id}/redeem|refund
"""

from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.errors import ValidationError
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_caller_id
from src.pm_gateway.middleware.rate_limit import trade_rate_limit
from src.pm_proposal.application.schemas import (
    BuyRequest,
    CreateProposalRequest,
    EmergencyResolveRequest,
    SellRequest,
)
from src.pm_proposal.application.service import (
    ProposalApplicationService,
    get_proposal_service,
)

router = APIRouter(prefix="/proposals", tags=["proposals"])

Caller = Annotated[str, Depends(get_caller_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[ProposalApplicationService, Depends(get_proposal_service)]
Side = Literal["PASS", "FAIL"]


def _ok(request: Request, data: Any) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def _amount(raw: str) -> int:
    if not raw.isdigit():
        raise ValidationError(f"Amount must be a decimal integer string, got {raw!r}")
    return int(raw)


@router.post("")
async def create_proposal(
    body: CreateProposalRequest, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    data = await service.create_proposal(db, caller, body)
    return _ok(request, data.model_dump())


@router.get("")
async def list_proposals(caller: Caller, service: Service, request: Request) -> ApiResponse:
    return _ok(request, [p.model_dump() for p in service.list_proposals()])


@router.get("/{proposal_id}")
async def get_proposal(
    proposal_id: int, caller: Caller, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, service.get_proposal(proposal_id).model_dump())


@router.get("/{proposal_id}/markets")
async def get_markets(
    proposal_id: int, caller: Caller, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, [m.model_dump() for m in service.get_markets(proposal_id)])


@router.get("/{proposal_id}/prices")
async def get_prices(
    proposal_id: int, caller: Caller, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, service.get_prices(proposal_id).model_dump())


@router.get("/{proposal_id}/quote/buy")
async def quote_buy(
    proposal_id: int,
    caller: Caller,
    service: Service,
    request: Request,
    side: Side = Query(...),
    spend_amount: str = Query(..., description="WAD decimal string"),
) -> ApiResponse:
    data = service.quote_buy(proposal_id, side, _amount(spend_amount))
    return _ok(request, data.model_dump())


@router.get("/{proposal_id}/quote/sell")
async def quote_sell(
    proposal_id: int,
    caller: Caller,
    service: Service,
    request: Request,
    side: Side = Query(...),
    token_amount: str = Query(..., description="WAD decimal string"),
) -> ApiResponse:
    data = service.quote_sell(proposal_id, side, _amount(token_amount))
    return _ok(request, data.model_dump())


@router.get("/{proposal_id}/balances")
async def get_balances(
    proposal_id: int, caller: Caller, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, service.get_balances(proposal_id, caller).model_dump())


@router.post("/{proposal_id}/buy")
async def buy(
    proposal_id: int,
    body: BuyRequest,
    caller: Annotated[str, Depends(trade_rate_limit)],
    db: Db,
    service: Service,
    request: Request,
) -> ApiResponse:
    data = await service.buy(db, caller, proposal_id, body)
    return _ok(request, data.model_dump())


@router.post("/{proposal_id}/sell")
async def sell(
    proposal_id: int,
    body: SellRequest,
    caller: Annotated[str, Depends(trade_rate_limit)],
    db: Db,
    service: Service,
    request: Request,
) -> ApiResponse:
    data = await service.sell(db, caller, proposal_id, body)
    return _ok(request, data.model_dump())


@router.post("/{proposal_id}/poke")
async def poke(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.poke(db, proposal_id)).model_dump())


@router.post("/{proposal_id}/close")
async def close_trading(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.close_trading(db, proposal_id)).model_dump())


@router.post("/{proposal_id}/resolve")
async def resolve(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.resolve(db, proposal_id)).model_dump())


@router.post("/{proposal_id}/emergency-resolve")
async def emergency_resolve(
    proposal_id: int,
    body: EmergencyResolveRequest,
    caller: Caller,
    db: Db,
    service: Service,
    request: Request,
) -> ApiResponse:
    data = await service.emergency_resolve(db, caller, proposal_id, body.pass_wins)
    return _ok(request, data.model_dump())


@router.post("/{proposal_id}/execute")
async def execute(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.execute(db, proposal_id)).model_dump())


@router.post("/{proposal_id}/reject")
async def reject(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.reject(db, proposal_id)).model_dump())


@router.post("/{proposal_id}/cancel")
async def cancel(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.cancel(db, caller, proposal_id)).model_dump())


@router.post("/{proposal_id}/redeem")
async def redeem(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.redeem(db, caller, proposal_id)).model_dump())


@router.post("/{proposal_id}/refund")
async def refund(
    proposal_id: int, caller: Caller, db: Db, service: Service, request: Request
) -> ApiResponse:
    return _ok(request, (await service.refund(db, caller, proposal_id)).model_dump())

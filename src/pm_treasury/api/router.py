"""Treasury REST API.

GET  /treasury          — current balance
POST /treasury/deposit  — move funds from the caller into the treasury
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_caller_id
from src.pm_proposal.application.schemas import TreasuryDepositRequest
from src.pm_proposal.application.service import (
    ProposalApplicationService,
    get_proposal_service,
)

router = APIRouter(prefix="/treasury", tags=["treasury"])


@router.get("")
async def get_treasury(
    caller_id: Annotated[str, Depends(get_caller_id)],
    service: Annotated[ProposalApplicationService, Depends(get_proposal_service)],
    request: Request,
) -> ApiResponse:
    resp = success_response(service.treasury_balance().model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/deposit")
async def deposit(
    body: TreasuryDepositRequest,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[ProposalApplicationService, Depends(get_proposal_service)],
    request: Request,
) -> ApiResponse:
    data = await service.deposit_to_treasury(db, caller_id, int(body.amount))
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

"""Wallet API router — balance, valuation summary, detailed portfolio."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bootstrap import get_wallet_service
from src.pt_common.database import get_db_session
from src.pt_common.response import ApiResponse, success_response
from src.pt_gateway.api.router import get_request_id
from src.pt_gateway.auth.dependencies import get_current_user_id
from src.pt_wallet.application.service import WalletApplicationService

router = APIRouter(prefix="/wallet", tags=["wallet"])

UserId = Annotated[str, Depends(get_current_user_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[WalletApplicationService, Depends(get_wallet_service)]


@router.get("/balance", response_model=ApiResponse, summary="Cash and buying power")
async def get_balance(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.get_balance(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/summary", response_model=ApiResponse, summary="Portfolio valuation totals")
async def get_summary(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.get_summary(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/details", response_model=ApiResponse, summary="Per-holding valuation")
async def get_details(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.get_details(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp

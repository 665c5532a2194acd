"""Watchlist API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.bootstrap import get_watchlist_service
from src.pt_common.database import get_db_session
from src.pt_common.enums import Exchange
from src.pt_common.response import ApiResponse, success_response
from src.pt_gateway.api.router import get_request_id
from src.pt_gateway.auth.dependencies import get_current_user_id
from src.pt_watchlist.application.schemas import AddWatchlistRequest
from src.pt_watchlist.application.service import WatchlistApplicationService

router = APIRouter(prefix="/watchlist", tags=["watchlist"])

UserId = Annotated[str, Depends(get_current_user_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[WatchlistApplicationService, Depends(get_watchlist_service)]


@router.post("/add", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def add(
    request: Request, body: AddWatchlistRequest, user_id: UserId, db: Db, svc: Service
) -> ApiResponse:
    data = await svc.add(db, user_id, body)
    resp = success_response(data.model_dump(mode="json"), "Added to watchlist")
    resp.request_id = get_request_id(request)
    return resp


@router.delete("/remove/{stock_symbol}", response_model=ApiResponse)
async def remove(
    request: Request,
    stock_symbol: str,
    user_id: UserId,
    db: Db,
    svc: Service,
    exchange: Exchange = Query(Exchange.NSE),
) -> ApiResponse:
    await svc.remove(db, user_id, stock_symbol, exchange)
    resp = success_response(None, "Removed from watchlist")
    resp.request_id = get_request_id(request)
    return resp


@router.get("", response_model=ApiResponse)
async def list_watchlist(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.list(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/count", response_model=ApiResponse)
async def count(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.count(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp

"""Trading API router — market orders, portfolio, transaction history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bootstrap import get_trading_service
from src.pt_common.database import get_db_session
from src.pt_common.enums import OrderSide, ProductType
from src.pt_common.response import ApiResponse, success_response
from src.pt_gateway.api.router import get_request_id
from src.pt_gateway.auth.dependencies import get_current_user_id
from src.pt_trading.application.schemas import OrderRequest
from src.pt_trading.application.service import TradingApplicationService

router = APIRouter(prefix="/trading", tags=["trading"])

UserId = Annotated[str, Depends(get_current_user_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[TradingApplicationService, Depends(get_trading_service)]


@router.post("/buy", response_model=ApiResponse, summary="Buy at market price")
async def buy(
    request: Request, body: OrderRequest, user_id: UserId, db: Db, svc: Service
) -> ApiResponse:
    data = await svc.buy(db, user_id, body)
    resp = success_response(data.model_dump(mode="json"), "Order executed")
    resp.request_id = get_request_id(request)
    return resp


@router.post("/sell", response_model=ApiResponse, summary="Sell at market price")
async def sell(
    request: Request, body: OrderRequest, user_id: UserId, db: Db, svc: Service
) -> ApiResponse:
    data = await svc.sell(db, user_id, body)
    resp = success_response(data.model_dump(mode="json"), "Order executed")
    resp.request_id = get_request_id(request)
    return resp


@router.post("/square-off", response_model=ApiResponse, summary="Close stale intraday positions")
async def square_off(request: Request, user_id: UserId, db: Db, svc: Service) -> ApiResponse:
    data = await svc.square_off(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/portfolio", response_model=ApiResponse, summary="Open positions")
async def portfolio(
    request: Request,
    user_id: UserId,
    db: Db,
    svc: Service,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    product_type: ProductType | None = Query(None),
) -> ApiResponse:
    data = await svc.portfolio(db, user_id, page, limit, product_type)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/transactions", response_model=ApiResponse, summary="Executed orders, newest first")
async def transactions(
    request: Request,
    user_id: UserId,
    db: Db,
    svc: Service,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: OrderSide | None = Query(None),  # noqa: A002
    stock_symbol: str | None = Query(None, max_length=32),
) -> ApiResponse:
    data = await svc.transactions(db, user_id, page, limit, type, stock_symbol)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp

"""Market data API router — live quote passthrough."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from src.bootstrap import get_price_oracle
from src.pt_common.enums import Exchange
from src.pt_common.response import ApiResponse, success_response
from src.pt_gateway.api.router import get_request_id
from src.pt_gateway.auth.dependencies import get_current_user_id
from src.pt_market.domain.repository import PriceOracleProtocol

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/quote/{stock_symbol}", response_model=ApiResponse)
async def get_quote(
    request: Request,
    _user_id: Annotated[str, Depends(get_current_user_id)],
    oracle: Annotated[PriceOracleProtocol, Depends(get_price_oracle)],
    stock_symbol: str = Path(..., min_length=1, max_length=32),
    exchange: Exchange = Query(Exchange.NSE),
) -> ApiResponse:
    quote = await oracle.get_quote(stock_symbol.strip().upper(), exchange.value)
    resp = success_response(
        {
            "stock_symbol": quote.symbol,
            "exchange": quote.exchange,
            "last_price": str(quote.last_price),
            "previous_close": str(quote.previous_close) if quote.previous_close is not None else None,
            "day_change": str(quote.day_change) if quote.day_change is not None else None,
            "fetched_at": quote.fetched_at.isoformat(),
        }
    )
    resp.request_id = get_request_id(request)
    return resp

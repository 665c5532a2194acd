"""FastAPI application entry point.

Run with: uvicorn src.main:app --loop uvloop --port 8000
or:       python -m src.main
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.bootstrap import build_services
from src.pt_common.database import engine, ping_database
from src.pt_common.errors import AppError
from src.pt_common.redis_client import close_redis, get_redis
from src.pt_common.response import error_response
from src.pt_gateway.api.router import router as auth_router
from src.pt_gateway.middleware.rate_limit import RateLimitMiddleware
from src.pt_gateway.middleware.request_log import RequestLogMiddleware
from src.pt_market.api.router import router as market_router
from src.pt_trading.api.router import router as trading_router
from src.pt_wallet.api.router import router as wallet_router
from src.pt_watchlist.api.router import router as watchlist_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, build services. Shutdown: close clients."""
    await ping_database()
    await get_redis()
    app.state.services = build_services(settings)
    logger.info("%s started", settings.APP_NAME)
    yield
    await app.state.services.aclose()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Last added runs first: request id is assigned before rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(trading_router, prefix="/api/v1")
app.include_router(watchlist_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}


def run() -> None:
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000, loop="uvloop")


if __name__ == "__main__":
    run()

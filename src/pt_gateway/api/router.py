"""Auth API router: register, login, refresh.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pt_common.database import get_db_session
from src.pt_common.response import ApiResponse, success_response
from src.pt_gateway.auth.dependencies import ACCESS_TOKEN_COOKIE
from src.pt_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from src.pt_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="User registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(
            body.username, body.email, body.password, db, display_name=body.display_name
        )

    data = RegisterResponse(
        user_id=str(user.id),
        username=user.username,
        email=user.email,
        display_name=user.public_name,
        created_at=user.created_at.isoformat() if user.created_at else "",
        virtual_cash=_service.initial_balance,
    )
    resp = success_response(data.model_dump(mode="json"), "User registered successfully")
    resp.request_id = get_request_id(request)
    return resp


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="User login",
)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.username, body.password, db)

    expires_in = settings.JWT_EXPIRE_MINUTES * 60
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age=expires_in,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
    )
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        user=UserInfo(
            user_id=str(user.id),
            username=user.username,
            email=user.email,
            display_name=user.public_name,
        ),
    )
    resp = success_response(data.model_dump(), "Login successful")
    resp.request_id = get_request_id(request)
    return resp


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Refresh access token",
)
async def refresh(request: Request, body: RefreshRequest) -> ApiResponse:
    access_token = await _service.refresh(body.refresh_token)
    data = RefreshResponse(
        access_token=access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = success_response(data.model_dump(), "Token refreshed")
    resp.request_id = get_request_id(request)
    return resp

"""FastAPI dependencies resolving the authenticated user.

Usage in any protected router:
    @router.get("/protected")
    async def protected(user_id: Annotated[str, Depends(get_current_user_id)]):
        ...

The access token is read from the `Authorization: Bearer` header first, then
from the `accessToken` cookie used by the web client.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.errors import AccountDisabledError, InvalidCredentialsError
from src.pt_gateway.auth.jwt_handler import decode_token
from src.pt_gateway.user.db_models import UserModel

ACCESS_TOKEN_COOKIE = "accessToken"

# auto_error=False so a missing header can fall back to the cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    request: Request,
    bearer: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Validate the access token and return the active UserModel.

    Raises HTTP 401 if the token is missing, invalid, expired or the user is gone.
    Raises AccountDisabledError (403) if the user account is disabled.
    """
    token = bearer or request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    result = await db.execute(select(UserModel).where(UserModel.id == payload["sub"]))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    if not user.is_active:
        raise AccountDisabledError()
    return user


async def get_current_user_id(
    user: UserModel = Depends(get_current_user),
) -> str:
    """The ledger core only needs the authenticated user id."""
    return str(user.id)

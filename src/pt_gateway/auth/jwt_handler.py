"""JWT access/refresh token creation and verification (HS256, shared JWT_SECRET).

Access tokens are short-lived and carried either as a Bearer header or the
`accessToken` cookie set by the web client. Refresh tokens are only accepted
by /auth/refresh.

NOTE: No server-side revocation. A token stays valid until `exp`.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pt_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _issue(user_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str) -> str:
    return _issue(user_id, "access", _ACCESS_EXPIRE)


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, "refresh", _REFRESH_EXPIRE)


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT.

    Args:
        token: Raw JWT string.
        expected_type: "access" or "refresh"; a token of the other type is rejected.

    Raises:
        InvalidCredentialsError: bad/expired token where an access token was expected.
        InvalidRefreshTokenError: bad/expired token where a refresh token was expected.
    """
    error = InvalidCredentialsError if expected_type == "access" else InvalidRefreshTokenError
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise error() from None

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise error()
    return payload

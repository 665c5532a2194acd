"""User domain service: register, login, refresh.

All DB operations use the injected AsyncSession. Registration runs inside
the caller's `async with db.begin()`; login commits its own last_login_at
stamp.
"""

from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pt_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.pt_common.datetime_utils import utc_now
from src.pt_common.money import to_money
from src.pt_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.pt_gateway.auth.password import hash_password, verify_password
from src.pt_gateway.user.db_models import UserModel


class UserService:
    """Stateless service, instantiate once and reuse across requests."""

    def __init__(self, initial_balance: Decimal | None = None) -> None:
        self._initial_balance = to_money(
            settings.INITIAL_WALLET_BALANCE if initial_balance is None else initial_balance
        )

    @property
    def initial_balance(self) -> Decimal:
        return self._initial_balance

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
        display_name: str | None = None,
    ) -> UserModel:
        """Register a new user and open their virtual wallet.

        Inserts into `users` and `wallets` in a single transaction; the caller
        wraps this in `async with db.begin()`.
        """
        # DB UNIQUE constraints are the final guard
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            display_name=display_name,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing

        await db.execute(
            text(
                "INSERT INTO wallets (user_id, virtual_cash, currency, mis_margin_used, "
                "realized_pnl, version) "
                "VALUES (:user_id, :cash, :currency, 0, 0, 0)"
            ),
            {
                "user_id": str(user.id),
                "cash": self._initial_balance,
                "currency": settings.CURRENCY,
            },
        )
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate, stamp last_login_at and return (user, access, refresh).

        Unknown user and wrong password both raise InvalidCredentialsError so
        usernames cannot be enumerated.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        user.last_login_at = utc_now()
        await db.commit()

        return (
            user,
            create_access_token(str(user.id)),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str) -> str:
        """Validate a refresh token and return a new access token (no rotation)."""
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))

"""Unit tests for user service (mocked DB)."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.pt_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.pt_gateway.auth.jwt_handler import create_access_token, create_refresh_token, decode_token
from src.pt_gateway.user.db_models import UserModel
from src.pt_gateway.user.service import UserService


def _make_user(is_active: bool = True) -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "asha"
    user.email = "asha@example.com"
    user.password_hash = "$2b$12$fakehash"
    user.is_active = is_active
    user.display_name = None
    user.last_login_at = None
    return user


def _result(value: object) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def service() -> UserService:
    return UserService(initial_balance=Decimal("1000000"))


class TestRegister:
    async def test_duplicate_username_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))
        with pytest.raises(UsernameExistsError):
            await service.register("asha", "new@example.com", "Pass1word", mock_db)

    async def test_duplicate_email_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(_make_user())])
        with pytest.raises(EmailExistsError):
            await service.register("newuser", "asha@example.com", "Pass1word", mock_db)

    async def test_register_opens_wallet_with_initial_balance(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        new_id = uuid.uuid4()

        def _assign_id(user: UserModel) -> None:
            user.id = new_id

        mock_db.add.side_effect = _assign_id
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(None), MagicMock()])

        user = await service.register(
            "ravi", "ravi@example.com", "Pass1word", mock_db, display_name="Ravi Kumar"
        )

        assert user.username == "ravi"
        assert user.display_name == "Ravi Kumar"
        assert user.public_name == "Ravi Kumar"
        assert user.password_hash != "Pass1word"
        mock_db.flush.assert_awaited_once()
        sql, params = mock_db.execute.await_args_list[2].args
        assert "INSERT INTO wallets" in str(sql)
        assert params["user_id"] == str(new_id)
        assert params["cash"] == Decimal("1000000.00")
        assert params["currency"] == "INR"

    def test_public_name_falls_back_to_username(self) -> None:
        assert _make_user().public_name == "asha"

    def test_initial_balance_is_quantized(self) -> None:
        assert UserService(initial_balance=Decimal("500.5")).initial_balance == Decimal("500.50")


class TestLogin:
    async def test_unknown_user_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InvalidCredentialsError):
            await service.login("ghost", "Pass1word", mock_db)

    async def test_wrong_password_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))
        with patch("src.pt_gateway.user.service.verify_password", return_value=False):
            with pytest.raises(InvalidCredentialsError):
                await service.login("asha", "Wrong1pass", mock_db)
        mock_db.commit.assert_not_awaited()

    async def test_disabled_account_raises(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(is_active=False)))
        with patch("src.pt_gateway.user.service.verify_password", return_value=True):
            with pytest.raises(AccountDisabledError):
                await service.login("asha", "Pass1word", mock_db)

    async def test_success_returns_user_and_both_tokens(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        user = _make_user()
        mock_db.execute = AsyncMock(return_value=_result(user))
        with patch("src.pt_gateway.user.service.verify_password", return_value=True):
            found, access, refresh = await service.login("asha", "Pass1word", mock_db)

        assert found is user
        assert user.last_login_at is not None
        mock_db.commit.assert_awaited_once()
        assert decode_token(access, expected_type="access")["sub"] == str(user.id)
        assert decode_token(refresh, expected_type="refresh")["sub"] == str(user.id)


class TestRefresh:
    async def test_refresh_issues_access_token(self, service: UserService) -> None:
        access = await service.refresh(create_refresh_token("user-9"))
        assert decode_token(access, expected_type="access")["sub"] == "user-9"

    async def test_access_token_cannot_refresh(self, service: UserService) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_access_token("user-9"))

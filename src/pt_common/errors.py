"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet / ledger
  3xxx: Market data
  4xxx: Order
  5xxx: Holdings
  6xxx: Watchlist
  9xxx: System
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


# --- 2xxx: Wallet / ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


class WalletNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Wallet not found for user {user_id}", 404)


class LedgerConflictError(AppError):
    """Concurrent mutation of the same wallet/holding detected (CAS miss)."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            2003, f"Concurrent ledger update for user {user_id}, please retry", 409
        )


# --- 3xxx: Market data ---

class PriceUnavailableError(AppError):
    def __init__(self, symbol: str, detail: str = "") -> None:
        self.symbol = symbol
        suffix = f": {detail}" if detail else ""
        super().__init__(3001, f"Price unavailable for {symbol}{suffix}", 503)


class TokenUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Market data access token unavailable: {detail}", 503)


# --- 4xxx: Order ---

class InvalidOrderError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid order: {detail}", 422)


class IntradayWindowClosedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Intraday (MIS) orders not accepted now: {detail}", 422)


# --- 5xxx: Holdings ---

class InsufficientHoldingsError(AppError):
    def __init__(self, symbol: str, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            5001,
            f"Insufficient holdings for {symbol}: requested {requested}, available {available}",
            422,
        )


# --- 6xxx: Watchlist ---

class DuplicateWatchlistEntryError(AppError):
    def __init__(self, symbol: str, exchange: str) -> None:
        super().__init__(6001, f"{symbol} ({exchange}) is already in your watchlist", 409)


class WatchlistItemNotFoundError(AppError):
    def __init__(self, symbol: str, exchange: str) -> None:
        super().__init__(6002, f"{symbol} ({exchange}) is not in your watchlist", 404)


class WatchlistLimitExceededError(AppError):
    def __init__(self, limit: int) -> None:
        super().__init__(6003, f"Watchlist limit of {limit} stocks reached", 429)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)

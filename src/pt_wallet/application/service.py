"""WalletApplicationService — balance and portfolio valuation reads.

A user without a wallet row (registered before wallets existed) gets one
lazily with the configured opening balance; that single insert is committed
here. Everything else is read-only.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import ProductType
from src.pt_common.money import money_to_display
from src.pt_trading.domain.margin import MarginPolicy
from src.pt_wallet.application.schemas import (
    BalanceResponse,
    TransactionItem,
    WalletDetails,
    WalletSummary,
)
from src.pt_wallet.application.valuator import PortfolioValuator
from src.pt_wallet.domain.models import Wallet
from src.pt_wallet.domain.repository import LedgerRepositoryProtocol

RECENT_TRANSACTIONS = 10


class WalletApplicationService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol,
        valuator: PortfolioValuator,
        policy: MarginPolicy,
        initial_balance: Decimal,
    ) -> None:
        self._repo = repo
        self._valuator = valuator
        self._policy = policy
        self._initial_balance = initial_balance

    async def _wallet(self, db: AsyncSession, user_id: str) -> Wallet:
        wallet = await self._repo.get_wallet(db, user_id)
        if wallet is not None:
            return wallet
        try:
            wallet = await self._repo.get_or_create_wallet(db, user_id, self._initial_balance)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return wallet

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        wallet = await self._wallet(db, user_id)
        return BalanceResponse(
            user_id=user_id,
            currency=wallet.currency,
            virtual_cash=wallet.virtual_cash,
            virtual_cash_display=money_to_display(wallet.virtual_cash),
            mis_margin_used=wallet.mis_margin_used,
            available_for_cnc=self._policy.buying_power(wallet, ProductType.CNC),
            available_for_mis=self._policy.buying_power(wallet, ProductType.MIS),
            realized_pnl=wallet.realized_pnl,
        )

    async def get_summary(self, db: AsyncSession, user_id: str) -> WalletSummary:
        wallet = await self._wallet(db, user_id)
        return await self._valuator.summarize(db, wallet)

    async def get_details(self, db: AsyncSession, user_id: str) -> WalletDetails:
        wallet = await self._wallet(db, user_id)
        valuation = await self._valuator.value(db, wallet)
        recent = await self._repo.list_transactions(
            db, user_id, offset=0, limit=RECENT_TRANSACTIONS
        )
        return WalletDetails(
            summary=valuation.summary,
            initial_balance=self._initial_balance,
            holdings=valuation.holdings,
            recent_transactions=[TransactionItem.from_domain(t) for t in recent],
        )

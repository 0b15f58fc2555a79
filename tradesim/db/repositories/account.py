"""
TradeSim - Account Repository
"""
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from loguru import logger

from tradesim.db.models.account import Account
from tradesim.utils.dates import utc_now
from tradesim.utils.exceptions import RowNotUpdatedError


class AccountRepository:
    """
    Account Repository

    Handles account reads and the two sanctioned writes:
    cash balance adjustments and the cached portfolio value.
    Never commits; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        username: str,
        starting_balance: Decimal = Decimal("100000.00"),
    ) -> Account:
        """Create a new account funded with ``starting_balance``."""
        account = Account(
            username=username,
            cash_balance=starting_balance,
            initial_balance=starting_balance,
            portfolio_value=Decimal("0"),
        )
        self.db.add(account)
        await self.db.flush()
        await self.db.refresh(account)

        logger.info(f"Created account {account.id} ({username}) with balance {starting_balance}")
        return account

    async def get_by_id(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        result = await self.db.execute(
            select(Account).where(Account.id == account_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, account_id: int) -> Optional[Account]:
        """Get account by ID with a row lock (no-op on SQLite)."""
        result = await self.db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[Account]:
        """Get account by username."""
        result = await self.db.execute(
            select(Account).where(Account.username == username)
        )
        return result.scalar_one_or_none()

    async def adjust_balance(self, account_id: int, delta: Decimal) -> None:
        """
        Add ``delta`` (negative to debit) to the account's cash balance.

        Raises:
            RowNotUpdatedError: If no account row matched
        """
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(cash_balance=Account.cash_balance + delta, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise RowNotUpdatedError("accounts", account_id)

    async def set_portfolio_value(self, account_id: int, value: Decimal) -> None:
        """Store the cached aggregate portfolio value."""
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(portfolio_value=value)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise RowNotUpdatedError("accounts", account_id)

    async def list_ids(self) -> List[int]:
        """IDs of every account."""
        result = await self.db.execute(select(Account.id).order_by(Account.id))
        return list(result.scalars().all())

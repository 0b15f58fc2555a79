"""
TradeSim - Transaction Repository

Append and read only. There is deliberately no update or delete here.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from tradesim.db.models.instrument import Instrument
from tradesim.db.models.transaction import Transaction, TransactionSide, TransactionStatus
from tradesim.utils.dates import utc_now


class TransactionRepository:
    """
    Transaction Repository

    - Append COMPLETED trade records
    - Chronological history queries for replay
    - Counts for metrics
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def append(
        self,
        account_id: int,
        instrument_id: int,
        side: TransactionSide,
        quantity: int,
        price: Decimal,
        total_amount: Decimal,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        """Append one immutable transaction record."""
        transaction = Transaction(
            account_id=account_id,
            instrument_id=instrument_id,
            side=side,
            quantity=quantity,
            price=price,
            total_amount=total_amount,
            status=status,
            timestamp=timestamp or utc_now(),
        )
        self.db.add(transaction)
        await self.db.flush()
        return transaction

    # ==================== READ ====================

    async def list_completed(
        self,
        account_id: int,
        until: Optional[datetime] = None,
        instrument_id: Optional[int] = None,
    ) -> List[Transaction]:
        """
        COMPLETED transactions of an account in chronological order.

        Args:
            account_id: Account ID
            until: Optional inclusive upper bound on timestamp
            instrument_id: Optional instrument filter
        """
        query = select(Transaction).where(
            Transaction.account_id == account_id,
            Transaction.status == TransactionStatus.COMPLETED,
        )
        if until is not None:
            query = query.where(Transaction.timestamp <= until)
        if instrument_id is not None:
            query = query.where(Transaction.instrument_id == instrument_id)

        query = query.order_by(Transaction.timestamp, Transaction.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_completed_with_symbols(
        self,
        account_id: int,
        until: Optional[datetime] = None,
    ) -> List[Tuple[Transaction, str]]:
        """Same as list_completed, paired with each instrument's symbol."""
        query = (
            select(Transaction, Instrument.symbol)
            .join(Instrument, Transaction.instrument_id == Instrument.id)
            .where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.COMPLETED,
            )
        )
        if until is not None:
            query = query.where(Transaction.timestamp <= until)

        query = query.order_by(Transaction.timestamp, Transaction.id)
        result = await self.db.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def count_completed(self, account_id: int) -> int:
        """Number of COMPLETED transactions for an account."""
        result = await self.db.execute(
            select(func.count(Transaction.id)).where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.COMPLETED,
            )
        )
        return int(result.scalar_one())

    async def count_all(self, account_id: int) -> int:
        """Number of transactions for an account regardless of status."""
        result = await self.db.execute(
            select(func.count(Transaction.id)).where(Transaction.account_id == account_id)
        )
        return int(result.scalar_one())

    async def first_completed_timestamp(self, account_id: int) -> Optional[datetime]:
        """Timestamp of the account's earliest COMPLETED transaction."""
        result = await self.db.execute(
            select(func.min(Transaction.timestamp)).where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.COMPLETED,
            )
        )
        return result.scalar_one_or_none()

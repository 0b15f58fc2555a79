"""
Position Repository

Low-level reads and writes for positions. The re-averaging rules live in
PositionLedger; this class only persists what it is told.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from loguru import logger

from tradesim.db.models.instrument import Instrument
from tradesim.db.models.position import Position


class PositionRepository:
    """
    Repository for Position database operations.

    Provides low-level CRUD operations for positions.
    For business logic, use PositionLedger instead.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        account_id: int,
        instrument_id: int,
        quantity: int,
        average_cost: Decimal,
        opened_at: Optional[datetime] = None,
    ) -> Position:
        """Create a new position."""
        position = Position(
            account_id=account_id,
            instrument_id=instrument_id,
            quantity=quantity,
            average_cost=average_cost,
        )
        if opened_at is not None:
            position.opened_at = opened_at
            position.updated_at = opened_at

        self.db.add(position)
        await self.db.flush()

        logger.debug(f"Created position: instrument {instrument_id} qty={quantity} in account {account_id}")
        return position

    async def get_by_id(self, position_id: int) -> Optional[Position]:
        """Get position by ID."""
        result = await self.db.execute(
            select(Position).where(Position.id == position_id)
        )
        return result.scalar_one_or_none()

    async def get_by_account_and_instrument(
        self,
        account_id: int,
        instrument_id: int,
    ) -> Optional[Position]:
        """Get position by account and instrument."""
        result = await self.db.execute(
            select(Position).where(
                and_(
                    Position.account_id == account_id,
                    Position.instrument_id == instrument_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_all_by_account(self, account_id: int) -> List[Position]:
        """Get all open positions for an account."""
        result = await self.db.execute(
            select(Position)
            .where(Position.account_id == account_id)
            .order_by(Position.instrument_id)
        )
        return list(result.scalars().all())

    async def get_all_with_instruments(self, account_id: int) -> List[Tuple[Position, Instrument]]:
        """Open positions paired with their instrument rows."""
        result = await self.db.execute(
            select(Position, Instrument)
            .join(Instrument, Position.instrument_id == Instrument.id)
            .where(Position.account_id == account_id)
            .order_by(Instrument.symbol)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def market_value(self, account_id: int) -> Decimal:
        """Sum of quantity x current price over the account's open positions."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Position.quantity * Instrument.current_price), 0))
            .join(Instrument, Position.instrument_id == Instrument.id)
            .where(Position.account_id == account_id)
        )
        return Decimal(str(result.scalar_one()))

    async def total_quantity(self, account_id: int) -> int:
        """Total shares held across all instruments."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Position.quantity), 0))
            .where(Position.account_id == account_id)
        )
        return int(result.scalar_one())

    async def delete(self, position: Position) -> None:
        """Delete a position."""
        await self.db.delete(position)
        await self.db.flush()

        logger.debug(f"Deleted position {position.id}")

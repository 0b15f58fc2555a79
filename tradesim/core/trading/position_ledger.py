"""
TradeSim - Position Ledger

Keeps one (account, instrument) holding consistent:
- quantity never goes below zero; a position that reaches zero is deleted
- average_cost is the quantity-weighted mean of the buys still held

Runs on the caller's session, inside the order executor's transaction.
This is the only place average cost is written.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from tradesim.db.models.position import Position
from tradesim.db.repositories.position import PositionRepository
from tradesim.utils.dates import utc_now
from tradesim.utils.exceptions import InsufficientSharesError, PositionNotFoundError

AVERAGE_COST_QUANTUM = Decimal("0.000001")


@dataclass
class SellOutcome:
    """What a sell did to the position."""
    position_id: int
    quantity_sold: int
    remaining_quantity: int
    average_cost: Decimal
    closed: bool


def reaverage(
    old_quantity: int,
    old_average: Decimal,
    added_quantity: int,
    price: Decimal,
) -> Decimal:
    """Weighted average cost after adding ``added_quantity`` at ``price``."""
    total_quantity = old_quantity + added_quantity
    total_cost = Decimal(old_average) * old_quantity + Decimal(price) * added_quantity
    return (total_cost / total_quantity).quantize(AVERAGE_COST_QUANTUM, rounding=ROUND_HALF_UP)


class PositionLedger:
    """
    Position Ledger

    Applies filled buys and sells to positions. The executor has already
    validated the order; the sell path re-checks quantity anyway so the
    ledger never writes a negative holding.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.positions = PositionRepository(db)

    async def apply_buy(
        self,
        account_id: int,
        instrument_id: int,
        quantity: int,
        price: Decimal,
    ) -> Position:
        """
        Add shares to a holding, creating it on first buy.

        Args:
            account_id: Account ID
            instrument_id: Instrument ID
            quantity: Shares bought
            price: Execution price per share

        Returns:
            The created or updated position
        """
        position = await self.positions.get_by_account_and_instrument(account_id, instrument_id)

        if position is None:
            return await self.positions.create(
                account_id=account_id,
                instrument_id=instrument_id,
                quantity=quantity,
                average_cost=Decimal(price),
            )

        new_average = reaverage(position.quantity, position.average_cost, quantity, price)
        logger.debug(
            f"Re-averaging position {position.id}: "
            f"{position.quantity} @ {position.average_cost} + {quantity} @ {price} -> {new_average}"
        )
        position.quantity = position.quantity + quantity
        position.average_cost = new_average
        position.updated_at = utc_now()
        await self.db.flush()
        return position

    async def apply_sell(self, position_id: int, quantity: int) -> SellOutcome:
        """
        Remove shares from a holding.

        Raises:
            PositionNotFoundError: No position with this ID
            InsufficientSharesError: Position holds fewer shares than requested
        """
        position: Optional[Position] = await self.positions.get_by_id(position_id)
        if position is None:
            raise PositionNotFoundError(position_id)

        if position.quantity < quantity:
            raise InsufficientSharesError(
                f"Position {position_id} holds {position.quantity} shares, cannot sell {quantity}"
            )

        remaining = position.quantity - quantity
        average_cost = Decimal(position.average_cost)

        if remaining == 0:
            await self.positions.delete(position)
            return SellOutcome(
                position_id=position_id,
                quantity_sold=quantity,
                remaining_quantity=0,
                average_cost=average_cost,
                closed=True,
            )

        # Basis per share is unchanged by a sell
        position.quantity = remaining
        position.updated_at = utc_now()
        await self.db.flush()
        return SellOutcome(
            position_id=position_id,
            quantity_sold=quantity,
            remaining_quantity=remaining,
            average_cost=average_cost,
            closed=False,
        )

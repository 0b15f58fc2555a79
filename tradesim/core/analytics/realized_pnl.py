"""
TradeSim - Realized P&L (FIFO)

Replays an account's full transaction log and attributes realized gains to
sells by consuming the oldest open buy lots first.

FIFO here is deliberately independent of the weighted average cost kept on
live positions. The two numbers differ whenever a holding was partly sold
and then bought again at another price.
"""
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Deque, Dict, Iterable, List, Optional

from loguru import logger

from tradesim.core.analytics.records import TradeRecord, chronological_key
from tradesim.db.database import Database
from tradesim.db.models.transaction import TransactionSide
from tradesim.db.repositories.transaction import TransactionRepository

CENT = Decimal("0.01")


@dataclass
class OpenLot:
    """Unconsumed remainder of one buy."""
    quantity: int
    price: Decimal


@dataclass
class ClosedTrade:
    """Realized result of one sell."""
    instrument_id: int
    symbol: Optional[str]
    sell_date: datetime
    quantity_sold: int
    sell_price: Decimal
    average_cost_basis: Decimal
    realized_pnl: Decimal
    transaction_id: Optional[int] = None


@dataclass
class RealizedPnLResult:
    """Realized P&L over a window."""
    total_realized_pnl: Decimal = Decimal("0")
    profitable_trades: int = 0
    unprofitable_trades: int = 0
    total_closed_trades: int = 0
    win_rate: Decimal = Decimal("0")
    closed_trades: List[ClosedTrade] = field(default_factory=list)


def _in_window(
    timestamp: datetime,
    window_start: Optional[datetime],
    window_end: Optional[datetime],
) -> bool:
    if window_start is not None and timestamp < window_start:
        return False
    if window_end is not None and timestamp > window_end:
        return False
    return True


def calculate_realized_pnl_fifo(
    transactions: Iterable[TradeRecord],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
) -> RealizedPnLResult:
    """
    Calculate realized P&L with FIFO lot matching.

    Every transaction is replayed, including ones outside the window, so
    the lot queues are correct when the window opens. Sells before the
    window consume lots but add nothing to the totals.

    Args:
        transactions: COMPLETED transactions of one account, any order
        window_start: Inclusive lower bound on sell timestamps (None = open)
        window_end: Inclusive upper bound on sell timestamps (None = open)

    Returns:
        RealizedPnLResult with per-sell detail
    """
    result = RealizedPnLResult()
    lots: Dict[int, Deque[OpenLot]] = defaultdict(deque)

    for tx in sorted(transactions, key=chronological_key):
        queue = lots[tx.instrument_id]

        if tx.side == TransactionSide.BUY:
            queue.append(OpenLot(quantity=tx.quantity, price=Decimal(tx.price)))
            continue

        counted = _in_window(tx.timestamp, window_start, window_end)
        remaining = tx.quantity
        consumed_quantity = 0
        consumed_cost = Decimal("0")

        while remaining > 0 and queue:
            lot = queue[0]
            take = min(remaining, lot.quantity)
            consumed_cost += lot.price * take
            consumed_quantity += take
            remaining -= take
            lot.quantity -= take
            if lot.quantity == 0:
                queue.popleft()

        if remaining > 0:
            logger.warning(
                f"Sell transaction {tx.id} for {tx.symbol or tx.instrument_id} could not be fully "
                f"matched with buy history: matched {consumed_quantity} of {tx.quantity}"
            )

        if not counted or consumed_quantity == 0:
            continue

        sell_price = Decimal(tx.price)
        pnl = (sell_price * consumed_quantity - consumed_cost).quantize(CENT, rounding=ROUND_HALF_UP)
        average_cost = consumed_cost / consumed_quantity

        result.total_realized_pnl += pnl
        result.closed_trades.append(ClosedTrade(
            instrument_id=tx.instrument_id,
            symbol=tx.symbol,
            sell_date=tx.timestamp,
            quantity_sold=consumed_quantity,
            sell_price=sell_price,
            average_cost_basis=average_cost.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
            realized_pnl=pnl,
            transaction_id=tx.id,
        ))

        # Break-even sells count as neither
        if pnl > 0:
            result.profitable_trades += 1
        elif pnl < 0:
            result.unprofitable_trades += 1

    result.total_closed_trades = result.profitable_trades + result.unprofitable_trades
    if result.total_closed_trades > 0:
        result.win_rate = (
            Decimal(result.profitable_trades) / result.total_closed_trades * 100
        ).quantize(CENT, rounding=ROUND_HALF_UP)

    return result


class RealizedPnLService:
    """Loads an account's log and runs the FIFO replay."""

    def __init__(self, database: Database):
        self.database = database

    async def load_records(self, account_id: int) -> List[TradeRecord]:
        async with self.database.session() as session:
            rows = await TransactionRepository(session).list_completed_with_symbols(account_id)
        return [TradeRecord.from_transaction(tx, symbol) for tx, symbol in rows]

    async def reconstruct(
        self,
        account_id: int,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> RealizedPnLResult:
        """Realized P&L for sells in ``[window_start, window_end]``."""
        records = await self.load_records(account_id)
        return calculate_realized_pnl_fifo(records, window_start, window_end)

"""
TradeSim - Replay Records

Plain, detached snapshots of transactions and price observations. The
replay functions in this package work on these (or on any object with the
same attributes) so they can run without a session.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from tradesim.db.models.price_observation import PriceObservation
from tradesim.db.models.transaction import Transaction, TransactionSide


@dataclass(frozen=True)
class TradeRecord:
    """One COMPLETED transaction."""
    instrument_id: int
    side: TransactionSide
    quantity: int
    price: Decimal
    timestamp: datetime
    id: Optional[int] = None
    symbol: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction, symbol: Optional[str] = None) -> "TradeRecord":
        return cls(
            instrument_id=transaction.instrument_id,
            side=TransactionSide(transaction.side),
            quantity=transaction.quantity,
            price=Decimal(transaction.price),
            timestamp=transaction.timestamp,
            id=transaction.id,
            symbol=symbol,
        )


@dataclass(frozen=True)
class PriceRecord:
    """One daily price observation."""
    instrument_id: int
    timestamp: datetime
    price: Decimal

    @classmethod
    def from_observation(cls, observation: PriceObservation) -> "PriceRecord":
        return cls(
            instrument_id=observation.instrument_id,
            timestamp=observation.timestamp,
            price=Decimal(observation.price),
        )


def chronological_key(record) -> tuple:
    """Sort key: timestamp, then ID so same-instant trades replay in insert order."""
    return (record.timestamp, record.id or 0)

"""
TradeSim - Trading Core

Order execution, position ledger and per-account locking.
"""
from tradesim.core.trading.locks import AccountLockRegistry
from tradesim.core.trading.position_ledger import PositionLedger, SellOutcome, reaverage
from tradesim.core.trading.order_executor import (
    OrderExecutor,
    OrderRequest,
    OrderResult,
    OrderSide,
    PostCommitHook,
)

__all__ = [
    "AccountLockRegistry",
    "PositionLedger",
    "SellOutcome",
    "reaverage",
    "OrderExecutor",
    "OrderRequest",
    "OrderResult",
    "OrderSide",
    "PostCommitHook",
]

"""
TradeSim - Data Repositories

Repository pattern implementations for database operations.
"""
from tradesim.db.repositories.account import AccountRepository
from tradesim.db.repositories.instrument import InstrumentRepository
from tradesim.db.repositories.position import PositionRepository
from tradesim.db.repositories.transaction import TransactionRepository
from tradesim.db.repositories.price_observation import PriceObservationRepository
from tradesim.db.repositories.achievement import AchievementRepository

__all__ = [
    "AccountRepository",
    "InstrumentRepository",
    "PositionRepository",
    "TransactionRepository",
    "PriceObservationRepository",
    "AchievementRepository",
]

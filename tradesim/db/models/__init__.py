"""
TradeSim - Database Models
"""
from tradesim.db.models.account import Account
from tradesim.db.models.instrument import Instrument
from tradesim.db.models.position import Position
from tradesim.db.models.transaction import Transaction, TransactionSide, TransactionStatus
from tradesim.db.models.price_observation import PriceObservation
from tradesim.db.models.achievement import Achievement, AchievementType, AccountAchievement

__all__ = [
    "Account",
    "Instrument",
    "Position",
    "Transaction",
    "TransactionSide",
    "TransactionStatus",
    "PriceObservation",
    # Achievements
    "Achievement",
    "AchievementType",
    "AccountAchievement",
]

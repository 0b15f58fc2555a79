"""
TradeSim - Achievement Models

The catalog rows are seeded by external tooling; this module only defines
their shape and the per-account unlock records.
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
import enum

from tradesim.db.database import Base
from tradesim.utils.dates import utc_now


class AchievementType(str, enum.Enum):
    """Metric an achievement threshold is compared against."""
    TOTAL_PROFIT = "TOTAL_PROFIT"
    TOTAL_STOCKS_OWNED = "TOTAL_STOCKS_OWNED"
    SPECIFIC_STOCK_OWNED = "SPECIFIC_STOCK_OWNED"
    TOTAL_TRADES = "TOTAL_TRADES"


class Achievement(Base):
    """Threshold definition."""

    __tablename__ = "achievements"
    __table_args__ = (
        UniqueConstraint("type", "level", "target_instrument_id", name="uq_achievements_type_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    type = Column(SQLEnum(AchievementType), nullable=False, index=True)
    level = Column(Integer, nullable=False, default=1)
    target_value = Column(Numeric(18, 2), nullable=False)
    target_instrument_id = Column(Integer, ForeignKey("instruments.id"), nullable=True)

    def __repr__(self):
        return f"<Achievement {self.name} ({self.type.value} L{self.level})>"


class AccountAchievement(Base):
    """Unlock record."""

    __tablename__ = "account_achievements"
    __table_args__ = (
        UniqueConstraint("account_id", "achievement_id", name="uq_account_achievements"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id"), nullable=False)
    unlocked_at = Column(DateTime, default=utc_now)

    achievement = relationship("Achievement")

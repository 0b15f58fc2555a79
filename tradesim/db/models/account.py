"""
TradeSim - Account Model
"""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from tradesim.db.database import Base
from tradesim.utils.dates import utc_now


class Account(Base):
    """Trading account: one cash balance, many positions and transactions."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("cash_balance >= 0", name="ck_accounts_cash_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)

    # Financials
    cash_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("100000.00"))
    initial_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("100000.00"))

    # Denormalized cache, refreshed by the valuation job
    portfolio_value = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    # Timestamps
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    positions = relationship("Position", back_populates="account")
    transactions = relationship("Transaction", back_populates="account")

    def __repr__(self):
        return f"<Account {self.username} cash={self.cash_balance}>"

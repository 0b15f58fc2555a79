"""
TradeSim - Transaction Model

Append-only trade log. Rows are never updated or deleted.
"""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from tradesim.db.database import Base
from tradesim.utils.dates import utc_now


class TransactionSide(str, enum.Enum):
    """Trade direction."""
    BUY = "BUY"
    SELL = "SELL"


class TransactionStatus(str, enum.Enum):
    """Transaction status."""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Transaction(Base):
    """Executed trade record."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
        CheckConstraint("price > 0", name="ck_transactions_price_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id"), nullable=False, index=True)

    # Trade details
    side = Column(SQLEnum(TransactionSide), nullable=False)
    status = Column(SQLEnum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)
    total_amount = Column(Numeric(18, 2), nullable=False)

    timestamp = Column(DateTime, nullable=False, default=utc_now, index=True)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    instrument = relationship("Instrument")

    @property
    def cash_delta(self):
        """Signed effect of this trade on the account's cash."""
        if self.side == TransactionSide.BUY:
            return -self.total_amount
        return self.total_amount

    def __repr__(self):
        return f"<Transaction {self.side.value} instrument={self.instrument_id} qty={self.quantity} @ {self.price}>"

"""
TradeSim - Position Model

quantity is strictly positive while the row exists; a position that reaches
zero is deleted. average_cost is the quantity-weighted mean of buy prices.
"""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from tradesim.db.database import Base
from tradesim.utils.dates import utc_now


class Position(Base):
    """Open holding of one instrument by one account."""

    __tablename__ = "positions"
    __table_args__ = (
        UniqueConstraint("account_id", "instrument_id", name="uq_positions_account_instrument"),
        CheckConstraint("quantity > 0", name="ck_positions_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    average_cost = Column(Numeric(18, 6), nullable=False)

    # Timestamps
    opened_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    account = relationship("Account", back_populates="positions")
    instrument = relationship("Instrument")

    def __repr__(self):
        return f"<Position account={self.account_id} instrument={self.instrument_id} qty={self.quantity}>"

"""
TradeSim - Price Observation Model

Daily close and volume for one instrument. One row per calendar day,
immutable once written.
"""
from sqlalchemy import (
    Column, Integer, BigInteger, Numeric, DateTime, Boolean, ForeignKey,
    Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from tradesim.db.database import Base


class PriceObservation(Base):
    """Daily price bar produced by the simulator or manual seeding."""

    __tablename__ = "price_observations"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    price = Column(Numeric(18, 2), nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)

    # Jump event flag and signed jump size in percent
    was_jump = Column(Boolean, nullable=False, default=False)
    jump_percent = Column(Numeric(10, 4), nullable=True)

    # Relationships
    instrument = relationship("Instrument", back_populates="price_observations")

    __table_args__ = (
        # Main query pattern: instrument + time range
        Index("ix_price_observations_instrument_ts", "instrument_id", "timestamp", unique=True),
        CheckConstraint("price >= 0.01", name="ck_price_observations_price_floor"),
        CheckConstraint("volume >= 0", name="ck_price_observations_volume_non_negative"),
    )

    def __repr__(self):
        return f"<PriceObservation instrument={self.instrument_id} {self.timestamp:%Y-%m-%d} {self.price}>"

"""
TradeSim - Instrument Model

Tradable symbol plus the parameters that drive its price simulation.
"""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from tradesim.db.database import Base
from tradesim.utils.dates import utc_now


class Instrument(Base):
    """Simulated stock."""

    __tablename__ = "instruments"
    __table_args__ = (
        CheckConstraint("current_price >= 0.01", name="ck_instruments_price_floor"),
        CheckConstraint("volatility > 0 AND volatility < 1", name="ck_instruments_volatility_range"),
        CheckConstraint(
            "jump_probability > 0 AND jump_probability < 1",
            name="ck_instruments_jump_probability_range",
        ),
        CheckConstraint(
            "max_jump_multiplier > 1 AND max_jump_multiplier <= 2",
            name="ck_instruments_max_jump_multiplier_range",
        ),
        CheckConstraint("price_cap IS NULL OR price_cap >= 0.01", name="ck_instruments_price_cap_floor"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Symbol info
    symbol = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    sector = Column(String(100), nullable=True)

    # Pricing
    current_price = Column(Numeric(18, 2), nullable=False)
    previous_close = Column(Numeric(18, 2), nullable=True)

    # Tradability
    is_active = Column(Boolean, default=True, nullable=False)
    is_frozen = Column(Boolean, default=False, nullable=False)

    # Simulation parameters
    volatility = Column(Numeric(8, 6), nullable=False, default=Decimal("0.02"))
    jump_probability = Column(Numeric(8, 6), nullable=False, default=Decimal("0.01"))
    max_jump_multiplier = Column(Numeric(8, 6), nullable=False, default=Decimal("1.10"))
    price_cap = Column(Numeric(18, 2), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    price_observations = relationship("PriceObservation", back_populates="instrument")

    @property
    def is_tradable(self) -> bool:
        return bool(self.is_active) and not self.is_frozen

    def __repr__(self):
        return f"<Instrument {self.symbol} @ {self.current_price}>"

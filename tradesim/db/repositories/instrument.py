"""
TradeSim - Instrument Repository
"""
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from loguru import logger

from tradesim.db.models.instrument import Instrument
from tradesim.utils.dates import utc_now
from tradesim.utils.exceptions import RowNotUpdatedError


class InstrumentRepository:
    """Instrument reads, creation and price updates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        symbol: str,
        name: str,
        current_price: Decimal,
        sector: Optional[str] = None,
        volatility: Decimal = Decimal("0.02"),
        jump_probability: Decimal = Decimal("0.01"),
        max_jump_multiplier: Decimal = Decimal("1.10"),
        price_cap: Optional[Decimal] = None,
        is_active: bool = True,
        is_frozen: bool = False,
    ) -> Instrument:
        """Create a new instrument."""
        instrument = Instrument(
            symbol=symbol.upper(),
            name=name,
            sector=sector,
            current_price=current_price,
            volatility=volatility,
            jump_probability=jump_probability,
            max_jump_multiplier=max_jump_multiplier,
            price_cap=price_cap,
            is_active=is_active,
            is_frozen=is_frozen,
        )
        self.db.add(instrument)
        await self.db.flush()
        await self.db.refresh(instrument)

        logger.info(f"Created instrument {instrument.symbol} @ {current_price}")
        return instrument

    async def get_by_id(self, instrument_id: int) -> Optional[Instrument]:
        """Get instrument by ID."""
        result = await self.db.execute(
            select(Instrument).where(Instrument.id == instrument_id)
        )
        return result.scalar_one_or_none()

    async def get_by_symbol(self, symbol: str) -> Optional[Instrument]:
        """Get instrument by symbol."""
        result = await self.db.execute(
            select(Instrument).where(Instrument.symbol == symbol.upper())
        )
        return result.scalar_one_or_none()

    async def list_tradable(self) -> List[Instrument]:
        """Active, non-frozen instruments."""
        result = await self.db.execute(
            select(Instrument)
            .where(Instrument.is_active.is_(True), Instrument.is_frozen.is_(False))
            .order_by(Instrument.symbol)
        )
        return list(result.scalars().all())

    async def update_price(self, instrument_id: int, new_price: Decimal) -> None:
        """Roll current price into previous_close and set the new price."""
        result = await self.db.execute(
            update(Instrument)
            .where(Instrument.id == instrument_id)
            .values(
                previous_close=Instrument.current_price,
                current_price=new_price,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise RowNotUpdatedError("instruments", instrument_id)

    async def set_trading_flags(
        self,
        instrument_id: int,
        is_active: Optional[bool] = None,
        is_frozen: Optional[bool] = None,
    ) -> None:
        """Toggle tradability."""
        values = {"updated_at": utc_now()}
        if is_active is not None:
            values["is_active"] = is_active
        if is_frozen is not None:
            values["is_frozen"] = is_frozen
        result = await self.db.execute(
            update(Instrument)
            .where(Instrument.id == instrument_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise RowNotUpdatedError("instruments", instrument_id)

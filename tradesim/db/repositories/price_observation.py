"""
TradeSim - Price Observation Repository

Append-only daily price log.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tradesim.db.models.price_observation import PriceObservation
from tradesim.utils.dates import start_of_day, end_of_day


class PriceObservationRepository:
    """Reads and batch appends for price observations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append_many(self, observations: Iterable[PriceObservation]) -> int:
        """Append a batch of observations; returns the number written."""
        rows = list(observations)
        if not rows:
            return 0
        self.db.add_all(rows)
        await self.db.flush()
        return len(rows)

    async def list_for_instruments(
        self,
        instrument_ids: List[int],
        until: datetime,
        since: Optional[datetime] = None,
    ) -> List[PriceObservation]:
        """Observations for the given instruments, oldest first."""
        if not instrument_ids:
            return []

        query = select(PriceObservation).where(
            PriceObservation.instrument_id.in_(instrument_ids),
            PriceObservation.timestamp <= until,
        )
        if since is not None:
            query = query.where(PriceObservation.timestamp >= since)

        query = query.order_by(PriceObservation.timestamp, PriceObservation.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def observed_days(
        self,
        instrument_id: int,
        start: date,
        end: date,
    ) -> Set[date]:
        """Calendar days in ``[start, end]`` that already have an observation."""
        result = await self.db.execute(
            select(PriceObservation.timestamp).where(
                PriceObservation.instrument_id == instrument_id,
                PriceObservation.timestamp >= start_of_day(start),
                PriceObservation.timestamp <= end_of_day(end),
            )
        )
        return {ts.date() for ts in result.scalars().all()}

    async def exists_for_day(self, instrument_id: int, day: date) -> bool:
        """Whether ``day`` already has an observation for the instrument."""
        return bool(await self.observed_days(instrument_id, day, day))

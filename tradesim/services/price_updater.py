"""
TradeSim - Price Update Service

Writes simulated prices to the store:
- daily update: one new close per tradable instrument
- history seeding: a batch of past days for one instrument
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from loguru import logger

from tradesim.core.simulation.price_simulator import (
    PriceSimulator,
    SimulatedPricePoint,
    SimulationParameters,
)
from tradesim.db.database import Database
from tradesim.db.models.instrument import Instrument
from tradesim.db.models.price_observation import PriceObservation
from tradesim.db.repositories.instrument import InstrumentRepository
from tradesim.db.repositories.price_observation import PriceObservationRepository
from tradesim.utils.dates import start_of_day, utc_today
from tradesim.utils.exceptions import InstrumentNotFoundError, SimulationError


@dataclass
class PriceUpdateSummary:
    """Outcome of one daily update run."""
    day: date
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated)


def _observation(instrument_id: int, point: SimulatedPricePoint) -> PriceObservation:
    return PriceObservation(
        instrument_id=instrument_id,
        timestamp=start_of_day(point.date),
        price=point.price,
        volume=point.volume,
        was_jump=point.was_jump,
        jump_percent=point.jump_percent,
    )


class PriceUpdateService:
    """Simulated price writer."""

    def __init__(self, database: Database, simulator: Optional[PriceSimulator] = None):
        self.database = database
        self.simulator = simulator or PriceSimulator()

    async def run_daily_update(self, day: Optional[date] = None) -> PriceUpdateSummary:
        """
        Advance every active, non-frozen instrument by one simulated day.

        Instruments that already have an observation for ``day`` are left
        alone. All writes of the run share one transaction.
        """
        day = day or utc_today()
        summary = PriceUpdateSummary(day=day)

        async with self.database.transaction() as session:
            instruments = InstrumentRepository(session)
            observations = PriceObservationRepository(session)
            new_rows: List[PriceObservation] = []

            for instrument in await instruments.list_tradable():
                if await observations.exists_for_day(instrument.id, day):
                    summary.skipped.append(instrument.symbol)
                    continue

                try:
                    params = SimulationParameters.from_instrument(instrument)
                except SimulationError as e:
                    logger.warning(f"Skipping {instrument.symbol}: {e.message}")
                    summary.failed.append(instrument.symbol)
                    continue

                point = self.simulator.simulate_next_day(params, day)
                await instruments.update_price(instrument.id, point.price)
                new_rows.append(_observation(instrument.id, point))
                summary.updated.append(instrument.symbol)

                if point.was_jump:
                    logger.info(f"Jump on {instrument.symbol}: {point.jump_percent}% -> {point.price}")

            await observations.append_many(new_rows)

        logger.info(
            f"Daily price update for {day}: {summary.updated_count} updated, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed"
        )
        return summary

    async def seed_history(
        self,
        instrument_id: int,
        num_days: int,
        skip_existing: bool = True,
        today: Optional[date] = None,
    ) -> int:
        """
        Generate and store ``num_days`` of history ending ``today``.

        With ``skip_existing`` off, a day that already has an observation
        violates the store's uniqueness and the whole batch rolls back.

        Returns:
            Number of observations written
        """
        today = today or utc_today()

        async with self.database.transaction() as session:
            instrument: Optional[Instrument] = await InstrumentRepository(session).get_by_id(instrument_id)
            if instrument is None:
                raise InstrumentNotFoundError(instrument_id)

            points = self.simulator.generate(SimulationParameters.from_instrument(instrument), num_days, today)
            observations = PriceObservationRepository(session)

            if skip_existing and points:
                taken = await observations.observed_days(instrument_id, points[0].date, points[-1].date)
                points = [p for p in points if p.date not in taken]

            written = await observations.append_many(_observation(instrument_id, p) for p in points)

        logger.info(f"Seeded {written} days of history for {instrument.symbol}")
        return written

    async def seed_all(self, num_days: int, today: Optional[date] = None) -> int:
        """Seed history for every tradable instrument."""
        async with self.database.session() as session:
            instrument_ids = [i.id for i in await InstrumentRepository(session).list_tradable()]

        total = 0
        for instrument_id in instrument_ids:
            total += await self.seed_history(instrument_id, num_days, today=today)
        return total

"""
Integration Tests - Price Update Service
Tests for the daily update and history seeding.
"""
from datetime import timedelta
from decimal import Decimal

import numpy as np
import pytest
from sqlalchemy.exc import IntegrityError

from tradesim.core.simulation.price_simulator import PriceSimulator
from tradesim.db.repositories import InstrumentRepository, PriceObservationRepository
from tradesim.services.price_updater import PriceUpdateService
from tradesim.utils.dates import end_of_day, start_of_day, utc_today
from tradesim.utils.exceptions import InstrumentNotFoundError

pytestmark = pytest.mark.integration


@pytest.fixture
def price_service(database) -> PriceUpdateService:
    return PriceUpdateService(database, simulator=PriceSimulator(np.random.default_rng(42)))


async def observations_of(database, instrument_id):
    async with database.session() as session:
        return await PriceObservationRepository(session).list_for_instruments(
            [instrument_id], until=end_of_day(utc_today())
        )


class TestDailyUpdate:
    """Tests for run_daily_update."""

    @pytest.mark.asyncio
    async def test_moves_price_and_records_observation(self, database, instrument, price_service):
        today = utc_today()

        summary = await price_service.run_daily_update(today)

        assert summary.updated == ["ACME"]
        async with database.session() as session:
            updated = await InstrumentRepository(session).get_by_symbol("acme")
        rows = await observations_of(database, instrument.id)

        assert Decimal(updated.previous_close) == Decimal("100.00")
        assert len(rows) == 1
        assert rows[0].timestamp == start_of_day(today)
        assert Decimal(rows[0].price) == Decimal(updated.current_price)
        assert Decimal(updated.current_price) >= Decimal("0.01")

    @pytest.mark.asyncio
    async def test_second_run_same_day_skips(self, instrument, price_service):
        today = utc_today()
        await price_service.run_daily_update(today)

        summary = await price_service.run_daily_update(today)

        assert summary.updated == []
        assert summary.skipped == ["ACME"]

    @pytest.mark.asyncio
    async def test_untradable_instruments_are_not_touched(self, database, instrument, price_service):
        async with database.transaction() as session:
            repo = InstrumentRepository(session)
            frozen = await repo.create("FRZN", "Frozen Inc", Decimal("50.00"), is_frozen=True)
            retired = await repo.create("GONE", "Gone Ltd", Decimal("20.00"), is_active=False)

        summary = await price_service.run_daily_update(utc_today())

        assert summary.updated == ["ACME"]
        assert await observations_of(database, frozen.id) == []
        assert await observations_of(database, retired.id) == []


class TestSeedHistory:
    """Tests for seed_history."""

    @pytest.mark.asyncio
    async def test_writes_one_row_per_day(self, database, instrument, price_service):
        written = await price_service.seed_history(instrument.id, 30)

        rows = await observations_of(database, instrument.id)
        assert written == 30
        assert [r.timestamp.date() for r in rows] == [
            utc_today() - timedelta(days=29 - i) for i in range(30)
        ]

    @pytest.mark.asyncio
    async def test_rerun_skips_existing_days(self, instrument, price_service):
        await price_service.seed_history(instrument.id, 10)

        assert await price_service.seed_history(instrument.id, 10) == 0
        assert await price_service.seed_history(instrument.id, 12) == 2

    @pytest.mark.asyncio
    async def test_duplicate_day_without_skip_rolls_back(self, database, instrument, price_service):
        await price_service.seed_history(instrument.id, 1)

        with pytest.raises(IntegrityError):
            await price_service.seed_history(instrument.id, 5, skip_existing=False)

        assert len(await observations_of(database, instrument.id)) == 1

    @pytest.mark.asyncio
    async def test_zero_days(self, instrument, price_service):
        assert await price_service.seed_history(instrument.id, 0) == 0

    @pytest.mark.asyncio
    async def test_unknown_instrument(self, database, price_service):
        with pytest.raises(InstrumentNotFoundError):
            await price_service.seed_history(999, 5)

    @pytest.mark.asyncio
    async def test_seed_all_covers_tradable_instruments(self, database, instrument, price_service):
        async with database.transaction() as session:
            await InstrumentRepository(session).create("BETA", "Beta Co", Decimal("40.00"))

        assert await price_service.seed_all(5) == 10

"""
Integration Tests - Analytics Services
Tests for realized P&L and portfolio history built from the store.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from tradesim.core.analytics.metrics import AccountMetricsService
from tradesim.core.analytics.portfolio_history import PortfolioHistoryService
from tradesim.core.analytics.realized_pnl import RealizedPnLService
from tradesim.db.models.price_observation import PriceObservation
from tradesim.db.repositories import PriceObservationRepository
from tradesim.utils.dates import start_of_day, utc_now, utc_today

pytestmark = pytest.mark.integration


class TestRealizedPnLService:
    """Tests for FIFO reconstruction from the transaction log."""

    @pytest.mark.asyncio
    async def test_reconstructs_fifo_example(self, database, executor, account, instrument, set_price):
        await set_price(instrument.id, "10.00")
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "20.00")
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "25.00")
        await executor.sell(account.id, instrument.id, 15)

        result = await RealizedPnLService(database).reconstruct(account.id)

        assert result.total_realized_pnl == Decimal("175.00")
        assert result.profitable_trades == 1
        assert result.closed_trades[0].symbol == "ACME"

    @pytest.mark.asyncio
    async def test_fifo_differs_from_live_average(self, database, executor, account, instrument, set_price, state_of):
        """Realized attribution is FIFO while the live basis stays averaged."""
        await set_price(instrument.id, "10.00")
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "20.00")
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "25.00")
        await executor.sell(account.id, instrument.id, 10)

        result = await RealizedPnLService(database).reconstruct(account.id)
        _, live_average = (await state_of(account.id)).positions[instrument.id]

        assert result.total_realized_pnl == Decimal("150.00")
        assert live_average == Decimal("15.00")

    @pytest.mark.asyncio
    async def test_window_in_the_future_is_empty(self, database, executor, account, instrument):
        await executor.buy(account.id, instrument.id, 2)
        await executor.sell(account.id, instrument.id, 2)

        result = await RealizedPnLService(database).reconstruct(
            account.id, window_start=utc_now() + timedelta(days=1)
        )

        assert result.closed_trades == []


class TestPortfolioHistoryService:
    """Tests for the daily value series."""

    @pytest.mark.asyncio
    async def test_account_without_trades_is_all_zeros(self, database, account):
        today = utc_today()

        series = await PortfolioHistoryService(database).daily_series(
            account.id, today - timedelta(days=9), today
        )

        assert len(series) == 10
        assert all(p.total_value == Decimal("0") for p in series)

    @pytest.mark.asyncio
    async def test_values_holdings_with_observed_prices(self, database, executor, account, instrument):
        today = utc_today()
        async with database.transaction() as session:
            await PriceObservationRepository(session).append_many([
                PriceObservation(instrument_id=instrument.id, timestamp=start_of_day(today - timedelta(days=3)),
                                 price=Decimal("90.00"), volume=1000),
                PriceObservation(instrument_id=instrument.id, timestamp=start_of_day(today),
                                 price=Decimal("105.00"), volume=1000),
            ])
        await executor.buy(account.id, instrument.id, 4)

        series = await PortfolioHistoryService(database).daily_series(
            account.id, today - timedelta(days=2), today
        )

        assert [p.total_value for p in series] == [Decimal("0.00"), Decimal("0.00"), Decimal("420.00")]

    @pytest.mark.asyncio
    async def test_inverted_range_raises(self, database, account):
        today = utc_today()
        with pytest.raises(ValueError):
            await PortfolioHistoryService(database).daily_series(account.id, today, today - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_history_since_first_trade(self, database, executor, account, instrument):
        service = PortfolioHistoryService(database)
        assert await service.history_since_first_trade(account.id) == []

        await executor.buy(account.id, instrument.id, 1)
        series = await service.history_since_first_trade(account.id)

        assert len(series) == 1
        assert series[0].date == utc_today()


class TestAccountMetricsService:
    """Tests for aggregate metrics."""

    @pytest.mark.asyncio
    async def test_aggregates(self, database, executor, account, instrument, set_price):
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "110.00")
        await executor.sell(account.id, instrument.id, 4)

        async with database.session() as session:
            metrics = AccountMetricsService(session)
            assert await metrics.total_realized_profit(account.id) == Decimal("40.00")
            assert await metrics.total_shares_held(account.id) == 6
            assert await metrics.shares_held(account.id, instrument.id) == 6
            assert await metrics.shares_held(account.id, 9999) == 0
            assert await metrics.completed_trade_count(account.id) == 2

    @pytest.mark.asyncio
    async def test_summary(self, database, executor, account, instrument, set_price):
        start = utc_now() - timedelta(minutes=1)
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "120.00")
        await executor.sell(account.id, instrument.id, 5)

        async with database.session() as session:
            summary = await AccountMetricsService(session).summary(
                account.id, start, utc_now() + timedelta(minutes=1)
            )

        assert summary.realized.total_realized_pnl == Decimal("100.00")
        assert summary.total_unrealized_pnl == Decimal("100.00")
        assert summary.allocation.by_sector == [("Industrials", Decimal("100.00"))]
        assert summary.activity.most_traded == [("ACME", 2)]

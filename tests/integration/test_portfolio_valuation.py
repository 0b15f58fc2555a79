"""
Integration Tests - Portfolio Valuation Job
"""
from decimal import Decimal

import pytest

from tradesim.db.repositories import AccountRepository
from tradesim.services.portfolio_valuation import PortfolioValuationJob

pytestmark = pytest.mark.integration


async def cached_value(database, account_id) -> Decimal:
    async with database.session() as session:
        account = await AccountRepository(session).get_by_id(account_id)
    return Decimal(account.portfolio_value)


class TestPortfolioValuationJob:
    """Tests for the cached portfolio value refresh."""

    @pytest.mark.asyncio
    async def test_refresh_all(self, database, executor, account, instrument, set_price):
        async with database.transaction() as session:
            idle = await AccountRepository(session).create("bob", Decimal("500.00"))
        await executor.buy(account.id, instrument.id, 10)
        await set_price(instrument.id, "120.00")

        summary = await PortfolioValuationJob(database).refresh_all()

        assert summary.accounts_updated == 2
        assert summary.total_value == Decimal("1200.00")
        assert await cached_value(database, account.id) == Decimal("1200.00")
        assert await cached_value(database, idle.id) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_refresh_account_after_full_sell(self, database, executor, account, instrument):
        job = PortfolioValuationJob(database)
        await executor.buy(account.id, instrument.id, 3)
        assert await job.refresh_account(account.id) == Decimal("300.00")

        await executor.sell(account.id, instrument.id, 3)

        assert await job.refresh_account(account.id) == Decimal("0.00")
        assert await cached_value(database, account.id) == Decimal("0.00")

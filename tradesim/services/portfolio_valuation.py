"""
TradeSim - Portfolio Valuation Job

Refreshes each account's cached portfolio value: the sum of quantity
times current price over its open positions.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from loguru import logger

from tradesim.db.database import Database
from tradesim.db.repositories.account import AccountRepository
from tradesim.db.repositories.position import PositionRepository

CENT = Decimal("0.01")


@dataclass
class ValuationSummary:
    """Outcome of one refresh."""
    accounts_updated: int = 0
    total_value: Decimal = Decimal("0")


class PortfolioValuationJob:
    """Recomputes Account.portfolio_value."""

    def __init__(self, database: Database):
        self.database = database

    async def refresh_account(self, account_id: int) -> Decimal:
        """Recompute one account's cached value."""
        async with self.database.transaction() as session:
            value = await PositionRepository(session).market_value(account_id)
            value = value.quantize(CENT, rounding=ROUND_HALF_UP)
            await AccountRepository(session).set_portfolio_value(account_id, value)
        return value

    async def refresh_all(self) -> ValuationSummary:
        """Recompute every account's cached value in one transaction."""
        summary = ValuationSummary()

        async with self.database.transaction() as session:
            accounts = AccountRepository(session)
            positions = PositionRepository(session)

            for account_id in await accounts.list_ids():
                value = (await positions.market_value(account_id)).quantize(CENT, rounding=ROUND_HALF_UP)
                await accounts.set_portfolio_value(account_id, value)
                summary.accounts_updated += 1
                summary.total_value += value

        logger.info(
            f"Portfolio values refreshed for {summary.accounts_updated} accounts "
            f"(total {summary.total_value})"
        )
        return summary

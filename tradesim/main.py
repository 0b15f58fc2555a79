"""
TradeSim - Application Entry Point

TradeSimApp wires the store handle, services and scheduler together:

    async with TradeSimApp(settings) as app:
        account = await app.create_account("alice")
        await app.executor.buy(account.id, instrument_id, 10)
"""
import asyncio
import signal
from decimal import Decimal
from typing import Optional

from loguru import logger

from tradesim.config import Settings, settings as default_settings
from tradesim.core.achievements.evaluator import AchievementEvaluator
from tradesim.core.analytics.metrics import AccountAnalytics, AccountMetricsService
from tradesim.core.analytics.portfolio_history import PortfolioHistoryService
from tradesim.core.analytics.realized_pnl import RealizedPnLService
from tradesim.core.simulation.price_simulator import PriceSimulator
from tradesim.core.trading.locks import AccountLockRegistry
from tradesim.core.trading.order_executor import OrderExecutor
from tradesim.db.database import Database
from tradesim.db.models.account import Account
from tradesim.db.models.instrument import Instrument
from tradesim.db.repositories.account import AccountRepository
from tradesim.db.repositories.instrument import InstrumentRepository
from tradesim.scheduler.scheduler import TradeSimScheduler
from tradesim.services.portfolio_valuation import PortfolioValuationJob
from tradesim.services.price_updater import PriceUpdateService
from tradesim.utils.logger import setup_logging


class TradeSimApp:
    """Service container with an explicit open/close lifecycle."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        simulator: Optional[PriceSimulator] = None,
        start_scheduler: bool = False,
    ):
        self.settings = settings or default_settings
        self.database = database or Database(
            self.settings.database_url,
            echo=self.settings.DB_ECHO,
            pool_size=self.settings.DB_POOL_SIZE,
            max_overflow=self.settings.DB_MAX_OVERFLOW,
        )
        self.start_scheduler = start_scheduler

        self.locks = AccountLockRegistry()
        self.executor = OrderExecutor(self.database, locks=self.locks)
        self.achievements = AchievementEvaluator(self.database)
        self.realized_pnl = RealizedPnLService(self.database)
        self.portfolio_history = PortfolioHistoryService(self.database)
        self.price_updater = PriceUpdateService(self.database, simulator=simulator)
        self.valuation_job = PortfolioValuationJob(self.database)
        self.scheduler = TradeSimScheduler(self.settings, self.price_updater, self.valuation_job)

        if self.settings.ENABLE_ACHIEVEMENTS:
            self.executor.register_hook(self.achievements)

    async def start(self) -> None:
        """Open the store, create tables and optionally start the scheduler."""
        logger.info(f"Starting {self.settings.APP_NAME} ({self.settings.APP_ENV})")
        await self.database.open()
        await self.database.create_all()

        if self.start_scheduler:
            self.scheduler.start()

    async def stop(self) -> None:
        """Drain hooks, stop the scheduler and close the store."""
        logger.info(f"Shutting down {self.settings.APP_NAME}")
        self.scheduler.stop()
        await self.executor.wait_for_hooks()
        await self.database.close()

    async def __aenter__(self) -> "TradeSimApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ==================== Convenience ====================

    async def create_account(self, username: str, starting_balance: Optional[Decimal] = None) -> Account:
        """Create an account funded with the configured default balance."""
        balance = self.settings.DEFAULT_STARTING_BALANCE if starting_balance is None else starting_balance
        async with self.database.transaction() as session:
            return await AccountRepository(session).create(username, balance)

    async def create_instrument(self, symbol: str, name: str, current_price: Decimal, **kwargs) -> Instrument:
        """Create an instrument with the configured simulation defaults."""
        kwargs.setdefault("volatility", self.settings.DEFAULT_VOLATILITY)
        kwargs.setdefault("jump_probability", self.settings.DEFAULT_JUMP_PROBABILITY)
        kwargs.setdefault("max_jump_multiplier", self.settings.DEFAULT_MAX_JUMP_MULTIPLIER)
        async with self.database.transaction() as session:
            return await InstrumentRepository(session).create(symbol, name, current_price, **kwargs)

    async def account_analytics(self, account_id: int, window_start, window_end) -> AccountAnalytics:
        """Full analytics summary of an account for a window."""
        async with self.database.session() as session:
            return await AccountMetricsService(session).summary(account_id, window_start, window_end)


async def serve(settings: Settings = default_settings) -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    async with TradeSimApp(settings, start_scheduler=settings.ENABLE_SCHEDULER) as app:
        if settings.DEFAULT_HISTORY_DAYS > 0:
            await app.price_updater.seed_all(settings.DEFAULT_HISTORY_DAYS)
        logger.info(f"{settings.APP_NAME} started successfully")
        await stop_event.wait()


def main() -> None:
    setup_logging(default_settings)
    asyncio.run(serve(default_settings))


if __name__ == "__main__":
    main()

"""
TradeSim - Job Scheduler

Runs the recurring store jobs on an APScheduler AsyncIOScheduler:
- Daily price update (cron)
- Portfolio value refresh (interval)
"""
from typing import Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from tradesim.config import Settings
from tradesim.services.portfolio_valuation import PortfolioValuationJob
from tradesim.services.price_updater import PriceUpdateService

PRICE_UPDATE_JOB_ID = "daily_price_update"
PORTFOLIO_REFRESH_JOB_ID = "portfolio_value_refresh"


class TradeSimScheduler:
    """
    TradeSim Scheduler.

    Wraps an AsyncIOScheduler; must be started from inside a running
    event loop.
    """

    def __init__(
        self,
        settings: Settings,
        price_service: PriceUpdateService,
        valuation_job: PortfolioValuationJob,
    ):
        self.settings = settings
        self.price_service = price_service
        self.valuation_job = valuation_job
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._registered_jobs: dict[str, dict] = {}

    def initialize(self) -> None:
        """Initialize the scheduler with job stores and executors."""
        jobstores = {
            'default': MemoryJobStore()
        }
        executors = {
            'default': AsyncIOExecutor()
        }
        job_defaults = {
            'coalesce': True,  # Combine multiple missed runs into one
            'max_instances': 1,
            'misfire_grace_time': 60 * 5
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=self.settings.TIMEZONE
        )

        logger.info("TradeSim scheduler initialized")

    def start(self) -> None:
        """Register the default jobs and start the scheduler."""
        if not self.scheduler:
            self.initialize()

        if not self._registered_jobs:
            self.register_default_jobs()

        if not self._is_running:
            self.scheduler.start()
            self._is_running = True
            logger.info("TradeSim scheduler started")

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self.scheduler and self._is_running:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("TradeSim scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    # ==================== Jobs ====================

    async def price_update_job(self) -> None:
        try:
            await self.price_service.run_daily_update()
        except Exception:
            logger.exception("Daily price update failed")

    async def portfolio_refresh_job(self) -> None:
        try:
            await self.valuation_job.refresh_all()
        except Exception:
            logger.exception("Portfolio value refresh failed")

    def register_default_jobs(self) -> None:
        """Daily price update at PRICE_UPDATE_HOUR:MINUTE, value refresh every N minutes."""
        self.add_daily_job(
            PRICE_UPDATE_JOB_ID,
            self.price_update_job,
            hour=self.settings.PRICE_UPDATE_HOUR,
            minute=self.settings.PRICE_UPDATE_MINUTE,
        )
        self.add_interval_job(
            PORTFOLIO_REFRESH_JOB_ID,
            self.portfolio_refresh_job,
            minutes=self.settings.PORTFOLIO_REFRESH_INTERVAL_MINUTES,
        )

    # ==================== Job Registration ====================

    def add_daily_job(
        self,
        job_id: str,
        func: Callable,
        hour: int = 0,
        minute: int = 0,
        **kwargs
    ) -> None:
        """
        Add a job that runs once a day.

        Args:
            job_id: Unique identifier for the job
            func: Async function to execute
            hour: Hour to run (scheduler timezone)
            minute: Minute to run
            **kwargs: Additional arguments for the job
        """
        if not self.scheduler:
            self.initialize()

        trigger = CronTrigger(
            hour=hour,
            minute=minute,
            timezone=self.settings.TIMEZONE
        )

        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            name=f"Daily: {job_id}",
            replace_existing=True,
            **kwargs
        )

        self._registered_jobs[job_id] = {
            'type': 'daily',
            'schedule': f'{hour:02d}:{minute:02d} {self.settings.TIMEZONE}'
        }
        logger.info(f"Registered daily job: {job_id} at {hour:02d}:{minute:02d} {self.settings.TIMEZONE}")

    def add_interval_job(
        self,
        job_id: str,
        func: Callable,
        minutes: int,
        **kwargs
    ) -> None:
        """
        Add a job that runs at a fixed interval.

        Args:
            job_id: Unique identifier for the job
            func: Async function to execute
            minutes: Interval in minutes
            **kwargs: Additional arguments for the job
        """
        if not self.scheduler:
            self.initialize()

        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(minutes=minutes),
            id=job_id,
            name=f"Interval: {job_id}",
            replace_existing=True,
            **kwargs
        )

        self._registered_jobs[job_id] = {
            'type': 'interval',
            'schedule': f'Every {minutes}m'
        }
        logger.info(f"Registered interval job: {job_id} every {minutes}m")

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job."""
        if self.scheduler and job_id in self._registered_jobs:
            self.scheduler.remove_job(job_id)
            self._registered_jobs.pop(job_id, None)
            logger.info(f"Removed job: {job_id}")
            return True
        return False

    def get_jobs_status(self) -> dict:
        """Get status of all registered jobs."""
        status = {
            'is_running': self._is_running,
            'jobs': {}
        }

        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, 'next_run_time', None)
                status['jobs'][job.id] = {
                    'name': job.name,
                    'next_run': next_run.isoformat() if next_run else None,
                    **self._registered_jobs.get(job.id, {})
                }

        return status

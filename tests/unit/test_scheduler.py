"""
Unit Tests - Scheduler
Tests for job registration and job error handling.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from tradesim.config import Settings
from tradesim.scheduler.scheduler import (
    PORTFOLIO_REFRESH_JOB_ID,
    PRICE_UPDATE_JOB_ID,
    TradeSimScheduler,
)


@pytest.fixture
def scheduler():
    settings = Settings(TIMEZONE="UTC", PRICE_UPDATE_HOUR=1, PRICE_UPDATE_MINUTE=30,
                        PORTFOLIO_REFRESH_INTERVAL_MINUTES=10)
    price_service = MagicMock()
    price_service.run_daily_update = AsyncMock()
    valuation_job = MagicMock()
    valuation_job.refresh_all = AsyncMock()
    return TradeSimScheduler(settings, price_service, valuation_job)


class TestJobRegistration:
    """Tests for default job registration."""

    def test_registers_price_and_refresh_jobs(self, scheduler):
        scheduler.register_default_jobs()

        status = scheduler.get_jobs_status()

        assert status["is_running"] is False
        assert set(status["jobs"]) == {PRICE_UPDATE_JOB_ID, PORTFOLIO_REFRESH_JOB_ID}
        assert status["jobs"][PRICE_UPDATE_JOB_ID]["schedule"] == "01:30 UTC"
        assert status["jobs"][PORTFOLIO_REFRESH_JOB_ID]["schedule"] == "Every 10m"

    def test_remove_job(self, scheduler):
        scheduler.register_default_jobs()

        assert scheduler.remove_job(PRICE_UPDATE_JOB_ID) is True
        assert scheduler.remove_job(PRICE_UPDATE_JOB_ID) is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler):
        scheduler.start()
        assert scheduler.is_running
        assert PRICE_UPDATE_JOB_ID in scheduler.get_jobs_status()["jobs"]

        scheduler.stop()
        assert not scheduler.is_running


class TestJobs:
    """Tests for the job bodies."""

    @pytest.mark.asyncio
    async def test_jobs_call_services(self, scheduler):
        await scheduler.price_update_job()
        await scheduler.portfolio_refresh_job()

        scheduler.price_service.run_daily_update.assert_awaited_once()
        scheduler.valuation_job.refresh_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_job_failures_are_logged_not_raised(self, scheduler, log_messages):
        scheduler.price_service.run_daily_update.side_effect = RuntimeError("store down")

        await scheduler.price_update_job()

        assert any(m.startswith("ERROR|Daily price update failed") for m in log_messages)

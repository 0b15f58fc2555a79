"""
TradeSim - Scheduler
"""
from tradesim.scheduler.scheduler import (
    TradeSimScheduler,
    PRICE_UPDATE_JOB_ID,
    PORTFOLIO_REFRESH_JOB_ID,
)

__all__ = ["TradeSimScheduler", "PRICE_UPDATE_JOB_ID", "PORTFOLIO_REFRESH_JOB_ID"]

"""
TradeSim - Analytics

Read-side replays over the transaction and price logs.
"""
from tradesim.core.analytics.records import TradeRecord, PriceRecord
from tradesim.core.analytics.realized_pnl import (
    ClosedTrade,
    RealizedPnLResult,
    RealizedPnLService,
    calculate_realized_pnl_fifo,
)
from tradesim.core.analytics.portfolio_history import (
    PortfolioHistoryService,
    PortfolioValuePoint,
    calculate_daily_portfolio_values,
    holdings_on_date,
)
from tradesim.core.analytics.metrics import (
    AccountAnalytics,
    AccountMetricsService,
    ActivityMetrics,
    AllocationMetrics,
    HoldingSnapshot,
    PerformanceMetrics,
    PositionPerformance,
    calculate_activity_metrics,
    calculate_allocation_metrics,
    calculate_performance_metrics,
    calculate_unrealized_pnl,
)

__all__ = [
    "TradeRecord",
    "PriceRecord",
    # Realized P&L
    "ClosedTrade",
    "RealizedPnLResult",
    "RealizedPnLService",
    "calculate_realized_pnl_fifo",
    # Portfolio history
    "PortfolioHistoryService",
    "PortfolioValuePoint",
    "calculate_daily_portfolio_values",
    "holdings_on_date",
    # Metrics
    "AccountAnalytics",
    "AccountMetricsService",
    "ActivityMetrics",
    "AllocationMetrics",
    "HoldingSnapshot",
    "PerformanceMetrics",
    "PositionPerformance",
    "calculate_activity_metrics",
    "calculate_allocation_metrics",
    "calculate_performance_metrics",
    "calculate_unrealized_pnl",
]

"""
TradeSim - Services

Store-backed jobs run on a schedule or on demand.
"""
from tradesim.services.price_updater import PriceUpdateService, PriceUpdateSummary
from tradesim.services.portfolio_valuation import PortfolioValuationJob, ValuationSummary

__all__ = [
    "PriceUpdateService",
    "PriceUpdateSummary",
    "PortfolioValuationJob",
    "ValuationSummary",
]

"""
TradeSim - Simulated stock trading core.

Order execution, cost-basis ledger, realized P&L and portfolio history
reconstruction, and synthetic price generation.
"""
__version__ = "0.1.0"

"""
TradeSim - Custom Exceptions

Three families:
- OrderValidationError: expected, user-facing order rejections
- ConsistencyError: data-integrity or programming bugs, always raised
- SimulationError: invalid simulation parameters
"""
from typing import Optional, Any, Dict


class TradeSimException(Exception):
    """Base exception for TradeSim."""

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Order Validation Exceptions
# =========================

class OrderValidationError(TradeSimException):
    """Order rejected by a precondition check."""
    pass


class InstrumentNotFoundError(OrderValidationError):
    """Instrument does not exist."""

    def __init__(self, instrument_id: Any = None):
        message = f"Instrument {instrument_id} not found" if instrument_id is not None else "Instrument not found"
        super().__init__(message=message, code="INSTRUMENT_NOT_FOUND")


class InstrumentNotTradableError(OrderValidationError):
    """Instrument is inactive or frozen."""

    def __init__(self, symbol: str = ""):
        message = (
            f"{symbol} is currently not available for trading" if symbol
            else "Instrument is currently not available for trading"
        )
        super().__init__(message=message, code="INSTRUMENT_NOT_TRADABLE")


class InvalidQuantityError(OrderValidationError):
    """Quantity is not a positive integer."""

    def __init__(self, quantity: Any = None):
        super().__init__(
            message=f"Quantity must be a positive integer, got {quantity!r}",
            code="INVALID_QUANTITY"
        )


class InvalidSideError(OrderValidationError):
    """Order side is neither BUY nor SELL."""

    def __init__(self, side: Any = None):
        super().__init__(
            message=f"Order side must be BUY or SELL, got {side!r}",
            code="INVALID_SIDE"
        )


class InsufficientFundsError(OrderValidationError):
    """Insufficient cash for a buy."""

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message=message, code="INSUFFICIENT_FUNDS")


class InsufficientSharesError(OrderValidationError):
    """Insufficient shares (or no position) for a sell."""

    def __init__(self, message: str = "Insufficient shares"):
        super().__init__(message=message, code="INSUFFICIENT_SHARES")


# =========================
# Consistency Exceptions
# =========================

class ConsistencyError(TradeSimException):
    """Store state contradicts an invariant the caller relied on."""
    pass


class AccountNotFoundError(ConsistencyError):
    """Account missing where one was expected."""

    def __init__(self, account_id: Any = None):
        super().__init__(
            message=f"Account {account_id} not found",
            code="ACCOUNT_NOT_FOUND"
        )


class PositionNotFoundError(ConsistencyError):
    """Position missing where one was expected."""

    def __init__(self, position_id: Any = None):
        super().__init__(
            message=f"Position {position_id} not found",
            code="POSITION_NOT_FOUND"
        )


class RowNotUpdatedError(ConsistencyError):
    """An UPDATE that should have matched a row matched none."""

    def __init__(self, table: str = "", key: Any = None):
        super().__init__(
            message=f"Update on {table} matched no row for key {key}",
            code="ROW_NOT_UPDATED",
            details={"table": table, "key": key}
        )


# =========================
# Simulation Exceptions
# =========================

class SimulationError(TradeSimException):
    """Price simulation errors."""
    pass


class InvalidSimulationParametersError(SimulationError):
    """Volatility, jump probability or jump multiplier out of range."""

    def __init__(self, message: str = "Invalid simulation parameters"):
        super().__init__(message=message, code="INVALID_SIMULATION_PARAMETERS")

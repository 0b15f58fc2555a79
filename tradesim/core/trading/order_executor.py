"""
TradeSim - Order Executor

Validates and applies one market buy or sell as a single atomic unit:
cash moves, the position ledger is updated and one COMPLETED transaction
is appended, or nothing happens at all.

Flow:
1. Take the account's in-process lock
2. Open a transaction, validate the order against current state
3. Snapshot the instrument price, mutate cash and position, append the record
4. Commit, release the lock, then fire post-commit hooks without awaiting them
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Union

from loguru import logger

from tradesim.core.trading.locks import AccountLockRegistry
from tradesim.core.trading.position_ledger import PositionLedger
from tradesim.db.database import Database
from tradesim.db.models.transaction import TransactionSide, TransactionStatus
from tradesim.db.repositories.account import AccountRepository
from tradesim.db.repositories.instrument import InstrumentRepository
from tradesim.db.repositories.position import PositionRepository
from tradesim.db.repositories.transaction import TransactionRepository
from tradesim.utils.exceptions import (
    AccountNotFoundError,
    InstrumentNotFoundError,
    InstrumentNotTradableError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidQuantityError,
    InvalidSideError,
    OrderValidationError,
)

CENT = Decimal("0.01")

PostCommitHook = Callable[[int], Awaitable[None]]


class OrderSide(str, Enum):
    """Order direction."""
    BUY = "BUY"
    SELL = "SELL"

    @property
    def transaction_side(self) -> TransactionSide:
        return TransactionSide(self.value)


@dataclass
class OrderRequest:
    """Order request data."""
    account_id: int
    instrument_id: int
    side: OrderSide
    quantity: int


@dataclass
class OrderResult:
    """Result of order execution."""
    success: bool
    side: Optional[OrderSide] = None
    quantity: int = 0
    transaction_id: Optional[int] = None
    position_id: Optional[int] = None
    position_closed: bool = False
    execution_price: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    error_code: Optional[str] = None
    message: str = ""

    @classmethod
    def rejected(cls, request: OrderRequest, error: OrderValidationError) -> "OrderResult":
        return cls(
            success=False,
            side=request.side,
            quantity=request.quantity if isinstance(request.quantity, int) else 0,
            error_code=error.code,
            message=error.message,
        )


def _validate_side(side) -> OrderSide:
    try:
        return OrderSide(side)
    except ValueError:
        raise InvalidSideError(side) from None


def _validate_quantity(quantity) -> int:
    # bool is an int subclass; True must not mean one share
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


class OrderExecutor:
    """
    Order Executor

    Responsible for:
    - Order validation (instrument, tradability, quantity, cash, shares)
    - Atomic application of the fill
    - Post-commit hook dispatch (achievements and similar)
    """

    def __init__(
        self,
        database: Database,
        locks: Optional[AccountLockRegistry] = None,
        hooks: Optional[Sequence[PostCommitHook]] = None,
    ):
        self.database = database
        self.locks = locks or AccountLockRegistry()
        self._hooks: List[PostCommitHook] = list(hooks or [])
        self._pending_hooks: Set[asyncio.Task] = set()

    def register_hook(self, hook: PostCommitHook) -> None:
        """Register an async callable invoked with the account ID after each successful order."""
        self._hooks.append(hook)

    async def buy(self, account_id: int, instrument_id: int, quantity: int) -> OrderResult:
        return await self.execute_order(account_id, instrument_id, OrderSide.BUY, quantity)

    async def sell(self, account_id: int, instrument_id: int, quantity: int) -> OrderResult:
        return await self.execute_order(account_id, instrument_id, OrderSide.SELL, quantity)

    async def execute_order(
        self,
        account_id: int,
        instrument_id: int,
        side: Union[OrderSide, str],
        quantity: int,
    ) -> OrderResult:
        """
        Execute a market order at the instrument's current price.

        Args:
            account_id: Account placing the order
            instrument_id: Instrument to trade
            side: BUY or SELL
            quantity: Positive whole number of shares

        Returns:
            OrderResult; validation failures come back with success=False

        Raises:
            ConsistencyError: Account missing or an update matched no row
        """
        try:
            request = OrderRequest(
                account_id=account_id,
                instrument_id=instrument_id,
                side=_validate_side(side),
                quantity=quantity,
            )
        except InvalidSideError as e:
            logger.warning(
                f"Order rejected [{e.code}]: {side!r} {quantity!r} "
                f"of instrument {instrument_id} for account {account_id}: {e.message}"
            )
            return OrderResult(success=False, error_code=e.code, message=e.message)

        try:
            async with self.locks.hold(account_id):
                result = await self._execute_locked(request)
        except OrderValidationError as e:
            logger.warning(
                f"Order rejected [{e.code}]: {request.side.value} {request.quantity!r} "
                f"of instrument {instrument_id} for account {account_id}: {e.message}"
            )
            return OrderResult.rejected(request, e)

        logger.info(
            f"Order executed: {result.side.value} {result.quantity} of instrument {instrument_id} "
            f"@ {result.execution_price} for account {account_id} (transaction {result.transaction_id})"
        )
        self._fire_hooks(account_id)
        return result

    async def _execute_locked(self, request: OrderRequest) -> OrderResult:
        async with self.database.transaction() as session:
            instruments = InstrumentRepository(session)
            accounts = AccountRepository(session)
            positions = PositionRepository(session)
            transactions = TransactionRepository(session)
            ledger = PositionLedger(session)

            instrument = await instruments.get_by_id(request.instrument_id)
            if instrument is None:
                raise InstrumentNotFoundError(request.instrument_id)
            if not instrument.is_tradable:
                raise InstrumentNotTradableError(instrument.symbol)

            quantity = _validate_quantity(request.quantity)

            account = await accounts.get_for_update(request.account_id)
            if account is None:
                raise AccountNotFoundError(request.account_id)

            # Price is fixed here for the rest of the unit
            price = Decimal(instrument.current_price).quantize(CENT, rounding=ROUND_HALF_UP)
            total_amount = (price * quantity).quantize(CENT, rounding=ROUND_HALF_UP)

            position_id: Optional[int]
            position_closed = False

            if request.side == OrderSide.BUY:
                cash = Decimal(account.cash_balance)
                if cash < total_amount:
                    raise InsufficientFundsError(
                        f"Insufficient balance: required {total_amount}, available {cash}"
                    )
                await accounts.adjust_balance(account.id, -total_amount)
                position = await ledger.apply_buy(account.id, instrument.id, quantity, price)
                position_id = position.id
            else:
                position = await positions.get_by_account_and_instrument(account.id, instrument.id)
                held = position.quantity if position is not None else 0
                if position is None or held < quantity:
                    raise InsufficientSharesError(
                        f"Insufficient shares of {instrument.symbol}: have {held}, requested {quantity}"
                    )
                await accounts.adjust_balance(account.id, total_amount)
                outcome = await ledger.apply_sell(position.id, quantity)
                position_closed = outcome.closed
                position_id = None if outcome.closed else outcome.position_id

            transaction = await transactions.append(
                account_id=account.id,
                instrument_id=instrument.id,
                side=request.side.transaction_side,
                quantity=quantity,
                price=price,
                total_amount=total_amount,
                status=TransactionStatus.COMPLETED,
            )

            return OrderResult(
                success=True,
                side=request.side,
                quantity=quantity,
                transaction_id=transaction.id,
                position_id=position_id,
                position_closed=position_closed,
                execution_price=price,
                total_amount=total_amount,
                message="Order executed successfully",
            )

    # ==================== HOOKS ====================

    def _fire_hooks(self, account_id: int) -> None:
        for hook in self._hooks:
            task = asyncio.create_task(self._run_hook(hook, account_id))
            self._pending_hooks.add(task)
            task.add_done_callback(self._pending_hooks.discard)

    async def _run_hook(self, hook: PostCommitHook, account_id: int) -> None:
        try:
            await hook(account_id)
        except Exception:
            logger.exception(f"Post-commit hook {getattr(hook, '__name__', hook)!r} failed for account {account_id}")

    async def wait_for_hooks(self) -> None:
        """Wait until every scheduled post-commit hook has finished."""
        while self._pending_hooks:
            await asyncio.gather(*list(self._pending_hooks))

    @property
    def pending_hooks(self) -> int:
        return len(self._pending_hooks)

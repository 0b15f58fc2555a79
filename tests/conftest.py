"""
TradeSim - Test Configuration
Shared fixtures and test configuration.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Tuple

import pytest
import pytest_asyncio
from loguru import logger

# Set test environment
os.environ["APP_ENV"] = "testing"
os.environ.pop("DATABASE_URL", None)

from tradesim.config import Settings  # noqa: E402
from tradesim.core.analytics.records import PriceRecord, TradeRecord  # noqa: E402
from tradesim.core.trading.order_executor import OrderExecutor  # noqa: E402
from tradesim.db.database import Database  # noqa: E402
from tradesim.db.models.account import Account  # noqa: E402
from tradesim.db.models.instrument import Instrument  # noqa: E402
from tradesim.db.models.transaction import TransactionSide  # noqa: E402
from tradesim.db.repositories import (  # noqa: E402
    AccountRepository,
    InstrumentRepository,
    PositionRepository,
    TransactionRepository,
)


# =========================
# Settings
# =========================

@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "tradesim_test.db")


@pytest.fixture
def test_settings(db_path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        APP_ENV="testing",
        DATABASE_URL=f"sqlite:///{db_path}",
        ENABLE_SCHEDULER=False,
        ENABLE_ACHIEVEMENTS=True,
        LOG_TO_FILE=False,
        DEFAULT_HISTORY_DAYS=0,
    )


# =========================
# Database Fixtures
# =========================

@pytest_asyncio.fixture
async def database(db_path) -> AsyncGenerator[Database, None]:
    """Open database with all tables created."""
    db = Database(f"sqlite+aiosqlite:///{db_path}")
    await db.open()
    await db.create_all()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def account(database) -> Account:
    """Account funded with 10,000.00."""
    async with database.transaction() as session:
        return await AccountRepository(session).create("alice", Decimal("10000.00"))


@pytest_asyncio.fixture
async def instrument(database) -> Instrument:
    """Tradable instrument priced at 100.00."""
    async with database.transaction() as session:
        return await InstrumentRepository(session).create(
            symbol="ACME",
            name="Acme Corp",
            current_price=Decimal("100.00"),
            sector="Industrials",
        )


@pytest.fixture
def executor(database) -> OrderExecutor:
    return OrderExecutor(database)


@pytest.fixture
def set_price(database):
    """Change an instrument's current price."""
    async def _set_price(instrument_id: int, price: str) -> None:
        async with database.transaction() as session:
            await InstrumentRepository(session).update_price(instrument_id, Decimal(price))
    return _set_price


@dataclass
class AccountState:
    """Observable state of one account."""
    cash_balance: Decimal
    initial_balance: Decimal
    positions: Dict[int, Tuple[int, Decimal]] = field(default_factory=dict)
    transaction_count: int = 0
    cash_deltas: List[Decimal] = field(default_factory=list)


@pytest.fixture
def state_of(database):
    """Read an account's balance, positions and transaction log."""
    async def _state(account_id: int) -> AccountState:
        async with database.session() as session:
            account = await AccountRepository(session).get_by_id(account_id)
            positions = await PositionRepository(session).get_all_by_account(account_id)
            transactions = await TransactionRepository(session).list_completed(account_id)
            count = await TransactionRepository(session).count_all(account_id)
        return AccountState(
            cash_balance=Decimal(account.cash_balance),
            initial_balance=Decimal(account.initial_balance),
            positions={p.instrument_id: (p.quantity, Decimal(p.average_cost)) for p in positions},
            transaction_count=count,
            cash_deltas=[Decimal(tx.cash_delta) for tx in transactions],
        )
    return _state


# =========================
# Replay Record Builders
# =========================

@pytest.fixture
def trade():
    """Build TradeRecords with auto-incrementing IDs."""
    counter = {"id": 0}

    def _trade(side: str, quantity: int, price: str, timestamp: datetime,
               instrument_id: int = 1, symbol: str = "ACME") -> TradeRecord:
        counter["id"] += 1
        return TradeRecord(
            instrument_id=instrument_id,
            side=TransactionSide(side),
            quantity=quantity,
            price=Decimal(price),
            timestamp=timestamp,
            id=counter["id"],
            symbol=symbol,
        )
    return _trade


@pytest.fixture
def price():
    def _price(instrument_id: int, timestamp: datetime, value: str) -> PriceRecord:
        return PriceRecord(instrument_id=instrument_id, timestamp=timestamp, price=Decimal(value))
    return _price


# =========================
# Logging
# =========================

@pytest.fixture
def log_messages():
    """Capture loguru output as '<LEVEL>|<message>' strings."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(str(m)), level="DEBUG", format="{level}|{message}")
    yield messages
    logger.remove(handler_id)

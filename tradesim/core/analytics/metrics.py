"""
TradeSim - Account Metrics

Position performance, allocation and trading activity figures for an
account, plus the aggregate numbers achievement checks compare against.
"""
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from tradesim.core.analytics.realized_pnl import (
    ClosedTrade,
    RealizedPnLResult,
    calculate_realized_pnl_fifo,
)
from tradesim.core.analytics.records import TradeRecord
from tradesim.db.repositories.position import PositionRepository
from tradesim.db.repositories.transaction import TransactionRepository

CENT = Decimal("0.01")
TOP_N = 5


@dataclass(frozen=True)
class HoldingSnapshot:
    """Open position joined with its instrument's live price."""
    instrument_id: int
    symbol: str
    quantity: int
    average_cost: Decimal
    current_price: Decimal
    sector: Optional[str] = None


@dataclass
class PositionPerformance:
    """Unrealized result of one open position."""
    instrument_id: int
    symbol: str
    quantity: int
    average_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    cost_basis: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal


@dataclass
class PerformanceMetrics:
    """Best and worst closed trades plus open position performance."""
    best_performers: List[ClosedTrade] = field(default_factory=list)
    worst_performers: List[ClosedTrade] = field(default_factory=list)
    current_positions: List[PositionPerformance] = field(default_factory=list)


@dataclass
class AllocationMetrics:
    """Portfolio weights by sector, in percent."""
    total_value: Decimal = Decimal("0")
    by_sector: List[Tuple[str, Decimal]] = field(default_factory=list)


@dataclass
class ActivityMetrics:
    """Trading activity over a window."""
    total_volume_traded: Decimal = Decimal("0")
    average_trades_per_day: Decimal = Decimal("0")
    most_traded: List[Tuple[str, int]] = field(default_factory=list)


@dataclass
class AccountAnalytics:
    """Everything the analytics view of an account needs."""
    account_id: int
    realized: RealizedPnLResult
    performance: PerformanceMetrics
    allocation: AllocationMetrics
    activity: ActivityMetrics
    total_unrealized_pnl: Decimal = Decimal("0")


# =========================
# Pure calculations
# =========================

def calculate_unrealized_pnl(holdings: Iterable[HoldingSnapshot]) -> List[PositionPerformance]:
    """Per-position unrealized P&L, best first."""
    performances = []
    for holding in holdings:
        if holding.quantity <= 0:
            continue

        current_price = Decimal(holding.current_price)
        average_cost = Decimal(holding.average_cost)
        current_value = (current_price * holding.quantity).quantize(CENT, rounding=ROUND_HALF_UP)
        cost_basis = (average_cost * holding.quantity).quantize(CENT, rounding=ROUND_HALF_UP)
        pnl = current_value - cost_basis

        pnl_percent = Decimal("0")
        if cost_basis != 0:
            pnl_percent = (pnl / cost_basis * 100).quantize(CENT, rounding=ROUND_HALF_UP)

        performances.append(PositionPerformance(
            instrument_id=holding.instrument_id,
            symbol=holding.symbol,
            quantity=holding.quantity,
            average_cost=average_cost,
            current_price=current_price,
            current_value=current_value,
            cost_basis=cost_basis,
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent,
        ))

    performances.sort(key=lambda p: p.unrealized_pnl, reverse=True)
    return performances


def calculate_performance_metrics(
    closed_trades: Iterable[ClosedTrade],
    holdings: Iterable[HoldingSnapshot],
) -> PerformanceMetrics:
    """Top five and bottom five closed trades; worst list is most negative first."""
    ranked = sorted(closed_trades, key=lambda t: t.realized_pnl, reverse=True)
    return PerformanceMetrics(
        best_performers=ranked[:TOP_N],
        worst_performers=list(reversed(ranked[-TOP_N:])),
        current_positions=calculate_unrealized_pnl(holdings),
    )


def calculate_allocation_metrics(holdings: Iterable[HoldingSnapshot]) -> AllocationMetrics:
    """Share of market value per sector, largest first."""
    total = Decimal("0")
    by_sector: Dict[str, Decimal] = defaultdict(Decimal)

    for holding in holdings:
        if holding.quantity <= 0:
            continue
        value = Decimal(holding.current_price) * holding.quantity
        total += value
        by_sector[holding.sector or "Uncategorized"] += value

    if total <= 0:
        return AllocationMetrics(total_value=Decimal("0.00"))

    weights = [
        (sector, (value / total * 100).quantize(CENT, rounding=ROUND_HALF_UP))
        for sector, value in by_sector.items()
    ]
    weights.sort(key=lambda item: item[1], reverse=True)
    return AllocationMetrics(
        total_value=total.quantize(CENT, rounding=ROUND_HALF_UP),
        by_sector=weights,
    )


def calculate_activity_metrics(
    transactions: Iterable[TradeRecord],
    start_date: date,
    end_date: date,
) -> ActivityMetrics:
    """
    Volume, trade frequency and most traded symbols.

    ``transactions`` should already be limited to the window; the window
    is only used to count its days, inclusive of both ends.
    """
    trades = list(transactions)
    volume = Decimal("0")
    counts: Counter = Counter()

    for tx in trades:
        if tx.quantity > 0 and Decimal(tx.price) >= 0:
            volume += Decimal(tx.price) * tx.quantity
        counts[tx.symbol or str(tx.instrument_id)] += 1

    days = (end_date - start_date).days + 1
    per_day = Decimal("0")
    if days > 0 and trades:
        per_day = (Decimal(len(trades)) / days).quantize(CENT, rounding=ROUND_HALF_UP)

    # Counter.most_common keeps first-seen order among ties
    return ActivityMetrics(
        total_volume_traded=volume.quantize(CENT, rounding=ROUND_HALF_UP),
        average_trades_per_day=per_day,
        most_traded=counts.most_common(TOP_N),
    )


# =========================
# Store-backed metrics
# =========================

class AccountMetricsService:
    """
    Aggregate numbers for one account, read through the given session.

    Used by the achievement checks and by the analytics summary.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.positions = PositionRepository(db)
        self.transactions = TransactionRepository(db)

    async def trade_records(self, account_id: int) -> List[TradeRecord]:
        rows = await self.transactions.list_completed_with_symbols(account_id)
        return [TradeRecord.from_transaction(tx, symbol) for tx, symbol in rows]

    async def holdings(self, account_id: int) -> List[HoldingSnapshot]:
        rows = await self.positions.get_all_with_instruments(account_id)
        return [
            HoldingSnapshot(
                instrument_id=instrument.id,
                symbol=instrument.symbol,
                quantity=position.quantity,
                average_cost=Decimal(position.average_cost),
                current_price=Decimal(instrument.current_price),
                sector=instrument.sector,
            )
            for position, instrument in rows
        ]

    async def total_realized_profit(self, account_id: int) -> Decimal:
        """All-time realized P&L by FIFO."""
        records = await self.trade_records(account_id)
        return calculate_realized_pnl_fifo(records).total_realized_pnl

    async def total_shares_held(self, account_id: int) -> int:
        return await self.positions.total_quantity(account_id)

    async def shares_held(self, account_id: int, instrument_id: int) -> int:
        position = await self.positions.get_by_account_and_instrument(account_id, instrument_id)
        return position.quantity if position is not None else 0

    async def completed_trade_count(self, account_id: int) -> int:
        return await self.transactions.count_completed(account_id)

    async def summary(
        self,
        account_id: int,
        window_start: datetime,
        window_end: datetime,
    ) -> AccountAnalytics:
        """Realized, unrealized, allocation and activity figures for a window."""
        records = await self.trade_records(account_id)
        holdings = await self.holdings(account_id)

        realized = calculate_realized_pnl_fifo(records, window_start, window_end)
        performance = calculate_performance_metrics(realized.closed_trades, holdings)
        in_window = [tx for tx in records if window_start <= tx.timestamp <= window_end]

        return AccountAnalytics(
            account_id=account_id,
            realized=realized,
            performance=performance,
            allocation=calculate_allocation_metrics(holdings),
            activity=calculate_activity_metrics(in_window, window_start.date(), window_end.date()),
            total_unrealized_pnl=sum(
                (p.unrealized_pnl for p in performance.current_positions), Decimal("0")
            ),
        )

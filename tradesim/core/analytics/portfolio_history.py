"""
TradeSim - Portfolio History

Rebuilds an account's total portfolio value for each calendar day from the
transaction log and the price log. Holdings are recomputed from scratch for
every day; prices carry forward from the last observation when a day has
none.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from tradesim.core.analytics.records import PriceRecord, TradeRecord, chronological_key
from tradesim.db.database import Database
from tradesim.db.models.transaction import TransactionSide
from tradesim.db.repositories.price_observation import PriceObservationRepository
from tradesim.db.repositories.transaction import TransactionRepository
from tradesim.utils.dates import each_day, end_of_day, utc_today

CENT = Decimal("0.01")


@dataclass
class PortfolioValuePoint:
    """Total value of the holdings at the close of one day."""
    date: date
    total_value: Decimal


def holdings_on_date(transactions: Iterable[TradeRecord], day: date) -> Dict[int, int]:
    """
    Net quantity per instrument at the end of ``day``.

    Sells are floored at zero and empty holdings are dropped, so a day
    before any activity gives an empty mapping.
    """
    cutoff = end_of_day(day)
    holdings: Dict[int, int] = defaultdict(int)

    for tx in sorted(transactions, key=chronological_key):
        if tx.timestamp > cutoff:
            break
        if tx.side == TransactionSide.BUY:
            holdings[tx.instrument_id] += tx.quantity
        else:
            holdings[tx.instrument_id] = max(0, holdings[tx.instrument_id] - tx.quantity)

    return {instrument_id: qty for instrument_id, qty in holdings.items() if qty > 0}


def calculate_daily_portfolio_values(
    transactions: Iterable[TradeRecord],
    observations: Iterable[PriceRecord],
    start_date: date,
    end_date: date,
) -> List[PortfolioValuePoint]:
    """
    One valuation point per day in ``[start_date, end_date]``.

    For each day the last known price map is first updated with that day's
    observations, then every held instrument is valued with it. An
    instrument that has never been priced is worth zero.

    Raises:
        ValueError: If end_date is before start_date
    """
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")

    trades = sorted(transactions, key=chronological_key)

    last_known_price: Dict[int, Decimal] = {}
    prices_by_day: Dict[date, List[PriceRecord]] = defaultdict(list)
    for observation in sorted(observations, key=lambda o: o.timestamp):
        day = observation.timestamp.date()
        if day < start_date:
            last_known_price[observation.instrument_id] = Decimal(observation.price)
        elif day <= end_date:
            prices_by_day[day].append(observation)

    points: List[PortfolioValuePoint] = []
    for day in each_day(start_date, end_date):
        for observation in prices_by_day.get(day, ()):
            last_known_price[observation.instrument_id] = Decimal(observation.price)

        total = Decimal("0")
        for instrument_id, quantity in holdings_on_date(trades, day).items():
            price = last_known_price.get(instrument_id)
            if price is not None:
                total += price * quantity

        points.append(PortfolioValuePoint(
            date=day,
            total_value=total.quantize(CENT, rounding=ROUND_HALF_UP),
        ))

    return points


class PortfolioHistoryService:
    """Fetches the logs for an account and builds its daily value series."""

    def __init__(self, database: Database):
        self.database = database

    async def daily_series(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
    ) -> List[PortfolioValuePoint]:
        """
        Daily total portfolio value for ``[start_date, end_date]``.

        Args:
            account_id: Account ID
            start_date: First day of the series
            end_date: Last day of the series (inclusive)

        Returns:
            One PortfolioValuePoint per calendar day
        """
        if end_date < start_date:
            raise ValueError(f"end_date {end_date} is before start_date {start_date}")

        cutoff = end_of_day(end_date)
        async with self.database.session() as session:
            transactions = await TransactionRepository(session).list_completed(account_id, until=cutoff)
            instrument_ids = sorted({tx.instrument_id for tx in transactions})
            observations = await PriceObservationRepository(session).list_for_instruments(
                instrument_ids, until=cutoff
            )
            trades = [TradeRecord.from_transaction(tx) for tx in transactions]
            prices = [PriceRecord.from_observation(o) for o in observations]

        return calculate_daily_portfolio_values(trades, prices, start_date, end_date)

    async def history_since_first_trade(
        self,
        account_id: int,
        end_date: Optional[date] = None,
    ) -> List[PortfolioValuePoint]:
        """Daily series from the account's first COMPLETED transaction to ``end_date`` (default today)."""
        async with self.database.session() as session:
            first = await TransactionRepository(session).first_completed_timestamp(account_id)

        if first is None:
            return []

        end_date = end_date or utc_today()
        if end_date < first.date():
            return []
        return await self.daily_series(account_id, first.date(), end_date)

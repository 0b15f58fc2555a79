"""
TradeSim - Achievement Evaluator

Runs after each committed order. Loads the achievements an account has
not unlocked yet, measures the relevant metric once per category and
records every threshold that is now met in a single write.
"""
from collections import defaultdict
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

from loguru import logger

from tradesim.core.analytics.metrics import AccountMetricsService
from tradesim.db.database import Database
from tradesim.db.models.achievement import Achievement, AchievementType
from tradesim.db.repositories.achievement import AchievementRepository

AchievementChecker = Callable[[AccountMetricsService, int, List[Achievement]], Awaitable[List[Achievement]]]


def _reached(value, achievement: Achievement) -> bool:
    return Decimal(value) >= Decimal(achievement.target_value)


async def check_total_profit(
    metrics: AccountMetricsService,
    account_id: int,
    candidates: List[Achievement],
) -> List[Achievement]:
    total_profit = await metrics.total_realized_profit(account_id)
    return [a for a in candidates if _reached(total_profit, a)]


async def check_total_stocks_owned(
    metrics: AccountMetricsService,
    account_id: int,
    candidates: List[Achievement],
) -> List[Achievement]:
    total_shares = await metrics.total_shares_held(account_id)
    return [a for a in candidates if _reached(total_shares, a)]


async def check_specific_stock_owned(
    metrics: AccountMetricsService,
    account_id: int,
    candidates: List[Achievement],
) -> List[Achievement]:
    quantities: Dict[int, int] = {}
    awarded = []
    for achievement in candidates:
        instrument_id = achievement.target_instrument_id
        if instrument_id is None:
            logger.warning(f"Achievement {achievement.id} ({achievement.name}) has no target instrument")
            continue
        if instrument_id not in quantities:
            quantities[instrument_id] = await metrics.shares_held(account_id, instrument_id)
        if _reached(quantities[instrument_id], achievement):
            awarded.append(achievement)
    return awarded


async def check_total_trades(
    metrics: AccountMetricsService,
    account_id: int,
    candidates: List[Achievement],
) -> List[Achievement]:
    trade_count = await metrics.completed_trade_count(account_id)
    return [a for a in candidates if _reached(trade_count, a)]


CHECKERS: Dict[AchievementType, AchievementChecker] = {
    AchievementType.TOTAL_PROFIT: check_total_profit,
    AchievementType.TOTAL_STOCKS_OWNED: check_total_stocks_owned,
    AchievementType.SPECIFIC_STOCK_OWNED: check_specific_stock_owned,
    AchievementType.TOTAL_TRADES: check_total_trades,
}


class AchievementEvaluator:
    """
    Post-commit achievement check.

    Register the instance itself as an order hook: calling it evaluates
    the account and never raises.
    """

    def __init__(
        self,
        database: Database,
        checkers: Optional[Dict[AchievementType, AchievementChecker]] = None,
    ):
        self.database = database
        self.checkers = dict(checkers or CHECKERS)

    async def evaluate(self, account_id: int) -> List[Achievement]:
        """
        Unlock every pending achievement whose threshold is met.

        Returns:
            The achievements unlocked by this call
        """
        async with self.database.transaction() as session:
            repository = AchievementRepository(session)
            pending = await repository.list_pending(account_id)
            if not pending:
                logger.debug(f"No pending achievements for account {account_id}")
                return []

            by_type: Dict[AchievementType, List[Achievement]] = defaultdict(list)
            for achievement in pending:
                by_type[AchievementType(achievement.type)].append(achievement)

            metrics = AccountMetricsService(session)
            awarded: List[Achievement] = []
            for achievement_type, candidates in by_type.items():
                checker = self.checkers.get(achievement_type)
                if checker is None:
                    logger.warning(f"No checker registered for achievement type {achievement_type.value}")
                    continue
                awarded.extend(await checker(metrics, account_id, candidates))

            if awarded:
                await repository.record_unlocks(account_id, [a.id for a in awarded])

        for achievement in awarded:
            logger.info(f"Account {account_id} unlocked achievement {achievement.name} ({achievement.type.value})")
        return awarded

    async def __call__(self, account_id: int) -> None:
        try:
            await self.evaluate(account_id)
        except Exception:
            logger.exception(f"Achievement evaluation failed for account {account_id}")

"""
TradeSim - Achievement Repository
"""
from typing import List, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite

from tradesim.db.models.achievement import Achievement, AccountAchievement

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AchievementRepository:
    """Catalog reads and unlock writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def unlocked_ids(self, account_id: int) -> Set[int]:
        """IDs of achievements the account already unlocked."""
        result = await self.db.execute(
            select(AccountAchievement.achievement_id)
            .where(AccountAchievement.account_id == account_id)
        )
        return set(result.scalars().all())

    async def list_pending(self, account_id: int) -> List[Achievement]:
        """Achievements not yet unlocked by the account, lowest level first."""
        unlocked = await self.unlocked_ids(account_id)
        query = select(Achievement).order_by(Achievement.level, Achievement.id)
        if unlocked:
            query = query.where(Achievement.id.not_in(unlocked))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_unlocked(self, account_id: int) -> List[AccountAchievement]:
        """Unlock records of an account, oldest first."""
        result = await self.db.execute(
            select(AccountAchievement)
            .where(AccountAchievement.account_id == account_id)
            .order_by(AccountAchievement.unlocked_at, AccountAchievement.id)
        )
        return list(result.scalars().all())

    async def record_unlocks(self, account_id: int, achievement_ids: List[int]) -> None:
        """
        Insert unlock rows in one statement.

        Rows that already exist (for example written by a concurrent
        evaluation of the same account) are skipped.
        """
        ids = list(dict.fromkeys(achievement_ids))
        if not ids:
            return

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            already = await self.unlocked_ids(account_id)
            self.db.add_all([
                AccountAchievement(account_id=account_id, achievement_id=aid)
                for aid in ids if aid not in already
            ])
            await self.db.flush()
            return

        stmt = (
            insert(AccountAchievement)
            .values([{"account_id": account_id, "achievement_id": aid} for aid in ids])
            .on_conflict_do_nothing(index_elements=["account_id", "achievement_id"])
        )
        await self.db.execute(stmt)

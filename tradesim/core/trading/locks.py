"""
TradeSim - Per-account order locks
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class AccountLockRegistry:
    """
    One asyncio.Lock per account ID.

    Orders for the same account run one at a time within this process;
    orders for different accounts proceed in parallel. Cross-process
    safety comes from the row lock taken on the account.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}

    def lock_for(self, account_id: int) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, account_id: int) -> AsyncIterator[None]:
        """Hold the account's lock for the duration of the block."""
        async with self.lock_for(account_id):
            yield

    def is_locked(self, account_id: int) -> bool:
        lock = self._locks.get(account_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

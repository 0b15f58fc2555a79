"""
Unit Tests - Trading Primitives
Tests for cost re-averaging, account locks and order results.
"""
import asyncio
from decimal import Decimal

import pytest

from tradesim.core.trading.locks import AccountLockRegistry
from tradesim.core.trading.order_executor import OrderRequest, OrderResult, OrderSide
from tradesim.core.trading.position_ledger import reaverage
from tradesim.utils.exceptions import InsufficientFundsError


class TestReaverage:
    """Tests for weighted average cost."""

    def test_weighted_average(self):
        """(q0*p0 + q1*p1) / (q0+q1)."""
        assert reaverage(10, Decimal("100"), 30, Decimal("110")) == Decimal("107.5")

    def test_equal_prices_keep_average(self):
        assert reaverage(5, Decimal("42.50"), 7, Decimal("42.50")) == Decimal("42.50")

    def test_rounded_to_six_places(self):
        """Non-terminating averages are rounded half-up to 1e-6."""
        assert reaverage(1, Decimal("1"), 2, Decimal("2")) == Decimal("1.666667")

    def test_result_between_prices(self):
        """The average is a convex combination of the two prices."""
        result = reaverage(3, Decimal("12.34"), 11, Decimal("9.87"))
        assert Decimal("9.87") <= result <= Decimal("12.34")


class TestAccountLockRegistry:
    """Tests for per-account locks."""

    def test_same_account_same_lock(self):
        registry = AccountLockRegistry()
        assert registry.lock_for(1) is registry.lock_for(1)
        assert registry.lock_for(1) is not registry.lock_for(2)
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_hold_serializes_one_account(self):
        """Critical sections for one account never overlap."""
        registry = AccountLockRegistry()
        active = 0
        peak = 0

        async def critical():
            nonlocal active, peak
            async with registry.hold(1):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(critical() for _ in range(5)))

        assert peak == 1
        assert not registry.is_locked(1)

    @pytest.mark.asyncio
    async def test_different_accounts_run_in_parallel(self):
        registry = AccountLockRegistry()

        async with registry.hold(1):
            assert registry.is_locked(1)
            assert not registry.is_locked(2)
            async with registry.hold(2):
                assert registry.is_locked(2)


class TestOrderResult:
    """Tests for order result construction."""

    def test_rejected_carries_code_and_message(self):
        request = OrderRequest(account_id=1, instrument_id=2, side=OrderSide.BUY, quantity=5)

        result = OrderResult.rejected(request, InsufficientFundsError("not enough"))

        assert result.success is False
        assert result.error_code == "INSUFFICIENT_FUNDS"
        assert result.message == "not enough"
        assert result.transaction_id is None

    def test_side_accepts_plain_strings(self):
        assert OrderSide("SELL") is OrderSide.SELL
        assert OrderSide.BUY.transaction_side.value == "BUY"

"""
TradeSim - Price Simulator

Synthetic daily closes and volumes for one instrument: Gaussian daily
returns scaled by volatility, with occasional jump days.

Each day:
1. With probability ``jump_probability`` the return is a jump of
   magnitude U[0, max_jump_multiplier - 1] in a random direction
2. Otherwise the return is ``volatility * z`` with z from Box-Muller
3. price = price * (1 + return), to the cent, floored at 0.01, capped
4. volume = U[1000, 51000) + |return| * 500000
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

import numpy as np

from tradesim.db.models.instrument import Instrument
from tradesim.utils.dates import utc_today
from tradesim.utils.exceptions import InvalidSimulationParametersError

PRICE_FLOOR = Decimal("0.01")
CENT = Decimal("0.01")

BASE_VOLUME_MIN = 1000
BASE_VOLUME_RANGE = 50000
VOLUME_PER_RETURN = 500000


@dataclass(frozen=True)
class SimulationParameters:
    """Inputs of the price process for one instrument."""
    current_price: Decimal
    volatility: float
    jump_probability: float
    max_jump_multiplier: float
    price_cap: Optional[Decimal] = None

    def __post_init__(self):
        if not 0 < self.volatility < 1:
            raise InvalidSimulationParametersError(
                f"volatility must be in (0, 1), got {self.volatility}"
            )
        if not 0 < self.jump_probability < 1:
            raise InvalidSimulationParametersError(
                f"jump_probability must be in (0, 1), got {self.jump_probability}"
            )
        if not 1 < self.max_jump_multiplier <= 2:
            raise InvalidSimulationParametersError(
                f"max_jump_multiplier must be in (1, 2], got {self.max_jump_multiplier}"
            )
        if self.current_price is None or Decimal(self.current_price) <= 0:
            raise InvalidSimulationParametersError(
                f"current_price must be positive, got {self.current_price}"
            )
        if self.price_cap is not None and Decimal(self.price_cap) < PRICE_FLOOR:
            raise InvalidSimulationParametersError(
                f"price_cap must be at least {PRICE_FLOOR}, got {self.price_cap}"
            )

    @classmethod
    def from_instrument(cls, instrument: Instrument) -> "SimulationParameters":
        return cls(
            current_price=Decimal(instrument.current_price),
            volatility=float(instrument.volatility),
            jump_probability=float(instrument.jump_probability),
            max_jump_multiplier=float(instrument.max_jump_multiplier),
            price_cap=Decimal(instrument.price_cap) if instrument.price_cap is not None else None,
        )


@dataclass
class SimulatedPricePoint:
    """One simulated trading day."""
    date: date
    price: Decimal
    volume: int
    was_jump: bool = False
    jump_percent: Optional[Decimal] = None


class PriceSimulator:
    """
    Price path generator.

    Pass a seeded ``numpy.random.Generator`` for reproducible paths.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    # ==================== DRAWS ====================

    def _uniform(self) -> float:
        return float(self.rng.random())

    def _open_uniform(self) -> float:
        # Box-Muller needs (0, 1); Generator.random() is [0, 1)
        u = 0.0
        while u == 0.0:
            u = self._uniform()
        return u

    def _standard_normal(self) -> float:
        u = self._open_uniform()
        v = self._open_uniform()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def _daily_return(self, params: SimulationParameters):
        """Return (daily_return, was_jump)."""
        if self._uniform() < params.jump_probability:
            magnitude = self._uniform() * (params.max_jump_multiplier - 1)
            direction = -1 if self._uniform() < 0.5 else 1
            return magnitude * direction, True
        return params.volatility * self._standard_normal(), False

    # ==================== PRICE PATH ====================

    def _apply_return(self, price: Decimal, daily_return: float, params: SimulationParameters) -> Decimal:
        new_price = (price * Decimal(repr(1 + daily_return))).quantize(CENT, rounding=ROUND_HALF_UP)
        if new_price < PRICE_FLOOR:
            new_price = PRICE_FLOOR
        if params.price_cap is not None and new_price > params.price_cap:
            new_price = Decimal(params.price_cap)
        return new_price

    def _volume(self, daily_return: float) -> int:
        base = self._uniform() * BASE_VOLUME_RANGE + BASE_VOLUME_MIN
        return int(math.floor(base + abs(daily_return) * VOLUME_PER_RETURN))

    def _step(self, price: Decimal, day: date, params: SimulationParameters) -> SimulatedPricePoint:
        daily_return, was_jump = self._daily_return(params)
        return SimulatedPricePoint(
            date=day,
            price=self._apply_return(price, daily_return, params),
            volume=self._volume(daily_return),
            was_jump=was_jump,
            jump_percent=(
                Decimal(repr(daily_return * 100)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
                if was_jump else None
            ),
        )

    def starting_price(self, params: SimulationParameters, num_days: int) -> Decimal:
        """Rough estimate of the price ``num_days`` ago."""
        factor = 1 + (self._uniform() - 0.5) * params.volatility * math.sqrt(num_days) * 0.5
        start = (Decimal(params.current_price) * Decimal(repr(factor))).quantize(CENT, rounding=ROUND_HALF_UP)
        return max(start, PRICE_FLOOR)

    def generate(
        self,
        params: SimulationParameters,
        num_days: int,
        today: Optional[date] = None,
    ) -> List[SimulatedPricePoint]:
        """
        Simulate ``num_days`` of history ending on ``today``, oldest first.

        Args:
            params: Simulation parameters
            num_days: Number of daily points
            today: Last day of the series (default: current UTC date)

        Returns:
            Exactly ``num_days`` points with strictly increasing dates
        """
        if num_days <= 0:
            return []

        today = today or utc_today()
        first_day = today - timedelta(days=num_days - 1)

        price = self.starting_price(params, num_days)
        points: List[SimulatedPricePoint] = []
        for offset in range(num_days):
            point = self._step(price, first_day + timedelta(days=offset), params)
            points.append(point)
            price = point.price

        return points

    def simulate_next_day(
        self,
        params: SimulationParameters,
        day: Optional[date] = None,
    ) -> SimulatedPricePoint:
        """Simulate one day starting from the current price."""
        return self._step(Decimal(params.current_price), day or utc_today(), params)

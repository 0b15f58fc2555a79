"""
TradeSim - Price Simulation
"""
from tradesim.core.simulation.price_simulator import (
    PriceSimulator,
    SimulatedPricePoint,
    SimulationParameters,
)

__all__ = ["PriceSimulator", "SimulatedPricePoint", "SimulationParameters"]

"""Simulation module for demo mode."""

from dexarb.simulation.venues import SimulatedToken, SimulatedVenue, create_simulated_venues


__all__ = [
    "SimulatedToken",
    "SimulatedVenue",
    "create_simulated_venues",
]

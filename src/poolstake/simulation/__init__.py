"""Simulated staking activity over a configured deployment."""

from .runner import SimulationResult, SimulationRunner

__all__ = ["SimulationResult", "SimulationRunner"]

"""Simulation support systems."""

from stagecraft.systems.rng import DeterministicRNG

__all__ = ["DeterministicRNG"]

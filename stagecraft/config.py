"""Engine configuration with sensible defaults."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for a play session."""

    # Randomness
    seed: int = 42

    # Play / step mode
    max_ticks: int = 200
    history_limit: int = 20            # step-back depth

    # Rule evaluation
    max_loop_iterations: int = 1000    # upper clamp for LOOP group counts
    strict: bool = False               # raise TickError when an actor's rules fail

    # Logging
    log_level: str = "INFO"
    replay_file: str = "replay.json"


DEFAULT_CONFIG = EngineConfig()

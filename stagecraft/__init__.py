"""Rule evaluation, world simulation and record-by-demonstration for grid worlds."""

from stagecraft.config import DEFAULT_CONFIG, EngineConfig
from stagecraft.engine.applier import apply_actions
from stagecraft.engine.evaluator import evaluate_condition
from stagecraft.engine.walker import walk_rule_tree
from stagecraft.engine.world_loop import (
    TickResult,
    WorldLoop,
    advance_tick,
    restore_initial_game_state,
    save_initial_game_state,
    step_back,
)
from stagecraft.engine.history import History
from stagecraft.errors import RecordingError, RuleTreeInvariantError, StagecraftError, TickError, WorldFormatError
from stagecraft.persistence import load_world, save_world, world_from_dict, world_to_dict
from stagecraft.recording import RecordingSession, SynthesisResult, diff_worlds
from stagecraft.systems.rng import DeterministicRNG

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "DeterministicRNG",
    "EngineConfig",
    "History",
    "RecordingError",
    "RecordingSession",
    "RuleTreeInvariantError",
    "StagecraftError",
    "SynthesisResult",
    "TickError",
    "TickResult",
    "WorldFormatError",
    "WorldLoop",
    "advance_tick",
    "apply_actions",
    "diff_worlds",
    "evaluate_condition",
    "load_world",
    "restore_initial_game_state",
    "save_initial_game_state",
    "save_world",
    "step_back",
    "walk_rule_tree",
    "world_from_dict",
    "world_to_dict",
]

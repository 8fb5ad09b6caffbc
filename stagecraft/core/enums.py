"""Enumerations used throughout the engine."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class Comparator(str, Enum):
    """Comparators available to rule conditions."""

    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    CONTAINS = "contains"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"

    @property
    def numeric(self) -> bool:
        return self in (Comparator.LT, Comparator.LE, Comparator.GT, Comparator.GE)


@unique
class MathOperation(str, Enum):
    """How an action combines its value with the existing one."""

    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"


@unique
class Behavior(str, Enum):
    """Flow-group control behaviors."""

    FIRST = "first"
    LOOP = "loop"
    ALL = "all"
    RANDOM = "random"


@unique
class EventKind(str, Enum):
    """Triggers an event group can listen for."""

    IDLE = "idle"
    KEY = "key"
    CLICK = "click"


@unique
class Transform(str, Enum):
    """The 8 elements of the dihedral group acting on a sprite."""

    IDENTITY = "0"
    ROT_90 = "90"
    ROT_180 = "180"
    ROT_270 = "270"
    FLIP_X = "flip-x"
    FLIP_Y = "flip-y"
    D1 = "d1"
    D2 = "d2"

    @classmethod
    def parse(cls, value: str | None) -> Transform | None:
        """Return the transform named by *value*, or None if it is not one of the 8."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@unique
class GlobalType(str, Enum):
    """Value types a global variable can carry."""

    STRING = "string"
    NUMBER = "number"
    STAGE = "stage"
    ACTOR = "actor"
    KEY = "key"


@unique
class FailReason(str, Enum):
    """First stage at which a rule scenario stopped matching."""

    EXTENT_SQUARE = "extent-square"
    MISSING_REQUIRED_ACTOR = "missing-required-actor"
    ACTION_OFFSET_INVALID = "action-offset-invalid"
    CONDITION_FAILED = "condition-failed"
    DISABLED = "disabled"
    EVENT_NOT_FIRED = "event-not-fired"


@unique
class SquareStatus(str, Enum):
    """Outcome for a single extent square during scenario matching."""

    OK = "ok"
    OFFSCREEN = "offscreen"
    ACTOR_COUNT_MISMATCH = "actor-count-mismatch"
    ACTOR_MATCH_FAILED = "actor-match-failed"


@unique
class Domain(IntEnum):
    """RNG domains for deterministic randomness isolation."""

    FLOW_RANDOM = 0
    ACTION = 1


# Globals that are always present on a World.
GLOBAL_CLICK = "click"
GLOBAL_KEYPRESS = "keypress"
GLOBAL_SELECTED_STAGE = "selectedStageId"

# Built-in actor "variables" that shadow user variables of the same id.
BUILTIN_APPEARANCE = "appearance"
BUILTIN_TRANSFORM = "transform"
BUILTIN_X = "x"
BUILTIN_Y = "y"

# Pseudo actor id that makes a variable action target a global.
GLOBALS_ACTOR_ID = "globals"

# Default rule-scoped id of the acting actor.
MAIN_ACTOR_ID = "main"

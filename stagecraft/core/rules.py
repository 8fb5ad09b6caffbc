"""Rule tree data: values, conditions, actions and tree nodes.

Each family is a closed union of frozen dataclasses. Consumers dispatch with
``match`` and end every dispatch with ``assert_never`` (or an explicit
invariant error) so a new variant cannot be silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from stagecraft.core.enums import MAIN_ACTOR_ID, Behavior, Comparator, EventKind, MathOperation, Transform
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import Actor

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _empty() -> Mapping[str, Any]:
    return _EMPTY


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ActorValue:
    """A variable (or built-in) of an actor named in the rule."""

    actor_id: str
    variable_id: str


@dataclass(frozen=True, slots=True)
class GlobalValue:
    global_id: str


@dataclass(frozen=True, slots=True)
class ConstantValue:
    value: str


Value = Union[ActorValue, GlobalValue, ConstantValue]


@dataclass(frozen=True, slots=True)
class Condition:
    """``left <comparator> right``; disabled conditions are skipped."""

    key: str
    left: Value
    right: Value
    comparator: Comparator = Comparator.EQ
    enabled: bool = True

    def references_actor(self, actor_id: str) -> bool:
        return any(isinstance(side, ActorValue) and side.actor_id == actor_id for side in (self.left, self.right))


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, kw_only=True)
class CreateAction:
    """Spawn an actor of *character_id* at *offset* from the rule origin.

    *actor_id* is the rule-scoped id; later actions of the same rule can use it
    to address the freshly created actor.
    """

    actor_id: str
    character_id: str
    offset: Position = Position()
    appearance: str = ""
    transform: Transform | None = None
    initial_values: Mapping[str, str] = field(default_factory=_empty)
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class MoveAction:
    """Move to *offset* (relative to the rule origin) or by *delta*."""

    actor_id: str
    offset: Position | None = None
    delta: Position | None = None
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class DeleteAction:
    actor_id: str
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class VariableAction:
    actor_id: str
    variable_id: str
    value: Value
    operation: MathOperation = MathOperation.SET
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class AppearanceAction:
    actor_id: str
    value: Value
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class TransformAction:
    actor_id: str
    value: Value
    operation: MathOperation = MathOperation.SET
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class GlobalAction:
    global_id: str
    value: Value
    operation: MathOperation = MathOperation.SET
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


Action = Union[
    CreateAction,
    MoveAction,
    DeleteAction,
    VariableAction,
    AppearanceAction,
    TransformAction,
    GlobalAction,
]


def action_actor_id(action: Action) -> str | None:
    """The actor an action addresses, or None for global actions."""
    if isinstance(action, GlobalAction):
        return None
    return action.actor_id


# ---------------------------------------------------------------------------
# Rule tree nodes
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, kw_only=True)
class Rule:
    """A condition set paired with an ordered action list.

    *actors* are templates positioned relative to the main actor (which sits at
    ``(0, 0)``); *extent* is expressed in the same frame. A rule with no actors
    only binds its main actor and skips spatial matching.
    """

    id: str
    name: str = "Untitled Rule"
    enabled: bool = True
    conditions: tuple[Condition, ...] = ()
    actions: tuple[Action, ...] = ()
    main_actor_id: str = MAIN_ACTOR_ID
    actors: Mapping[str, Actor] = field(default_factory=_empty)
    extent: Extent = Extent()
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class Check:
    """Condition + spatial gate guarding a flow group."""

    id: str
    conditions: tuple[Condition, ...] = ()
    main_actor_id: str = MAIN_ACTOR_ID
    actors: Mapping[str, Actor] = field(default_factory=_empty)
    extent: Extent = Extent()
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True)
class LoopCount:
    """Iteration count for LOOP groups: a constant or a variable of the acting actor."""

    constant: int | None = None
    variable_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class EventGroup:
    """Children fire independently when *event* happened this tick."""

    id: str
    name: str = ""
    event: EventKind = EventKind.IDLE
    code: str | None = None
    children: tuple[RuleNode, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class FlowGroup:
    id: str
    name: str = ""
    enabled: bool = True
    behavior: Behavior = Behavior.FIRST
    loop_count: LoopCount | None = None
    check: Check | None = None
    children: tuple[RuleNode, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)


RuleNode = Union[Rule, EventGroup, FlowGroup]

# A Rule or a Check: anything that can be matched against the stage.
Scenario = Union[Rule, Check]


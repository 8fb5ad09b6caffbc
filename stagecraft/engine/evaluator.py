"""Condition evaluation against a World or an in-progress draft.

Operands resolve to strings (or None when a reference cannot be resolved).
Resolution never raises: a missing actor, character, variable or global just
makes the condition fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, assert_never

from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import (
    BUILTIN_APPEARANCE,
    BUILTIN_TRANSFORM,
    BUILTIN_X,
    BUILTIN_Y,
    MAIN_ACTOR_ID,
    Comparator,
    Transform,
)
from stagecraft.core.models import Actor, Character, World
from stagecraft.core.rules import ActorValue, Condition, ConstantValue, GlobalValue, Value
from stagecraft.core.values import comparator_matches
from stagecraft.engine.trace import EvaluatedCondition

logger = logging.getLogger(__name__)

# Rule-scoped actor id -> stage actor id.
Binding = Mapping[str, str]

@dataclass(frozen=True, slots=True)
class ConditionResult:
    passed: bool
    trace: EvaluatedCondition


def as_draft(world: World | WorldDraft) -> WorldDraft:
    return world if isinstance(world, WorldDraft) else WorldDraft(world)


def resolve_actor(draft: WorldDraft, actor_id: str, binding: Binding | None) -> Actor | None:
    """Bound rule actors win; otherwise *actor_id* is taken as a stage actor id."""
    if binding and actor_id in binding:
        return draft.get_actor(binding[actor_id])
    return draft.get_actor(actor_id)


def read_actor_variable(
    actor: Actor,
    character: Character | None,
    variable_id: str,
    comparator: Comparator = Comparator.EQ,
) -> str | None:
    """Read a variable or built-in of *actor*.

    ``appearance`` reads the appearance id for ``=``/``!=`` and its display
    name for every other comparator, so renaming an appearance does not break
    identity comparisons while text comparisons see what the author sees.
    """
    if variable_id == BUILTIN_APPEARANCE:
        if comparator in (Comparator.EQ, Comparator.NE):
            return actor.appearance
        if character is None:
            return None
        return character.appearance_names.get(actor.appearance)
    if variable_id == BUILTIN_TRANSFORM:
        return (actor.transform or Transform.IDENTITY).value
    if variable_id == BUILTIN_X:
        return str(actor.position.x)
    if variable_id == BUILTIN_Y:
        return str(actor.position.y)
    if variable_id in actor.variable_values:
        return actor.variable_values[variable_id]
    if character is None:
        return None
    return character.variable_default(variable_id)


def resolve_value(
    value: Value,
    world: World | WorldDraft,
    binding: Binding | None = None,
    comparator: Comparator = Comparator.EQ,
) -> str | None:
    draft = as_draft(world)
    match value:
        case ConstantValue():
            return value.value
        case GlobalValue():
            glob = draft.globals.get(value.global_id)
            return glob.value if glob is not None else None
        case ActorValue():
            actor = resolve_actor(draft, value.actor_id, binding)
            if actor is None:
                logger.debug("Unresolved actor %r in value", value.actor_id)
                return None
            return read_actor_variable(actor, draft.character_for(actor), value.variable_id, comparator)
        case _:
            assert_never(value)


def evaluate_condition(
    condition: Condition,
    world: World | WorldDraft,
    actor_id: str,
    binding: Binding | None = None,
) -> ConditionResult:
    """Evaluate one condition for the acting actor *actor_id*.

    Without an explicit *binding* the default rule main actor id (``"main"``)
    refers to *actor_id*. Disabled conditions are vacuously true.
    """
    if binding is None:
        binding = {MAIN_ACTOR_ID: actor_id}
    if not condition.enabled:
        return ConditionResult(True, EvaluatedCondition(condition.key, True))

    draft = as_draft(world)
    left = resolve_value(condition.left, draft, binding, condition.comparator)
    right = resolve_value(condition.right, draft, binding, condition.comparator)
    passed = comparator_matches(condition.comparator, left, right)
    return ConditionResult(passed, EvaluatedCondition(condition.key, passed, left, right))


def evaluate_conditions(
    conditions: tuple[Condition, ...],
    draft: WorldDraft,
    actor_id: str,
    binding: Binding,
) -> tuple[bool, tuple[EvaluatedCondition, ...]]:
    """AND of all enabled conditions; every enabled condition is traced."""
    traces: list[EvaluatedCondition] = []
    passed = True
    for condition in conditions:
        if not condition.enabled:
            continue
        result = evaluate_condition(condition, draft, actor_id, binding)
        traces.append(result.trace)
        passed = passed and result.passed
    return passed, tuple(traces)

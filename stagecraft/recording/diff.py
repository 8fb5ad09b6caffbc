"""Diff synthesizer: derive rule actions from a before/after demonstration.

The diff is a keyed outer join over actor ids, restricted to actors whose
footprint touches the recording extent in either snapshot. Actors are visited
in ``before`` order followed by actors that only exist ``after``; within an
actor the fields are visited in a fixed order (position, variables,
appearance, transform). Re-recording the same demonstration therefore yields
identical output.

All offsets are relative to the anchor (main) actor's position in ``before``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from stagecraft.core.enums import (
    BUILTIN_APPEARANCE,
    GLOBAL_CLICK,
    GLOBAL_KEYPRESS,
    GLOBALS_ACTOR_ID,
    MathOperation,
    Transform,
)
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import Actor, Character, Stage, World, actor_filled_points
from stagecraft.core.rules import (
    Action,
    ActorValue,
    AppearanceAction,
    Condition,
    ConstantValue,
    CreateAction,
    DeleteAction,
    GlobalAction,
    MoveAction,
    TransformAction,
    VariableAction,
)
from stagecraft.recording.helpers import operand_for_value_change

logger = logging.getLogger(__name__)

MAIN_APPEARANCE_CONDITION_KEY = "main-actor-appearance"

# (actor id, variable id) -> preferred operation; globals use the "globals" actor id
OperationPreferences = Mapping[tuple[str, str], MathOperation]

# Globals written by the tick engine from frame input, never by rules.
_INPUT_GLOBALS = frozenset({GLOBAL_CLICK, GLOBAL_KEYPRESS})


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    actions: tuple[Action, ...] = ()
    conditions: tuple[Condition, ...] = ()
    origin: Position | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.origin is not None


def main_actor_appearance_condition(actor: Actor) -> Condition:
    return Condition(
        key=MAIN_APPEARANCE_CONDITION_KEY,
        left=ActorValue(actor.id, BUILTIN_APPEARANCE),
        right=ConstantValue(actor.appearance),
    )


def _touches(actor: Actor, character: Character | None, extent: Extent) -> bool:
    return any(extent.contains(p) for p in actor_filled_points(actor, character))


def _variable_value(actor: Actor, character: Character | None, variable_id: str) -> str | None:
    if variable_id in actor.variable_values:
        return actor.variable_values[variable_id]
    return character.variable_default(variable_id) if character is not None else None


def diff_worlds(
    before: World,
    after: World,
    extent: Extent,
    main_actor_id: str,
    preferences: OperationPreferences | None = None,
) -> SynthesisResult:
    """Synthesize the actions that turn *before* into *after* inside *extent*."""
    preferences = preferences or {}
    stage_before = before.current_stage()
    stage_after = after.stages.get(stage_before.id) if stage_before is not None else None
    if stage_before is None or stage_after is None:
        return SynthesisResult(reason="cannot synthesize: the recorded stage is missing")

    anchor = stage_before.actors.get(main_actor_id)
    if anchor is None:
        logger.debug("Cannot synthesize: anchor actor %r not on stage %s", main_actor_id, stage_before.id)
        return SynthesisResult(reason=f"cannot synthesize: actor {main_actor_id!r} is not on the stage")

    actions: list[Action] = []
    for actor_id in _relevant_actor_ids(stage_before, stage_after, before, extent, main_actor_id):
        actions.extend(
            _diff_actor(
                stage_before.actors.get(actor_id),
                stage_after.actors.get(actor_id),
                before.characters,
                anchor.position,
                preferences,
            )
        )
    actions.extend(_diff_globals(before, after, preferences))

    return SynthesisResult(
        actions=tuple(actions),
        conditions=(main_actor_appearance_condition(anchor),),
        origin=anchor.position,
    )


def _relevant_actor_ids(
    stage_before: Stage, stage_after: Stage, world: World, extent: Extent, main_actor_id: str
) -> list[str]:
    ordered = list(stage_before.actors) + [aid for aid in stage_after.actors if aid not in stage_before.actors]
    relevant: list[str] = []
    for actor_id in ordered:
        if actor_id == main_actor_id:
            relevant.append(actor_id)
            continue
        for stage in (stage_before, stage_after):
            actor = stage.actors.get(actor_id)
            if actor is not None and _touches(actor, world.characters.get(actor.character_id), extent):
                relevant.append(actor_id)
                break
    return relevant


def _diff_actor(
    old: Actor | None,
    new: Actor | None,
    characters: Mapping[str, Character],
    anchor: Position,
    preferences: OperationPreferences,
) -> list[Action]:
    if new is None:
        return [DeleteAction(actor_id=old.id)]
    if old is None:
        return [
            CreateAction(
                actor_id=new.id,
                character_id=new.character_id,
                offset=new.position - anchor,
                appearance=new.appearance,
                transform=new.transform,
                initial_values=new.variable_values,
            )
        ]

    actions: list[Action] = []
    if new.position != old.position:
        actions.append(MoveAction(actor_id=new.id, offset=new.position - anchor))

    character = characters.get(new.character_id)
    variable_ids = list(old.variable_values) + [k for k in new.variable_values if k not in old.variable_values]
    for variable_id in variable_ids:
        was = _variable_value(old, character, variable_id)
        now = _variable_value(new, character, variable_id)
        if was == now or now is None:
            continue
        operation = preferences.get((new.id, variable_id), MathOperation.SET)
        actions.append(
            VariableAction(
                actor_id=new.id,
                variable_id=variable_id,
                value=ConstantValue(operand_for_value_change(was or "0", now, operation)),
                operation=operation,
            )
        )

    if new.appearance != old.appearance:
        actions.append(AppearanceAction(actor_id=new.id, value=ConstantValue(new.appearance)))

    if (new.transform or Transform.IDENTITY) != (old.transform or Transform.IDENTITY):
        transform = new.transform or Transform.IDENTITY
        actions.append(TransformAction(actor_id=new.id, value=ConstantValue(transform.value)))
    return actions


def _diff_globals(before: World, after: World, preferences: OperationPreferences) -> list[Action]:
    actions: list[Action] = []
    for global_id, old in before.globals.items():
        if global_id in _INPUT_GLOBALS:
            continue
        new = after.globals.get(global_id)
        if new is None or new.value == old.value:
            continue
        operation = preferences.get((GLOBALS_ACTOR_ID, global_id), MathOperation.SET)
        actions.append(
            GlobalAction(
                global_id=global_id,
                value=ConstantValue(operand_for_value_change(old.value, new.value, operation)),
                operation=operation,
            )
        )
    return actions

"""Conversion between the interchange schemas and the frozen domain model."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping

from pydantic import ValidationError

from stagecraft.core.enums import (
    GLOBAL_CLICK,
    GLOBAL_KEYPRESS,
    GLOBAL_SELECTED_STAGE,
    MAIN_ACTOR_ID,
    Behavior,
    Comparator,
    EventKind,
    GlobalType,
    MathOperation,
    Transform,
)
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import (
    Actor,
    AppearanceInfo,
    Character,
    FrameInput,
    Global,
    Stage,
    VariableDecl,
    World,
    frozen_map,
)
from stagecraft.core.rules import (
    Action,
    ActorValue,
    AppearanceAction,
    Check,
    Condition,
    ConstantValue,
    CreateAction,
    DeleteAction,
    EventGroup,
    FlowGroup,
    GlobalAction,
    GlobalValue,
    LoopCount,
    MoveAction,
    Rule,
    RuleNode,
    TransformAction,
    Value,
    VariableAction,
)
from stagecraft.errors import WorldFormatError
from stagecraft.persistence.migrations import migrate_world_data
from stagecraft.persistence.schemas import (
    ActionSchema,
    ActorSchema,
    CharacterSchema,
    CheckSchema,
    ConditionSchema,
    ExtentSchema,
    RuleTreeItemSchema,
    StageSchema,
    ValueSchema,
    WorldSchema,
)

logger = logging.getLogger(__name__)

_SYNTHETIC_GLOBALS = {
    GLOBAL_CLICK: ("Clicked Actor", GlobalType.ACTOR),
    GLOBAL_KEYPRESS: ("Key Pressed", GlobalType.KEY),
    GLOBAL_SELECTED_STAGE: ("Current Stage", GlobalType.STAGE),
}


def _extras(model: Any) -> Mapping[str, Any]:
    return frozen_map(model.model_extra or {})


def _enum(enum_cls: Any, raw: str | None, default: Any, where: str) -> Any:
    if raw is None:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        raise WorldFormatError(f"{where}: {raw!r} is not a valid {enum_cls.__name__}") from None


def _cell(key: str) -> tuple[int, int]:
    try:
        x, y = key.split(",")
        return int(x), int(y)
    except ValueError:
        raise WorldFormatError(f"invalid cell key {key!r}") from None


# ---------------------------------------------------------------------------
# dict -> domain
# ---------------------------------------------------------------------------

def world_from_dict(data: Mapping[str, Any], *, migrate: bool = True) -> World:
    """Validate and convert interchange data (camelCase keys) into a World."""
    raw = copy.deepcopy(dict(data))
    if migrate:
        raw = migrate_world_data(raw)
    try:
        schema = WorldSchema.model_validate(raw)
    except ValidationError as exc:
        raise WorldFormatError(f"invalid world data: {exc}") from exc

    characters = {cid: _character(c) for cid, c in schema.characters.items()}
    stages = {sid: _stage(s) for sid, s in schema.stages.items()}
    globals_ = {
        gid: Global(
            id=g.id,
            name=g.name,
            value=g.value,
            type=_enum(GlobalType, g.type, GlobalType.STRING, f"global {gid}"),
        )
        for gid, g in schema.globals.items()
    }
    for gid, (name, type_) in _SYNTHETIC_GLOBALS.items():
        if gid not in globals_:
            value = ""
            if gid == GLOBAL_SELECTED_STAGE and stages:
                value = min(stages.values(), key=lambda s: s.order).id
            globals_[gid] = Global(id=gid, name=name, value=value, type=type_)

    logger.debug("Loaded world: %d stage(s), %d character(s), tick %d", len(stages), len(characters), schema.tick)

    return World(
        stages=frozen_map(stages),
        globals=frozen_map(globals_),
        characters=frozen_map(characters),
        input=FrameInput(
            keys=tuple(k for k, on in schema.input.keys.items() if on),
            clicks=tuple(k for k, on in schema.input.clicks.items() if on),
        ),
        tick=schema.tick,
        id_counter=schema.id_counter,
        extras=_extras(schema),
    )


def _actor(schema: ActorSchema) -> Actor:
    return Actor(
        id=schema.id,
        character_id=schema.character_id,
        position=Position(schema.position.x, schema.position.y),
        appearance=schema.appearance,
        transform=Transform.parse(schema.transform),
        variable_values=frozen_map(schema.variable_values),
        frame_count=schema.frame_count or 0,
        extras=_extras(schema),
    )


def _stage(schema: StageSchema) -> Stage:
    return Stage(
        id=schema.id,
        name=schema.name,
        width=schema.width,
        height=schema.height,
        order=schema.order,
        background=schema.background,
        wrap_x=schema.wrap_x,
        wrap_y=schema.wrap_y,
        actors=frozen_map({aid: _actor(a) for aid, a in schema.actors.items()}),
        start_actors=_actors(schema.start_actors) if schema.start_actors is not None else None,
        start_thumbnail=schema.start_thumbnail,
        extras=_extras(schema),
    )


def _character(schema: CharacterSchema) -> Character:
    sheet = schema.spritesheet
    info = {
        appearance_id: AppearanceInfo(
            width=i.width,
            height=i.height,
            anchor=Position(i.anchor.x, i.anchor.y),
            filled=frozenset(_cell(k) for k, on in i.filled.items() if on),
        )
        for appearance_id, i in (sheet.appearance_info or {}).items()
    }
    names = dict(sheet.appearance_names)
    for appearance_id in sheet.appearances:
        names.setdefault(appearance_id, appearance_id)

    extras = dict(_extras(schema))
    extras["spritesheet"] = sheet.model_dump(
        by_alias=True, exclude_none=True, exclude={"appearance_names", "appearance_info"}
    )
    return Character(
        id=schema.id,
        name=schema.name,
        variables=frozen_map(
            {
                vid: VariableDecl(id=v.id, name=v.name, default_value=v.default_value, type=v.type or "string")
                for vid, v in schema.variables.items()
            }
        ),
        appearance_names=frozen_map(names),
        appearance_info=frozen_map(info),
        rules=tuple(_node(item) for item in schema.rules),
        extras=frozen_map(extras),
    )


def _extent(schema: ExtentSchema | None) -> Extent:
    if schema is None:
        return Extent()
    return Extent(
        xmin=schema.xmin,
        xmax=schema.xmax,
        ymin=schema.ymin,
        ymax=schema.ymax,
        ignored=frozenset(_cell(k) for k, on in schema.ignored.items() if on),
    )


def _value(schema: ValueSchema | None, where: str) -> Value:
    if schema is None:
        raise WorldFormatError(f"{where}: missing value")
    if schema.constant is not None:
        return ConstantValue(schema.constant)
    if schema.actor_id is not None and schema.variable_id is not None:
        return ActorValue(schema.actor_id, schema.variable_id)
    if schema.global_id is not None:
        return GlobalValue(schema.global_id)
    raise WorldFormatError(f"{where}: value is not a constant, actor or global reference")


def _condition(schema: ConditionSchema) -> Condition:
    where = f"condition {schema.key}"
    return Condition(
        key=schema.key,
        left=_value(schema.left, where),
        right=_value(schema.right, where),
        comparator=_enum(Comparator, schema.comparator, Comparator.EQ, where),
        enabled=schema.enabled,
    )


def _position(schema: Any) -> Position | None:
    return Position(schema.x, schema.y) if schema is not None else None


def _action(schema: ActionSchema, rule_id: str) -> Action:
    where = f"rule {rule_id}: {schema.type} action"
    extras = _extras(schema)
    operation = _enum(MathOperation, schema.operation, MathOperation.SET, where)
    actor_id = schema.actor_id or ""
    match schema.type:
        case "create":
            template = schema.actor
            if template is None:
                raise WorldFormatError(f"{where}: missing actor template")
            template_extras = dict(_extras(template))
            return CreateAction(
                actor_id=actor_id or template.id,
                character_id=template.character_id,
                offset=_position(schema.offset) or Position(),
                appearance=template.appearance,
                transform=Transform.parse(template.transform),
                initial_values=frozen_map(template.variable_values),
                extras=frozen_map({**extras, **({"actor": template_extras} if template_extras else {})}),
            )
        case "move":
            return MoveAction(
                actor_id=actor_id,
                offset=_position(schema.offset),
                delta=_position(schema.delta),
                extras=extras,
            )
        case "delete":
            return DeleteAction(actor_id=actor_id, extras=extras)
        case "variable":
            return VariableAction(
                actor_id=actor_id,
                variable_id=schema.variable or "",
                value=_value(schema.value, where),
                operation=operation,
                extras=extras,
            )
        case "appearance":
            return AppearanceAction(actor_id=actor_id, value=_value(schema.value, where), extras=extras)
        case "transform":
            return TransformAction(
                actor_id=actor_id, value=_value(schema.value, where), operation=operation, extras=extras
            )
        case "global":
            return GlobalAction(
                global_id=schema.global_ or "", value=_value(schema.value, where), operation=operation, extras=extras
            )
    raise WorldFormatError(f"{where}: unknown action type")


def _actors(actors: Mapping[str, ActorSchema] | None) -> Mapping[str, Actor]:
    return frozen_map({aid: _actor(a) for aid, a in (actors or {}).items()})


def _check(schema: CheckSchema) -> Check:
    return Check(
        id=schema.id,
        conditions=tuple(_condition(c) for c in schema.conditions),
        main_actor_id=schema.main_actor_id,
        actors=_actors(schema.actors),
        extent=_extent(schema.extent),
        extras=_extras(schema),
    )


def _loop_count(raw: Mapping[str, Any] | None, where: str) -> LoopCount | None:
    if raw is None:
        return None
    if raw.get("variableId"):
        return LoopCount(variable_id=str(raw["variableId"]))
    constant = raw.get("constant")
    if constant is None:
        return LoopCount(constant=0)
    try:
        return LoopCount(constant=int(float(constant)))
    except (TypeError, ValueError):
        raise WorldFormatError(f"{where}: loop count {constant!r} is not a number") from None


def _node(schema: RuleTreeItemSchema) -> RuleNode:
    extras = _extras(schema)
    children = tuple(_node(child) for child in schema.rules or ())
    match schema.type:
        case "rule":
            return Rule(
                id=schema.id,
                name=schema.name if schema.name is not None else "Untitled Rule",
                enabled=schema.enabled if schema.enabled is not None else True,
                conditions=tuple(_condition(c) for c in schema.conditions or ()),
                actions=tuple(_action(a, schema.id) for a in schema.actions or ()),
                main_actor_id=schema.main_actor_id or MAIN_ACTOR_ID,
                actors=_actors(schema.actors),
                extent=_extent(schema.extent),
                extras=extras,
            )
        case "group-event":
            return EventGroup(
                id=schema.id,
                name=schema.name or "",
                event=_enum(EventKind, schema.event, EventKind.IDLE, f"group {schema.id}"),
                code=schema.code,
                children=children,
                extras=extras,
            )
        case "group-flow":
            where = f"group {schema.id}"
            return FlowGroup(
                id=schema.id,
                name=schema.name or "",
                enabled=schema.enabled if schema.enabled is not None else True,
                behavior=_enum(Behavior, schema.behavior, Behavior.FIRST, where),
                loop_count=_loop_count(schema.loop_count, where),
                check=_check(schema.check) if schema.check is not None else None,
                children=children,
                extras=extras,
            )
    raise WorldFormatError(f"rule tree node {schema.id}: unknown type {schema.type!r}")


# ---------------------------------------------------------------------------
# domain -> dict
# ---------------------------------------------------------------------------

def world_to_dict(world: World) -> dict[str, Any]:
    """Convert a World into interchange data (camelCase keys, JSON-ready)."""
    return {
        **world.extras,
        "stages": {sid: _stage_dict(s) for sid, s in world.stages.items()},
        "globals": {gid: _global_dict(g) for gid, g in world.globals.items()},
        "characters": {cid: _character_dict(c) for cid, c in world.characters.items()},
        "input": {
            "keys": {k: True for k in world.input.keys},
            "clicks": {k: True for k in world.input.clicks},
        },
        "tick": world.tick,
        "idCounter": world.id_counter,
    }


def _pos_dict(pos: Position) -> dict[str, int]:
    return {"x": pos.x, "y": pos.y}


def _actor_dict(actor: Actor) -> dict[str, Any]:
    out: dict[str, Any] = {
        **actor.extras,
        "id": actor.id,
        "characterId": actor.character_id,
        "position": _pos_dict(actor.position),
        "appearance": actor.appearance,
        "variableValues": dict(actor.variable_values),
    }
    if actor.transform is not None:
        out["transform"] = actor.transform.value
    if actor.frame_count:
        out["frameCount"] = actor.frame_count
    return out


def _stage_dict(stage: Stage) -> dict[str, Any]:
    out = {
        **stage.extras,
        "id": stage.id,
        "name": stage.name,
        "order": stage.order,
        "actors": {aid: _actor_dict(a) for aid, a in stage.actors.items()},
        "background": stage.background,
        "width": stage.width,
        "height": stage.height,
        "wrapX": stage.wrap_x,
        "wrapY": stage.wrap_y,
        "startThumbnail": stage.start_thumbnail,
    }
    if stage.start_actors is not None:
        out["startActors"] = {aid: _actor_dict(a) for aid, a in stage.start_actors.items()}
    return out


def _global_dict(glob: Global) -> dict[str, Any]:
    return {"id": glob.id, "name": glob.name, "value": glob.value, "type": glob.type.value}


def _character_dict(character: Character) -> dict[str, Any]:
    extras = dict(character.extras)
    sheet = dict(extras.pop("spritesheet", {}))
    sheet["appearanceNames"] = dict(character.appearance_names)
    if character.appearance_info:
        sheet["appearanceInfo"] = {
            appearance_id: {
                "anchor": _pos_dict(info.anchor),
                "filled": {f"{x},{y}": True for x, y in sorted(info.filled)},
                "width": info.width,
                "height": info.height,
            }
            for appearance_id, info in character.appearance_info.items()
        }
    return {
        **extras,
        "id": character.id,
        "name": character.name,
        "rules": [rule_node_to_dict(node) for node in character.rules],
        "spritesheet": sheet,
        "variables": {
            vid: {"id": v.id, "name": v.name, "defaultValue": v.default_value, "type": v.type}
            for vid, v in character.variables.items()
        },
    }


def _extent_dict(extent: Extent) -> dict[str, Any]:
    return {
        "xmin": extent.xmin,
        "xmax": extent.xmax,
        "ymin": extent.ymin,
        "ymax": extent.ymax,
        "ignored": {f"{x},{y}": True for x, y in extent.sorted_ignored()},
    }


def _value_dict(value: Value) -> dict[str, str]:
    match value:
        case ConstantValue():
            return {"constant": value.value}
        case ActorValue():
            return {"actorId": value.actor_id, "variableId": value.variable_id}
        case GlobalValue():
            return {"globalId": value.global_id}
    raise TypeError(f"not a rule value: {value!r}")


def condition_to_dict(condition: Condition) -> dict[str, Any]:
    return {
        "key": condition.key,
        "enabled": condition.enabled,
        "left": _value_dict(condition.left),
        "comparator": condition.comparator.value,
        "right": _value_dict(condition.right),
    }


def action_to_dict(action: Action) -> dict[str, Any]:
    extras = dict(action.extras)
    match action:
        case CreateAction():
            template = {
                **extras.pop("actor", {}),
                "id": action.actor_id,
                "characterId": action.character_id,
                "position": {"x": 0, "y": 0},
                "appearance": action.appearance,
                "variableValues": dict(action.initial_values),
            }
            if action.transform is not None:
                template["transform"] = action.transform.value
            return {**extras, "type": "create", "actorId": action.actor_id, "offset": _pos_dict(action.offset), "actor": template}
        case MoveAction():
            out = {**extras, "type": "move", "actorId": action.actor_id}
            if action.offset is not None:
                out["offset"] = _pos_dict(action.offset)
            if action.delta is not None:
                out["delta"] = _pos_dict(action.delta)
            return out
        case DeleteAction():
            return {**extras, "type": "delete", "actorId": action.actor_id}
        case VariableAction():
            return {
                **extras,
                "type": "variable",
                "actorId": action.actor_id,
                "variable": action.variable_id,
                "operation": action.operation.value,
                "value": _value_dict(action.value),
            }
        case AppearanceAction():
            return {**extras, "type": "appearance", "actorId": action.actor_id, "value": _value_dict(action.value)}
        case TransformAction():
            return {
                **extras,
                "type": "transform",
                "actorId": action.actor_id,
                "operation": action.operation.value,
                "value": _value_dict(action.value),
            }
        case GlobalAction():
            return {
                **extras,
                "type": "global",
                "global": action.global_id,
                "operation": action.operation.value,
                "value": _value_dict(action.value),
            }
    raise TypeError(f"not a rule action: {action!r}")


def _scenario_fields(scenario: Rule | Check) -> dict[str, Any]:
    return {
        "mainActorId": scenario.main_actor_id,
        "conditions": [condition_to_dict(c) for c in scenario.conditions],
        "actors": {aid: _actor_dict(a) for aid, a in scenario.actors.items()},
        "extent": _extent_dict(scenario.extent),
    }


def rule_node_to_dict(node: RuleNode) -> dict[str, Any]:
    match node:
        case Rule():
            return {
                **node.extras,
                "type": "rule",
                "id": node.id,
                "name": node.name,
                "enabled": node.enabled,
                **_scenario_fields(node),
                "actions": [action_to_dict(a) for a in node.actions],
            }
        case EventGroup():
            out = {
                **node.extras,
                "type": "group-event",
                "id": node.id,
                "name": node.name,
                "event": node.event.value,
                "rules": [rule_node_to_dict(child) for child in node.children],
            }
            if node.code is not None:
                out["code"] = node.code
            return out
        case FlowGroup():
            out = {
                **node.extras,
                "type": "group-flow",
                "id": node.id,
                "name": node.name,
                "enabled": node.enabled,
                "behavior": node.behavior.value,
                "rules": [rule_node_to_dict(child) for child in node.children],
            }
            if node.loop_count is not None:
                if node.loop_count.variable_id:
                    out["loopCount"] = {"variableId": node.loop_count.variable_id}
                else:
                    out["loopCount"] = {"constant": node.loop_count.constant or 0}
            if node.check is not None:
                out["check"] = {**node.check.extras, "id": node.check.id, **_scenario_fields(node.check)}
            return out
    raise TypeError(f"not a rule tree node: {node!r}")

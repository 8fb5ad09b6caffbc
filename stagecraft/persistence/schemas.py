"""Pydantic models for the JSON interchange form of a World.

Field names are snake_case in Python and camelCase on the wire. Every model
allows extra fields, so data written by newer or foreign tools survives a
load/save round trip untouched.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _stringify(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class _Schema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)


# --- Geometry ---

class PositionSchema(_Schema):
    x: int = 0
    y: int = 0


class ExtentSchema(_Schema):
    xmin: int = 0
    xmax: int = 0
    ymin: int = 0
    ymax: int = 0
    ignored: dict[str, bool] = Field(default_factory=dict)  # "x,y" -> true


# --- Actors ---

class ActorSchema(_Schema):
    id: str
    character_id: str
    position: PositionSchema = Field(default_factory=PositionSchema)
    appearance: str = ""
    transform: str | None = None
    variable_values: dict[str, str] = Field(default_factory=dict)
    frame_count: int | None = None

    @field_validator("variable_values", mode="before")
    @classmethod
    def _values_as_strings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: _stringify(v) if v is not None else "" for k, v in value.items()}
        return value


# --- Rules ---

class ValueSchema(_Schema):
    constant: str | None = None
    actor_id: str | None = None
    variable_id: str | None = None
    global_id: str | None = None

    @field_validator("constant", mode="before")
    @classmethod
    def _constant_as_string(cls, value: Any) -> Any:
        return _stringify(value)


class ConditionSchema(_Schema):
    key: str
    enabled: bool = True
    left: ValueSchema
    right: ValueSchema
    comparator: str = "="


class ActionSchema(_Schema):
    type: str
    actor_id: str | None = None
    variable: str | None = None
    global_: str | None = Field(None, alias="global")
    operation: str | None = None
    value: ValueSchema | None = None
    offset: PositionSchema | None = None
    delta: PositionSchema | None = None
    actor: ActorSchema | None = None


class CheckSchema(_Schema):
    id: str
    main_actor_id: str = "main"
    conditions: list[ConditionSchema] = Field(default_factory=list)
    actors: dict[str, ActorSchema] = Field(default_factory=dict)
    extent: ExtentSchema = Field(default_factory=ExtentSchema)


class RuleTreeItemSchema(_Schema):
    """One node of a rule tree; ``type`` is ``rule``, ``group-event`` or ``group-flow``."""

    type: str = "rule"
    id: str
    name: str | None = None
    enabled: bool | None = None

    # rule
    main_actor_id: str | None = None
    conditions: list[ConditionSchema] | None = None
    actions: list[ActionSchema] | None = None
    actors: dict[str, ActorSchema] | None = None
    extent: ExtentSchema | None = None

    # groups
    rules: list[RuleTreeItemSchema] | None = None
    event: str | None = None
    code: str | None = None
    behavior: str | None = None
    loop_count: dict[str, Any] | None = None
    check: CheckSchema | None = None

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_string(cls, value: Any) -> Any:
        return _stringify(value)


# --- Characters ---

class AppearanceInfoSchema(_Schema):
    anchor: PositionSchema = Field(default_factory=PositionSchema)
    filled: dict[str, bool] = Field(default_factory=dict)
    width: int = 1
    height: int = 1


class SpritesheetSchema(_Schema):
    appearances: dict[str, Any] = Field(default_factory=dict)
    appearance_names: dict[str, str] = Field(default_factory=dict)
    appearance_info: dict[str, AppearanceInfoSchema] | None = None


class VariableSchema(_Schema):
    id: str
    name: str = ""
    default_value: str = "0"
    type: str | None = None

    @field_validator("default_value", mode="before")
    @classmethod
    def _default_as_string(cls, value: Any) -> Any:
        return "" if value is None else _stringify(value)


class CharacterSchema(_Schema):
    id: str
    name: str = ""
    rules: list[RuleTreeItemSchema] = Field(default_factory=list)
    spritesheet: SpritesheetSchema = Field(default_factory=SpritesheetSchema)
    variables: dict[str, VariableSchema] = Field(default_factory=dict)


# --- World ---

class StageSchema(_Schema):
    id: str
    name: str = ""
    order: int = 0
    actors: dict[str, ActorSchema] = Field(default_factory=dict)
    background: str = ""
    width: int = 20
    height: int = 20
    wrap_x: bool = False
    wrap_y: bool = False
    start_thumbnail: str = ""
    start_actors: dict[str, ActorSchema] | None = None


class GlobalSchema(_Schema):
    id: str
    name: str = ""
    value: str = ""
    type: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_string(cls, value: Any) -> Any:
        return "" if value is None else _stringify(value)


class FrameInputSchema(_Schema):
    keys: dict[str, bool] = Field(default_factory=dict)
    clicks: dict[str, bool] = Field(default_factory=dict)


class WorldSchema(_Schema):
    stages: dict[str, StageSchema] = Field(default_factory=dict)
    globals: dict[str, GlobalSchema] = Field(default_factory=dict)
    characters: dict[str, CharacterSchema] = Field(default_factory=dict)
    input: FrameInputSchema = Field(default_factory=FrameInputSchema)
    tick: int = 0
    id_counter: int = 0


RuleTreeItemSchema.model_rebuild()

"""Core data models: Actor, Character, Stage, Global, World.

Every record is a frozen value. Maps are wrapped in ``MappingProxyType`` so a
snapshot can be shared freely; producing the next snapshot means building new
records that reference the unchanged ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from stagecraft.core.enums import GLOBAL_SELECTED_STAGE, GlobalType, Transform
from stagecraft.core.geometry import Position, point_applying_transform

if TYPE_CHECKING:
    from stagecraft.core.rules import RuleNode

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _empty() -> Mapping[str, Any]:
    return _EMPTY


def frozen_map(items: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None) -> Mapping[str, Any]:
    """Copy *items* into a read-only mapping (insertion order preserved)."""
    if not items:
        return _EMPTY
    return MappingProxyType(dict(items))


@dataclass(frozen=True, slots=True)
class Actor:
    """A positioned instance of a Character on a stage."""

    id: str
    character_id: str
    position: Position = Position()
    appearance: str = ""
    transform: Transform | None = None
    variable_values: Mapping[str, str] = field(default_factory=_empty)
    frame_count: int = 0
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)

    def with_variable(self, variable_id: str, value: str) -> Actor:
        values = dict(self.variable_values)
        values[variable_id] = value
        return replace(self, variable_values=frozen_map(values))

    def moved_to(self, pos: Position) -> Actor:
        return replace(self, position=pos)


@dataclass(frozen=True, slots=True)
class VariableDecl:
    """A per-character variable declaration."""

    id: str
    name: str
    default_value: str = "0"
    type: str = "string"


@dataclass(frozen=True, slots=True)
class AppearanceInfo:
    """Footprint of one appearance: sprite size, anchor cell and filled cells."""

    width: int = 1
    height: int = 1
    anchor: Position = Position()
    filled: frozenset[tuple[int, int]] = frozenset({(0, 0)})


@dataclass(frozen=True, slots=True)
class Character:
    """Template for actors: variables, appearances and the rule tree."""

    id: str
    name: str = ""
    variables: Mapping[str, VariableDecl] = field(default_factory=_empty)
    appearance_names: Mapping[str, str] = field(default_factory=_empty)
    appearance_info: Mapping[str, AppearanceInfo] = field(default_factory=_empty)
    rules: tuple[RuleNode, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)

    @property
    def default_appearance(self) -> str:
        return next(iter(self.appearance_names), "")

    def has_appearance(self, appearance_id: str) -> bool:
        return appearance_id in self.appearance_names

    def variable_default(self, variable_id: str) -> str | None:
        decl = self.variables.get(variable_id)
        return decl.default_value if decl is not None else None

    def default_values(self) -> dict[str, str]:
        return {vid: decl.default_value for vid, decl in self.variables.items()}


def actor_filled_points(actor: Actor, character: Character | None) -> list[Position]:
    """Stage cells covered by *actor*, honoring its appearance footprint and transform."""
    info = character.appearance_info.get(actor.appearance) if character is not None else None
    if info is None:
        return [actor.position]
    ix, iy = point_applying_transform(info.anchor.x, info.anchor.y, info.width, info.height, actor.transform)
    points: list[Position] = []
    for dx in range(info.width):
        for dy in range(info.height):
            if (dx, dy) in info.filled:
                sx, sy = point_applying_transform(dx, dy, info.width, info.height, actor.transform)
                points.append(Position(actor.position.x + sx - ix, actor.position.y + sy - iy))
    return points


@dataclass(frozen=True, slots=True)
class Stage:
    """One grid scene and the actors on it."""

    id: str
    name: str = ""
    width: int = 20
    height: int = 20
    order: int = 0
    background: str = ""
    wrap_x: bool = False
    wrap_y: bool = False
    actors: Mapping[str, Actor] = field(default_factory=_empty)
    start_actors: Mapping[str, Actor] | None = None  # None until a reset point is saved
    start_thumbnail: str = ""
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def wrapped_position(self, pos: Position) -> Position | None:
        """Apply edge wrapping; None when *pos* falls off a non-wrapping edge."""
        x = pos.x % self.width if self.wrap_x and self.width > 0 else pos.x
        y = pos.y % self.height if self.wrap_y and self.height > 0 else pos.y
        wrapped = Position(x, y)
        return wrapped if self.in_bounds(wrapped) else None

    def with_actors(self, actors: Mapping[str, Actor]) -> Stage:
        return replace(self, actors=frozen_map(actors))


@dataclass(frozen=True, slots=True)
class Global:
    """A world-level variable."""

    id: str
    name: str
    value: str = ""
    type: GlobalType = GlobalType.STRING


@dataclass(frozen=True, slots=True)
class FrameInput:
    """Input observed since the previous tick: key codes and clicked actor ids."""

    keys: tuple[str, ...] = ()
    clicks: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class World:
    """Top-level simulation state.

    The diagnostic trace of a tick is deliberately not stored here; it travels
    beside the World in ``TickResult``.
    """

    stages: Mapping[str, Stage] = field(default_factory=_empty)
    globals: Mapping[str, Global] = field(default_factory=_empty)
    characters: Mapping[str, Character] = field(default_factory=_empty)
    input: FrameInput = FrameInput()
    tick: int = 0
    id_counter: int = 0
    extras: Mapping[str, Any] = field(default_factory=_empty, compare=False)

    @property
    def current_stage_id(self) -> str | None:
        selected = self.globals.get(GLOBAL_SELECTED_STAGE)
        if selected is not None and selected.value in self.stages:
            return selected.value
        if not self.stages:
            return None
        return min(self.stages.values(), key=lambda s: s.order).id

    def current_stage(self) -> Stage | None:
        stage_id = self.current_stage_id
        return self.stages[stage_id] if stage_id is not None else None

    def with_stage(self, stage: Stage) -> World:
        stages = dict(self.stages)
        stages[stage.id] = stage
        return replace(self, stages=frozen_map(stages))

"""Mutable working copy of a World, the only thing actions ever write to."""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping

from stagecraft.core.enums import GlobalType
from stagecraft.core.geometry import Position
from stagecraft.core.models import Actor, Character, Global, Stage, World, frozen_map


class WorldDraft:
    """Copy-on-write view over one stage of a World snapshot.

    Reads go straight to the snapshot until the first write, at which point the
    affected map (actors or globals) is shallow-copied. Untouched actors keep
    their identity, so ``freeze()`` shares every unchanged record with the
    snapshot it started from.
    """

    __slots__ = ("_base", "_stage", "_actors", "_globals", "_id_counter")

    def __init__(self, world: World, stage_id: str | None = None) -> None:
        self._base = world
        sid = stage_id if stage_id is not None else world.current_stage_id
        self._stage: Stage | None = world.stages.get(sid) if sid is not None else None
        self._actors: dict[str, Actor] | None = None
        self._globals: dict[str, Global] | None = None
        self._id_counter = world.id_counter

    # -- read access --

    @property
    def stage(self) -> Stage | None:
        return self._stage

    @property
    def characters(self) -> Mapping[str, Character]:
        return self._base.characters

    @property
    def actors(self) -> Mapping[str, Actor]:
        if self._actors is not None:
            return self._actors
        return self._stage.actors if self._stage is not None else {}

    @property
    def globals(self) -> Mapping[str, Global]:
        return self._globals if self._globals is not None else self._base.globals

    def get_actor(self, actor_id: str) -> Actor | None:
        return self.actors.get(actor_id)

    def character_for(self, actor: Actor) -> Character | None:
        return self._base.characters.get(actor.character_id)

    def wrapped_position(self, pos: Position) -> Position | None:
        if self._stage is None:
            return None
        return self._stage.wrapped_position(pos)

    # -- mutation --

    def _writable_actors(self) -> dict[str, Actor]:
        if self._actors is None:
            self._actors = dict(self._stage.actors) if self._stage is not None else {}
        return self._actors

    def _writable_globals(self) -> dict[str, Global]:
        if self._globals is None:
            self._globals = dict(self._base.globals)
        return self._globals

    def allocate_actor_id(self) -> str:
        """Deterministic fresh id that collides with no actor on any stage."""
        taken = set(self.actors)
        for stage in self._base.stages.values():
            taken.update(stage.actors)
        while True:
            self._id_counter += 1
            candidate = f"actor-{self._id_counter}"
            if candidate not in taken:
                return candidate

    def put_actor(self, actor: Actor) -> None:
        """Insert or replace; replacing keeps the actor's slot in the insertion order."""
        self._writable_actors()[actor.id] = actor

    def remove_actor(self, actor_id: str) -> Actor | None:
        if actor_id not in self.actors:
            return None
        return self._writable_actors().pop(actor_id)

    def set_global(self, global_id: str, value: str) -> bool:
        existing = self.globals.get(global_id)
        if existing is None:
            return False
        self._writable_globals()[global_id] = replace(existing, value=value)
        return True

    def ensure_global(self, global_id: str, name: str, value: str, type_: GlobalType) -> None:
        existing = self.globals.get(global_id)
        if existing is None:
            self._writable_globals()[global_id] = Global(id=global_id, name=name, value=value, type=type_)
        elif existing.value != value:
            self.set_global(global_id, value)

    # -- snapshot --

    def freeze(self) -> World:
        """Produce the next immutable World, sharing everything that was not written."""
        world = self._base
        if self._actors is not None and self._stage is not None:
            world = world.with_stage(self._stage.with_actors(self._actors))
        if self._globals is not None:
            world = replace(world, globals=frozen_map(self._globals))
        if self._id_counter != world.id_counter:
            world = replace(world, id_counter=self._id_counter)
        return world


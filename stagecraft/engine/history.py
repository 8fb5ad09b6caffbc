"""Bounded step-back history for play and step mode."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Mapping

from stagecraft.core.models import Actor, FrameInput, Global, World


@dataclass(frozen=True, slots=True)
class HistoryItem:
    """The parts of a World a tick can change, captured before the tick ran."""

    stage_id: str
    actors: Mapping[str, Actor]
    globals: Mapping[str, Global]
    input: FrameInput
    tick: int
    id_counter: int

    @classmethod
    def capture(cls, world: World) -> HistoryItem | None:
        stage = world.current_stage()
        if stage is None:
            return None
        return cls(
            stage_id=stage.id,
            actors=stage.actors,
            globals=world.globals,
            input=world.input,
            tick=world.tick,
            id_counter=world.id_counter,
        )

    def restore(self, world: World) -> World:
        """Put the captured state back onto *world*; other stages are left as they are."""
        restored = replace(
            world,
            globals=self.globals,
            input=self.input,
            tick=self.tick,
            id_counter=self.id_counter,
        )
        stage = world.stages.get(self.stage_id)
        if stage is not None:
            restored = restored.with_stage(stage.with_actors(self.actors))
        return restored


class History:
    """Most-recent-last stack of HistoryItems; the oldest entries fall off at *limit*."""

    __slots__ = ("_items",)

    def __init__(self, limit: int = 20) -> None:
        self._items: deque[HistoryItem] = deque(maxlen=max(limit, 0))

    def __len__(self) -> int:
        return len(self._items)

    @property
    def limit(self) -> int:
        return self._items.maxlen or 0

    def push(self, item: HistoryItem) -> None:
        self._items.append(item)

    def pop(self) -> HistoryItem | None:
        return self._items.pop() if self._items else None

    def clear(self) -> None:
        self._items.clear()

"""Shared context for action handlers and the batch record the walker emits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import MAIN_ACTOR_ID
from stagecraft.core.geometry import Position
from stagecraft.core.models import Actor
from stagecraft.core.rules import Action


@dataclass(slots=True)
class ActionContext:
    """Who is acting, where the rule was anchored and how rule ids map to stage ids.

    *origin* is the main actor's position when the rule started; offsets in
    create and move actions are relative to it. *binding* is mutated by create
    actions so that later actions of the same rule can address the new actor;
    *created* keeps only those new entries.
    """

    actor_id: str | None = None
    origin: Position | None = None
    binding: dict[str, str] = field(default_factory=dict)
    created: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_actor(cls, actor: Actor, main_actor_id: str = MAIN_ACTOR_ID) -> ActionContext:
        return cls(actor_id=actor.id, origin=actor.position, binding={main_actor_id: actor.id})

    def target(self, draft: WorldDraft, rule_actor_id: str) -> Actor | None:
        """The stage actor a rule-scoped id refers to, if it still exists."""
        return draft.get_actor(self.binding.get(rule_actor_id, rule_actor_id))


@dataclass(frozen=True, slots=True)
class ActionBatch:
    """The actions of one matched rule, as produced by the walker.

    The tick engine replays batches in actor order against a single draft,
    reusing the origin and binding captured when the rule matched. Actors the
    walker created while evaluating carry ids from its private draft;
    *created* maps each create's rule actor id to that private id so replay
    can translate them to the ids allocated on the shared draft.
    """

    actor_id: str
    rule_id: str
    origin: Position
    binding: Mapping[str, str]
    actions: tuple[Action, ...]
    created: Mapping[str, str] = field(default_factory=dict)

    def context(self, id_map: Mapping[str, str] | None = None) -> ActionContext:
        """A fresh context whose binding has private ids replaced through *id_map*."""
        id_map = id_map or {}
        binding = {rule_id: id_map.get(stage_id, stage_id) for rule_id, stage_id in self.binding.items()}
        return ActionContext(actor_id=self.actor_id, origin=self.origin, binding=binding)

    def __repr__(self) -> str:
        return f"Batch(actor={self.actor_id}, rule={self.rule_id}, actions={len(self.actions)})"

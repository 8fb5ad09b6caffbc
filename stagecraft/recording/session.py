"""Record-by-demonstration session.

A session brackets one demonstration: it freezes the ``before`` World when it
begins, accepts the author's edited ``after`` World, lets the author adjust the
extent, ignored cells, conditions and operation preferences, and finally
turns the demonstration into a Rule.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from stagecraft.core.enums import GLOBALS_ACTOR_ID, MathOperation
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import Actor, World, actor_filled_points, frozen_map
from stagecraft.core.rules import Condition, CreateAction, Rule, action_actor_id
from stagecraft.errors import RecordingError
from stagecraft.recording.diff import SynthesisResult, diff_worlds, main_actor_appearance_condition

logger = logging.getLogger(__name__)


class RecordingSession:
    """Mutable state of one demonstration. Both worlds stay immutable snapshots."""

    __slots__ = ("_actor_id", "_before", "_after", "_extent", "_conditions", "_preferences", "_active")

    def __init__(self, world: World, actor_id: str) -> None:
        stage = world.current_stage()
        actor = stage.actors.get(actor_id) if stage is not None else None
        if actor is None:
            raise RecordingError(f"actor {actor_id!r} is not on the current stage")

        self._actor_id = actor_id
        self._before = world
        self._after = world
        self._extent = Extent.around(actor_filled_points(actor, world.characters.get(actor.character_id)))
        self._conditions: list[Condition] = [main_actor_appearance_condition(actor)]
        self._preferences: dict[tuple[str, str], MathOperation] = {}
        self._active = True

    @classmethod
    def begin(cls, world: World, actor_id: str) -> RecordingSession:
        logger.info("Recording started for actor %s", actor_id)
        return cls(world, actor_id)

    # -- state --

    @property
    def actor_id(self) -> str:
        return self._actor_id

    @property
    def active(self) -> bool:
        return self._active

    @property
    def before(self) -> World:
        return self._before

    @property
    def after(self) -> World:
        return self._after

    @property
    def extent(self) -> Extent:
        return self._extent

    @property
    def conditions(self) -> tuple[Condition, ...]:
        return tuple(self._conditions)

    @property
    def preferences(self) -> dict[tuple[str, str], MathOperation]:
        return dict(self._preferences)

    def _main_actor(self) -> Actor:
        return self._before.current_stage().actors[self._actor_id]

    def _require_active(self) -> None:
        if not self._active:
            raise RecordingError("recording session is no longer active")

    # -- editing --

    def update_after(self, world: World) -> None:
        """Replace the demonstrated ``after`` World."""
        self._require_active()
        self._after = world

    def set_extent(self, extent: Extent) -> None:
        """Set the extent, grown if needed so it still covers the main actor."""
        self._require_active()
        self._extent = extent.including(self._main_actor().position)

    def toggle_ignored(self, pos: Position) -> None:
        self._require_active()
        self._extent = self._extent.toggled(pos)

    def upsert_condition(self, condition: Condition) -> None:
        """Insert or replace by key; a disabled condition is removed instead."""
        self._require_active()
        if not condition.enabled:
            self.remove_condition(condition.key)
            return
        for i, existing in enumerate(self._conditions):
            if existing.key == condition.key:
                self._conditions[i] = condition
                return
        self._conditions.append(condition)

    def remove_condition(self, key: str) -> None:
        self._require_active()
        self._conditions = [c for c in self._conditions if c.key != key]

    def set_operation(self, actor_id: str, variable_id: str, operation: MathOperation) -> None:
        """Prefer *operation* for changes of *variable_id* (use actor id ``globals`` for globals)."""
        self._require_active()
        self._preferences[(actor_id, variable_id)] = operation

    def set_global_operation(self, global_id: str, operation: MathOperation) -> None:
        self.set_operation(GLOBALS_ACTOR_ID, global_id, operation)

    # -- output --

    def synthesize(self) -> SynthesisResult:
        self._require_active()
        result = diff_worlds(self._before, self._after, self._extent, self._actor_id, self._preferences)
        if not result.ok:
            return result
        return replace(result, conditions=tuple(self._conditions))

    def cancel(self) -> None:
        """Abandon the demonstration; the after World is dropped."""
        self._after = self._before
        self._active = False
        logger.info("Recording for actor %s cancelled", self._actor_id)

    def finish(self, name: str = "Untitled Rule", rule_id: str | None = None) -> Rule:
        """Build the Rule the demonstration describes and end the session.

        Rule actors are the ``before`` actors touching the extent, repositioned
        relative to the main actor; the extent is expressed in the same frame.
        The extent is first grown over the ``before`` footprint of every actor an
        action addresses, so an actor that only entered the extent in ``after``
        is still bound by the rule.
        """
        result = self.synthesize()
        if not result.ok:
            raise RecordingError(result.reason)

        world = self._before
        stage = world.current_stage()
        origin = result.origin
        extent = self._extent
        for action in result.actions:
            addressed = stage.actors.get(action_actor_id(action) or "")
            if addressed is None or isinstance(action, CreateAction):
                continue
            for p in actor_filled_points(addressed, world.characters.get(addressed.character_id)):
                extent = extent.including(p)
        if extent != self._extent:
            logger.debug("Rule extent grown to %s to bind every addressed actor", extent)

        rule_actors: dict[str, Actor] = {}
        for actor in stage.actors.values():
            points = actor_filled_points(actor, world.characters.get(actor.character_id))
            if actor.id == self._actor_id or any(extent.contains(p) for p in points):
                rule_actors[actor.id] = replace(actor, position=actor.position - origin)

        rule = Rule(
            id=rule_id or f"rule-{uuid.uuid4().hex[:12]}",
            name=name,
            conditions=result.conditions,
            actions=result.actions,
            main_actor_id=self._actor_id,
            actors=frozen_map(rule_actors),
            extent=extent.shifted(Position(-origin.x, -origin.y)),
        )
        self._active = False
        logger.info("Recording finished: rule %s with %d action(s)", rule.id, len(rule.actions))
        return rule

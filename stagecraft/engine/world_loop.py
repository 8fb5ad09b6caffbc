"""Tick engine: advances a World by one tick and steps it back.

Tick phases:
  1. Input: derive the ``keypress`` and ``click`` globals from frame input
  2. Evaluate: walk every actor of the current stage against the tick-start snapshot
  3. Apply: replay all collected action batches, actor order first, onto one draft
  4. Advance: clear input, bump the tick, remember the start state for step-back
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from stagecraft.actions.base import ActionBatch
from stagecraft.config import DEFAULT_CONFIG, EngineConfig
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import GLOBAL_CLICK, GLOBAL_KEYPRESS, GlobalType
from stagecraft.core.models import FrameInput, World
from stagecraft.core.rules import Action
from stagecraft.engine.applier import ActionApplier
from stagecraft.engine.history import History, HistoryItem
from stagecraft.engine.trace import TickTrace
from stagecraft.engine.walker import walk_rule_tree
from stagecraft.errors import TickError
from stagecraft.systems.rng import DeterministicRNG

if TYPE_CHECKING:
    from stagecraft.utils.replay import ReplayRecorder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TickResult:
    """The next World plus everything learned while computing it."""

    world: World
    trace: TickTrace = field(default_factory=TickTrace)
    applied: list[ActionBatch] = field(default_factory=list)
    rejected: list[Action] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)  # actor id -> error message

    @property
    def matched(self) -> bool:
        return self.trace.any_passed


def _with_input_globals(world: World) -> World:
    draft = WorldDraft(world)
    draft.ensure_global(GLOBAL_KEYPRESS, "Key Pressed", ",".join(world.input.keys), GlobalType.KEY)
    draft.ensure_global(GLOBAL_CLICK, "Clicked Actor", world.input.clicks[0] if world.input.clicks else "", GlobalType.ACTOR)
    return draft.freeze()


def advance_tick(
    world: World,
    rng: DeterministicRNG,
    history: History | None = None,
    config: EngineConfig | None = None,
) -> TickResult:
    """Compute the next World.

    Every actor is evaluated against the same tick-start snapshot, so one
    actor's actions never influence another actor's matching in the same
    tick. The collected batches are then applied in actor order, each batch
    in its own action order. An actor whose rule tree fails is skipped and
    reported in ``TickResult.errors``; in strict mode a ``TickError`` is
    raised once the tick is complete.
    """
    config = config or DEFAULT_CONFIG
    if world.current_stage() is None:
        logger.debug("Tick %d: no stage to simulate", world.tick)
        return TickResult(world)

    start = _with_input_globals(world)
    stage = start.current_stage()
    trace = TickTrace()
    batches: list[ActionBatch] = []
    errors: dict[str, str] = {}

    for actor in stage.actors.values():
        character = start.characters.get(actor.character_id)
        if character is None:
            logger.debug("Tick %d: actor %s has unknown character %r", start.tick, actor.id, actor.character_id)
            continue
        try:
            walk = walk_rule_tree(character, actor, start, rng, config)
        except Exception as exc:
            logger.exception("Tick %d: rule evaluation failed for actor %s, skipping", start.tick, actor.id)
            errors[actor.id] = str(exc)
            continue
        for node_id, details in walk.details.items():
            trace.record(actor.id, node_id, details)
        batches.extend(walk.batches)

    draft = WorldDraft(start)
    applier = ActionApplier(draft)
    # created-actor ids from each walker's private draft, per acting actor
    id_maps: dict[str, dict[str, str]] = {}
    for batch in batches:
        applier.apply_batch(batch, id_maps.setdefault(batch.actor_id, {}))

    next_world = replace(draft.freeze(), input=FrameInput(), tick=start.tick + 1)

    if history is not None and trace.any_passed:
        item = HistoryItem.capture(world)
        if item is not None:
            history.push(item)

    result = TickResult(next_world, trace, batches, applier.rejected, errors)
    if errors and config.strict:
        raise TickError(result)
    return result


def step_back(world: World, history: History) -> World:
    """Restore the most recent history item; a no-op when history is empty."""
    item = history.pop()
    if item is None:
        return world
    return item.restore(world)


def save_initial_game_state(world: World, stage_id: str, thumbnail: str = "") -> World:
    """Record the stage's current actors (and a thumbnail) as its reset point."""
    stage = world.stages.get(stage_id)
    if stage is None:
        logger.debug("save_initial_game_state: unknown stage %r", stage_id)
        return world
    return world.with_stage(replace(stage, start_actors=stage.actors, start_thumbnail=thumbnail))


def restore_initial_game_state(world: World, stage_id: str) -> World:
    """Put the stage back to its reset point; a no-op when none was saved."""
    stage = world.stages.get(stage_id)
    if stage is None or stage.start_actors is None:
        return world
    return world.with_stage(stage.with_actors(stage.start_actors))


class WorldLoop:
    """Play/step-mode driver owning one World, its history and its RNG.

    The loop is the only writer of its World; callers serialize calls.
    """

    __slots__ = ("_config", "_world", "_rng", "_history", "_recorder", "_last_result")

    def __init__(
        self,
        config: EngineConfig,
        world: World,
        rng: DeterministicRNG | None = None,
        recorder: ReplayRecorder | None = None,
    ) -> None:
        self._config = config
        self._world = world
        self._rng = rng or DeterministicRNG(config.seed)
        self._history = History(config.history_limit)
        self._recorder = recorder
        self._last_result: TickResult | None = None

    @property
    def world(self) -> World:
        return self._world

    @property
    def history(self) -> History:
        return self._history

    @property
    def last_result(self) -> TickResult | None:
        """Result of the most recent tick."""
        return self._last_result

    def set_input(self, keys: tuple[str, ...] = (), clicks: tuple[str, ...] = ()) -> None:
        self._world = replace(self._world, input=FrameInput(tuple(keys), tuple(clicks)))

    def tick_once(self) -> TickResult:
        try:
            result = advance_tick(self._world, self._rng, self._history, self._config)
        except TickError as err:
            self._accept(err.result)
            raise
        self._accept(result)
        return result

    def _accept(self, result: TickResult) -> None:
        self._world = result.world
        self._last_result = result
        if self._recorder is not None:
            self._recorder.record_tick(result)

    def step_back(self) -> World:
        self._world = step_back(self._world, self._history)
        return self._world

    def reset(self) -> World:
        """Return the current stage to its saved initial state and forget history."""
        stage_id = self._world.current_stage_id
        if stage_id is not None:
            self._world = restore_initial_game_state(self._world, stage_id)
        self._history.clear()
        return self._world

    def run(self, max_ticks: int | None = None) -> World:
        """Tick until *max_ticks* (default ``config.max_ticks``) ticks have run."""
        ticks = self._config.max_ticks if max_ticks is None else max_ticks
        logger.info("=== Play started (seed=%d, ticks=%d) ===", self._rng.seed, ticks)
        try:
            for _ in range(ticks):
                result = self.tick_once()
                if result.world.tick % 50 == 0:
                    stage = result.world.current_stage()
                    logger.info(
                        "Tick %d: %d actors on stage",
                        result.world.tick,
                        len(stage.actors) if stage is not None else 0,
                    )
        finally:
            if self._recorder is not None:
                self._recorder.flush()
        logger.info("=== Play finished at tick %d ===", self._world.tick)
        return self._world

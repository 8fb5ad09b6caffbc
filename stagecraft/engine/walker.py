"""Per-actor rule tree traversal.

The walker evaluates one actor's rule tree against a private draft of the
world. Matched rules apply to that draft immediately, so later nodes (and
later LOOP iterations) of the same actor observe earlier effects. Every
matched rule is also recorded as an ``ActionBatch`` for the tick engine,
which replays all actors' batches onto the shared next-world draft.

Top-level nodes behave like a FIRST group: they are tried in declaration
order and the first node that matches ends the walk.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType

from stagecraft.actions.base import ActionBatch, ActionContext
from stagecraft.config import DEFAULT_CONFIG, EngineConfig
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import Behavior, Domain, EventKind, FailReason
from stagecraft.core.models import Actor, Character, World
from stagecraft.core.rules import EventGroup, FlowGroup, Rule, RuleNode
from stagecraft.core.values import parse_number
from stagecraft.engine.applier import ActionApplier
from stagecraft.engine.evaluator import read_actor_variable
from stagecraft.engine.matcher import match_scenario
from stagecraft.engine.trace import RuleDetails
from stagecraft.errors import RuleTreeInvariantError
from stagecraft.systems.rng import DeterministicRNG

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalkResult:
    """What one actor's rule tree produced this tick."""

    batches: list[ActionBatch] = field(default_factory=list)
    details: dict[str, RuleDetails] = field(default_factory=dict)
    world: World | None = None  # the actor's private view after its own actions

    @property
    def matched(self) -> bool:
        return bool(self.batches)


def walk_rule_tree(
    character: Character,
    actor: Actor,
    world: World | WorldDraft,
    rng: DeterministicRNG,
    config: EngineConfig | None = None,
) -> WalkResult:
    """Evaluate *character*'s rule tree for *actor* and collect its action batches."""
    base = world.freeze() if isinstance(world, WorldDraft) else world
    return RuleTreeWalker(character, actor.id, base, rng, config or DEFAULT_CONFIG).walk()


class RuleTreeWalker:
    """Single-use walker for one actor in one tick."""

    __slots__ = ("_character", "_actor_id", "_base", "_draft", "_rng", "_config", "_applier", "_result", "_visits")

    def __init__(
        self,
        character: Character,
        actor_id: str,
        world: World,
        rng: DeterministicRNG,
        config: EngineConfig,
    ) -> None:
        self._character = character
        self._actor_id = actor_id
        self._base = world
        self._draft = WorldDraft(world)
        self._rng = rng
        self._config = config
        self._applier = ActionApplier(self._draft)
        self._result = WalkResult()
        self._visits: dict[str, int] = {}

    def walk(self) -> WalkResult:
        self._first(self._character.rules)
        self._result.world = self._draft.freeze()
        return self._result

    # -- behaviors --

    def _first(self, nodes: tuple[RuleNode, ...] | list[RuleNode]) -> bool:
        for node in nodes:
            if self._tick_node(node):
                return True
        return False

    def _all(self, nodes: tuple[RuleNode, ...]) -> bool:
        matched = False
        for node in nodes:
            if self._tick_node(node):
                matched = True
        return matched

    # -- nodes --

    def _record(self, node_id: str, details: RuleDetails) -> None:
        self._result.details[node_id] = details

    def _tick_node(self, node: RuleNode) -> bool:
        actor = self._draft.get_actor(self._actor_id)
        if actor is None:
            # deleted by one of its own earlier rules
            return False
        match node:
            case Rule():
                return self._tick_rule(node, actor)
            case EventGroup():
                return self._tick_event_group(node, actor)
            case FlowGroup():
                return self._tick_flow_group(node, actor)
            case _:
                raise RuleTreeInvariantError(getattr(node, "id", "?"), f"unknown node type {type(node).__name__}")

    def _tick_rule(self, rule: Rule, actor: Actor) -> bool:
        if not rule.enabled:
            self._record(rule.id, RuleDetails(passed=False, failed_at=FailReason.DISABLED))
            return False

        outcome = match_scenario(rule, actor, self._draft)
        self._record(rule.id, outcome.details)
        if not outcome.passed:
            logger.debug("Rule %s failed for %s at %s", rule.id, actor.id, outcome.details.failed_at)
            return False

        ctx = ActionContext(actor.id, actor.position, dict(outcome.binding))
        self._applier.apply(rule.actions, ctx)
        batch = ActionBatch(
            actor_id=actor.id,
            rule_id=rule.id,
            origin=actor.position,
            binding=MappingProxyType(dict(outcome.binding)),
            actions=rule.actions,
            created=MappingProxyType(dict(ctx.created)),
        )
        self._result.batches.append(batch)
        return True

    def _tick_event_group(self, group: EventGroup, actor: Actor) -> bool:
        if not self._event_fired(group, actor):
            self._record(group.id, RuleDetails(passed=False, failed_at=FailReason.EVENT_NOT_FIRED))
            return False
        matched = self._all(group.children)
        self._record(group.id, RuleDetails(passed=matched))
        return matched

    def _event_fired(self, group: EventGroup, actor: Actor) -> bool:
        frame_input = self._base.input
        match group.event:
            case EventKind.IDLE:
                return True
            case EventKind.KEY:
                return group.code is not None and group.code in frame_input.keys
            case EventKind.CLICK:
                return actor.id in frame_input.clicks
            case _:
                raise RuleTreeInvariantError(group.id, f"unknown event {group.event!r}")

    def _tick_flow_group(self, group: FlowGroup, actor: Actor) -> bool:
        if not group.enabled:
            self._record(group.id, RuleDetails(passed=False, failed_at=FailReason.DISABLED))
            return False

        if group.check is not None:
            check = match_scenario(group.check, actor, self._draft)
            self._record(group.check.id, check.details)
            if not check.passed:
                self._record(group.id, check.details)
                return False

        match group.behavior:
            case Behavior.FIRST:
                matched = self._first(group.children)
            case Behavior.ALL:
                matched = self._all(group.children)
            case Behavior.RANDOM:
                visit = self._visits.get(group.id, 0)
                self._visits[group.id] = visit + 1
                order = self._rng.shuffled(
                    group.children,
                    Domain.FLOW_RANDOM,
                    key=f"{actor.id}:{group.id}:{visit}",
                    tick=self._base.tick,
                )
                matched = self._first(order)
            case Behavior.LOOP:
                matched = False
                for _ in range(self._loop_count(group, actor)):
                    if not self._first(group.children):
                        break
                    matched = True
            case _:
                raise RuleTreeInvariantError(group.id, f"unknown behavior {group.behavior!r}")

        self._record(group.id, RuleDetails(passed=matched))
        return matched

    def _loop_count(self, group: FlowGroup, actor: Actor) -> int:
        """Iterations for a LOOP group, resolved once on entry and clamped."""
        loop_count = group.loop_count
        if loop_count is None:
            return 1
        count: float | None = None
        if loop_count.variable_id:
            raw = read_actor_variable(actor, self._draft.character_for(actor), loop_count.variable_id)
            count = parse_number(raw)
        elif loop_count.constant is not None:
            count = loop_count.constant
        if count is None or count < 0:
            return 0
        return min(math.floor(count), self._config.max_loop_iterations)

"""Spatial scenario matching for rules and flow-group checks.

A scenario declares rule actors positioned relative to the main actor, who
sits at ``(0, 0)``. Matching walks every cell of the scenario extent around
the acting actor and pairs the stage actors found there with the rule actors
expected there. The result is a binding (rule actor id -> stage actor id)
that conditions and actions resolve through.

Matching is a single pass over the extent. When a condition compares two rule
actors, candidates for the other actor are looked up by position and checked
by character only, which keeps mutually-referencing conditions from
recursing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import FailReason, SquareStatus
from stagecraft.core.geometry import Position
from stagecraft.core.models import Actor, actor_filled_points
from stagecraft.core.rules import (
    ActorValue,
    Condition,
    CreateAction,
    GlobalAction,
    MoveAction,
    Rule,
    Scenario,
    Value,
)
from stagecraft.core.values import comparator_matches
from stagecraft.engine.evaluator import evaluate_conditions, read_actor_variable, resolve_value
from stagecraft.engine.trace import EvaluatedSquare, RuleDetails

logger = logging.getLogger(__name__)

ActorLookup = Callable[[str], list[Actor]]


@dataclass(frozen=True, slots=True)
class ScenarioMatch:
    passed: bool
    binding: Mapping[str, str]
    details: RuleDetails


def match_scenario(scenario: Scenario, actor: Actor, draft: WorldDraft) -> ScenarioMatch:
    """Match *scenario* around *actor* on the draft's stage."""
    if not scenario.actors:
        return _match_conditions_only(scenario, actor, draft)
    return _SpatialMatch(scenario, actor, draft).run()


def _offsets_valid(scenario: Scenario, origin: Position, draft: WorldDraft) -> bool:
    if not isinstance(scenario, Rule):
        return True
    for action in scenario.actions:
        offset = action.offset if isinstance(action, (CreateAction, MoveAction)) else None
        if offset is not None and draft.wrapped_position(origin + offset) is None:
            return False
    return True


def _match_conditions_only(scenario: Scenario, actor: Actor, draft: WorldDraft) -> ScenarioMatch:
    binding = {scenario.main_actor_id: actor.id}
    failed_at: FailReason | None = None
    if not _offsets_valid(scenario, actor.position, draft):
        failed_at = FailReason.ACTION_OFFSET_INVALID
    passed, conditions = evaluate_conditions(scenario.conditions, draft, actor.id, binding)
    if not passed and failed_at is None:
        failed_at = FailReason.CONDITION_FAILED
    details = RuleDetails(
        passed=failed_at is None,
        failed_at=failed_at,
        conditions=conditions,
        matched_actors=tuple(binding.items()),
    )
    return ScenarioMatch(failed_at is None, binding, details)


class _SpatialMatch:
    """One matching attempt; holds the partial binding while the extent is walked."""

    __slots__ = ("_scenario", "_me", "_draft", "_binding", "_squares", "_failed_at", "_stage_cells")

    def __init__(self, scenario: Scenario, me: Actor, draft: WorldDraft) -> None:
        self._scenario = scenario
        self._me = me
        self._draft = draft
        self._binding: dict[str, str] = {scenario.main_actor_id: me.id}
        self._squares: list[EvaluatedSquare] = []
        self._failed_at: FailReason | None = None
        self._stage_cells = {
            a.id: {p.as_tuple() for p in actor_filled_points(a, draft.character_for(a))}
            for a in draft.actors.values()
        }

    def run(self) -> ScenarioMatch:
        scenario = self._scenario
        for cell in scenario.extent.cells():
            self._match_square(cell)

        missing = False
        if self._failed_at is not FailReason.EXTENT_SQUARE:
            for rule_actor_id in self._required_actor_ids():
                if rule_actor_id not in self._binding:
                    missing = True
                    logger.debug("Scenario %s: required actor %r not found", scenario.id, rule_actor_id)
                    self._fail(FailReason.MISSING_REQUIRED_ACTOR)
                    break

        if self._failed_at is None and not _offsets_valid(scenario, self._me.position, self._draft):
            self._fail(FailReason.ACTION_OFFSET_INVALID)

        conditions = ()
        if not missing:
            passed, conditions = evaluate_conditions(scenario.conditions, self._draft, self._me.id, self._binding)
            if not passed:
                self._fail(FailReason.CONDITION_FAILED)

        passed = self._failed_at is None
        details = RuleDetails(
            passed=passed,
            failed_at=self._failed_at,
            conditions=conditions,
            squares=tuple(self._squares),
            matched_actors=tuple(self._binding.items()),
        )
        return ScenarioMatch(passed, dict(self._binding), details)

    def _fail(self, reason: FailReason) -> None:
        if self._failed_at is None:
            self._failed_at = reason

    # -- squares --

    def _match_square(self, cell: Position) -> None:
        scenario = self._scenario
        ignored = scenario.extent.is_ignored(cell)
        unwrapped = self._me.position + cell
        wrapped = self._draft.wrapped_position(unwrapped)
        if wrapped is None:
            self._squares.append(EvaluatedSquare(cell.x, cell.y, False, SquareStatus.OFFSCREEN))
            self._fail(FailReason.EXTENT_SQUARE)
            return

        stage_here = [
            a for a in self._draft.actors.values()
            if unwrapped.as_tuple() in self._stage_cells[a.id] or wrapped.as_tuple() in self._stage_cells[a.id]
        ]
        rule_here = [a for a in scenario.actors.values() if self._rule_actor_fills(a, cell)]

        if len(stage_here) != len(rule_here) and not ignored:
            self._squares.append(
                EvaluatedSquare(
                    cell.x, cell.y, False, SquareStatus.ACTOR_COUNT_MISMATCH, len(rule_here), len(stage_here)
                )
            )
            self._fail(FailReason.EXTENT_SQUARE)
            return

        used: set[str] = set()
        square_passed = True
        for stage_actor in stage_here:
            chosen = self._pick_rule_actor(stage_actor, rule_here, used)
            if chosen is not None:
                self._binding[chosen.id] = stage_actor.id
                used.add(chosen.id)
            elif not ignored:
                square_passed = False

        if square_passed:
            self._squares.append(EvaluatedSquare(cell.x, cell.y, True))
        else:
            self._squares.append(
                EvaluatedSquare(
                    cell.x, cell.y, False, SquareStatus.ACTOR_MATCH_FAILED, len(rule_here), len(stage_here)
                )
            )
            self._fail(FailReason.EXTENT_SQUARE)

    def _pick_rule_actor(self, stage_actor: Actor, candidates: list[Actor], used: set[str]) -> Actor | None:
        main_id = self._scenario.main_actor_id
        if stage_actor.id == self._me.id:
            for candidate in candidates:
                if candidate.id == main_id and candidate.id not in used:
                    return candidate
        open_candidates = [c for c in candidates if c.id not in used and c.id != main_id]
        # full match (character + conditions) first, then character only
        for candidate in open_candidates:
            if self._actors_match(stage_actor, candidate, self._lookup):
                return candidate
        for candidate in open_candidates:
            if candidate.character_id == stage_actor.character_id:
                return candidate
        return None

    def _rule_actor_fills(self, rule_actor: Actor, cell: Position) -> bool:
        character = self._draft.characters.get(rule_actor.character_id)
        return cell in actor_filled_points(rule_actor, character)

    # -- actor matching --

    def _actors_match(self, stage_actor: Actor, rule_actor: Actor, lookup: ActorLookup | None) -> bool:
        if stage_actor.character_id != rule_actor.character_id:
            return False
        if lookup is None:
            return True

        for condition in self._scenario.conditions:
            if not condition.enabled or not condition.references_actor(rule_actor.id):
                continue
            if not self._condition_holds_for_some(condition, lookup):
                return False
        return True

    def _condition_holds_for_some(self, condition: Condition, lookup: ActorLookup) -> bool:
        lefts = self._candidate_values(condition.left, condition, lookup)
        rights = self._candidate_values(condition.right, condition, lookup)
        return any(comparator_matches(condition.comparator, a, b) for a in lefts for b in rights)

    def _candidate_values(self, value: Value, condition: Condition, lookup: ActorLookup) -> list[str | None]:
        if isinstance(value, ActorValue):
            return [
                read_actor_variable(a, self._draft.character_for(a), value.variable_id, condition.comparator)
                for a in lookup(value.actor_id)
            ]
        return [resolve_value(value, self._draft, self._binding, condition.comparator)]

    def _lookup(self, rule_actor_id: str) -> list[Actor]:
        bound = self._binding.get(rule_actor_id)
        if bound is not None:
            actor = self._draft.get_actor(bound)
            return [actor] if actor is not None else []
        template = self._scenario.actors.get(rule_actor_id)
        if template is None:
            return []
        pos = self._draft.wrapped_position(self._me.position + template.position)
        if pos is None:
            return []
        return [
            a for a in self._draft.actors.values()
            if a.position == pos and self._actors_match(a, template, None)
        ]

    def _required_actor_ids(self) -> list[str]:
        scenario = self._scenario
        required: list[str] = []
        if isinstance(scenario, Rule):
            for action in scenario.actions:
                if isinstance(action, (GlobalAction, CreateAction)):
                    continue
                if action.actor_id in scenario.actors:
                    required.append(action.actor_id)
        for condition in scenario.conditions:
            for side in (condition.left, condition.right):
                if not isinstance(side, ActorValue):
                    continue
                template = scenario.actors.get(side.actor_id)
                if template is None or not self._intersects_extent(template):
                    continue
                required.append(side.actor_id)
        return required

    def _intersects_extent(self, template: Actor) -> bool:
        character = self._draft.characters.get(template.character_id)
        return any(self._scenario.extent.contains(p) for p in actor_filled_points(template, character))

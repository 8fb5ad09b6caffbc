"""Tests for spatial scenario matching.

Covers:
- Rule actors bound by position and character
- Extent squares: count mismatch, offscreen, ignored cells
- Wrapping stages
- Required actors and action offsets
- Conditions between rule actors
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import FailReason, SquareStatus
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import Actor, frozen_map
from stagecraft.core.rules import DeleteAction, MoveAction
from stagecraft.engine.matcher import match_scenario
from tests.helpers.stage_arena import StageArena, cond, const, rule, var


def _template(actor_id: str, character_id: str, x: int, y: int, **values) -> Actor:
    return Actor(
        id=actor_id,
        character_id=character_id,
        position=Position(x, y),
        variable_values=frozen_map({k: str(v) for k, v in values.items()}),
    )


def _eat_rule(**kwargs):
    """Hero eats the coin directly to its right."""
    defaults = dict(
        actions=[DeleteAction(actor_id="target")],
        actors=frozen_map({"main": _template("main", "hero", 0, 0), "target": _template("target", "coin", 1, 0)}),
        extent=Extent(0, 1, 0, 0),
    )
    defaults.update(kwargs)
    return rule("eat", **defaults)


def _match(world, scenario, actor_id="h1"):
    draft = WorldDraft(world)
    return match_scenario(scenario, draft.get_actor(actor_id), draft)


def _arena(**kwargs) -> StageArena:
    arena = StageArena(width=10, height=10, **kwargs)
    arena.add_character("hero")
    arena.add_character("coin", variables={"value": "1"})
    arena.add_character("rock")
    return arena


class TestBinding:
    """Rule actors are paired with the stage actors found at their cells."""

    def test_binds_target(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        arena.add_actor("c1", "coin", pos=(3, 2))
        result = _match(arena.build(), _eat_rule())
        assert result.passed
        assert result.binding == {"main": "h1", "target": "c1"}
        assert result.details.failed_at is None
        assert all(sq.passed for sq in result.details.squares)

    def test_wrong_character_fails(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        arena.add_actor("r1", "rock", pos=(3, 2))
        result = _match(arena.build(), _eat_rule())
        assert not result.passed
        assert result.details.failed_at == FailReason.EXTENT_SQUARE
        failed = [sq for sq in result.details.squares if not sq.passed]
        assert [(sq.x, sq.y, sq.status) for sq in failed] == [(1, 0, SquareStatus.ACTOR_MATCH_FAILED)]

    def test_empty_square_fails_with_counts(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        result = _match(arena.build(), _eat_rule())
        assert not result.passed
        square = next(sq for sq in result.details.squares if not sq.passed)
        assert square.status == SquareStatus.ACTOR_COUNT_MISMATCH
        assert (square.expected_actor_count, square.actual_actor_count) == (1, 0)

    def test_extra_actor_in_extent_fails(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        arena.add_actor("c1", "coin", pos=(3, 2))
        arena.add_actor("r1", "rock", pos=(3, 2))
        assert not _match(arena.build(), _eat_rule()).passed

    def test_actors_outside_extent_are_ignored(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        arena.add_actor("c1", "coin", pos=(3, 2))
        arena.add_actor("r1", "rock", pos=(4, 2))
        assert _match(arena.build(), _eat_rule()).passed


class TestExtentEdges:
    def test_offscreen_square_fails(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(9, 2))
        result = _match(arena.build(), _eat_rule())
        assert not result.passed
        assert any(sq.status == SquareStatus.OFFSCREEN for sq in result.details.squares)

    def test_wrapping_stage_wraps_squares(self):
        arena = _arena(wrap_x=True)
        arena.add_actor("h1", "hero", pos=(9, 2))
        arena.add_actor("c1", "coin", pos=(0, 2))
        result = _match(arena.build(), _eat_rule())
        assert result.passed
        assert result.binding["target"] == "c1"

    def test_ignored_cell_tolerates_changes(self):
        """A cell marked ignored accepts any content, matching or not."""
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(1, 1))
        arena.add_actor("r1", "rock", pos=(3, 3))
        scenario = rule(
            "stand",
            actors=frozen_map({"main": _template("main", "hero", 0, 0)}),
            extent=Extent(0, 2, 0, 2, frozenset({(2, 2)})),
        )
        strict = rule("stand", actors=scenario.actors, extent=Extent(0, 2, 0, 2))
        world = arena.build()
        assert _match(world, scenario).passed
        assert not _match(world, strict).passed

    def test_ignored_cell_tolerates_missing_actor(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        scenario = _eat_rule(actions=[], extent=Extent(0, 1, 0, 0, frozenset({(1, 0)})))
        assert _match(arena.build(), scenario).passed


class TestRequirements:
    def test_action_offset_off_stage_fails(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(8, 0))
        scenario = rule("jump", actions=[MoveAction(actor_id="main", offset=Position(5, 0))])
        result = _match(arena.build(), scenario)
        assert not result.passed
        assert result.details.failed_at == FailReason.ACTION_OFFSET_INVALID

    def test_conditions_only_rule_binds_main(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(8, 0))
        result = _match(arena.build(), rule("idle"))
        assert result.passed
        assert result.binding == {"main": "h1"}

    def test_condition_on_rule_actor(self):
        arena = _arena()
        arena.add_actor("h1", "hero", pos=(2, 2))
        arena.add_actor("c1", "coin", pos=(3, 2), variables={"value": "5"})
        world = arena.build()

        rich = _eat_rule(conditions=[cond("rich", var("target", "value"), ">", const(3))])
        poor = _eat_rule(conditions=[cond("poor", var("target", "value"), "<", const(3))])

        assert _match(world, rich).passed
        result = _match(world, poor)
        assert not result.passed
        assert result.details.failed_at == FailReason.CONDITION_FAILED
        assert result.details.conditions[0].left_value == "5"

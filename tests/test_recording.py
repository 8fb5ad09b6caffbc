"""Tests for record-by-demonstration.

Covers:
- diff_worlds: move + variable round trip, create/delete symmetry, globals
- Stable output order and operation preferences
- Missing anchor actor
- RecordingSession: extent, ignored cells, conditions, finish → playable Rule
- Value-change operand helper
"""

import sys
import os
from dataclasses import replace

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import MathOperation, Transform
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.rules import (
    AppearanceAction,
    CreateAction,
    DeleteAction,
    GlobalAction,
    MoveAction,
    TransformAction,
    VariableAction,
)
from stagecraft.engine.applier import apply_actions
from stagecraft.engine.world_loop import advance_tick
from stagecraft.errors import RecordingError
from stagecraft.recording import (
    RecordingSession,
    diff_worlds,
    operand_for_value_change,
)
from stagecraft.recording.diff import MAIN_APPEARANCE_CONDITION_KEY
from stagecraft.systems.rng import DeterministicRNG
from tests.helpers.stage_arena import StageArena, cond, const, var


def _arena() -> StageArena:
    arena = StageArena(width=10, height=10)
    arena.add_character("hero", variables={"hp": "2"}, appearances={"idle": "Idle", "happy": "Happy"})
    arena.add_character("coin", variables={"value": "1"})
    arena.add_actor("hero-1", "hero", pos=(3, 3), variables={"hp": "2"})
    arena.add_global("score", "0")
    return arena


def _edit(world, actor_id, **changes):
    """Return *world* with one actor of the current stage replaced."""
    draft = WorldDraft(world)
    draft.put_actor(replace(draft.get_actor(actor_id), **changes))
    return draft.freeze()


def _stage_actor(world, actor_id):
    return world.current_stage().actors.get(actor_id)


class TestDiff:
    """diff_worlds turns a before/after pair into actions."""

    def test_move_and_set_round_trip(self):
        before = _arena().build()
        after = _edit(
            before,
            "hero-1",
            position=Position(5, 2),
            variable_values=before.current_stage().actors["hero-1"].with_variable("hp", "7").variable_values,
        )
        result = diff_worlds(before, after, Extent(3, 5, 2, 3), "hero-1")

        assert result.ok
        assert result.origin == Position(3, 3)
        assert result.actions == (
            MoveAction(actor_id="hero-1", offset=Position(2, -1)),
            VariableAction(actor_id="hero-1", variable_id="hp", value=const("7"), operation=MathOperation.SET),
        )

        replayed = apply_actions(result.actions, before, ActionContext.for_actor(_stage_actor(before, "hero-1")))
        assert _stage_actor(replayed, "hero-1") == _stage_actor(after, "hero-1")

    def test_appearance_and_transform(self):
        before = _arena().build()
        after = _edit(before, "hero-1", appearance="happy", transform=Transform.ROT_90)
        result = diff_worlds(before, after, Extent(3, 3, 3, 3), "hero-1")
        assert result.actions == (
            AppearanceAction(actor_id="hero-1", value=const("happy")),
            TransformAction(actor_id="hero-1", value=const("90")),
        )

    def test_create_delete_symmetry(self):
        arena = _arena()
        arena.add_actor("coin-1", "coin", pos=(4, 3), variables={"value": "3"})
        with_coin = arena.build()
        draft = WorldDraft(with_coin)
        draft.remove_actor("coin-1")
        without_coin = draft.freeze()
        extent = Extent(3, 4, 3, 3)

        deleted = diff_worlds(with_coin, without_coin, extent, "hero-1")
        assert deleted.actions == (DeleteAction(actor_id="coin-1"),)

        created = diff_worlds(without_coin, with_coin, extent, "hero-1")
        assert len(created.actions) == 1
        create = created.actions[0]
        assert isinstance(create, CreateAction)
        assert create.character_id == "coin"
        assert create.offset == Position(1, 0)

        restored = apply_actions(created.actions, without_coin, ActionContext.for_actor(_stage_actor(without_coin, "hero-1")))
        coins = [a for a in restored.current_stage().actors.values() if a.character_id == "coin"]
        assert len(coins) == 1
        assert coins[0].position == Position(4, 3)
        assert coins[0].variable_values["value"] == "3"

    def test_actors_outside_extent_are_ignored(self):
        arena = _arena()
        arena.add_actor("far", "coin", pos=(9, 9))
        before = arena.build()
        after = _edit(before, "far", position=Position(8, 9))
        assert diff_worlds(before, after, Extent(3, 4, 3, 4), "hero-1").actions == ()

    def test_actor_moving_into_extent_counts(self):
        arena = _arena()
        arena.add_actor("c", "coin", pos=(9, 9))
        before = arena.build()
        after = _edit(before, "c", position=Position(4, 3))
        result = diff_worlds(before, after, Extent(3, 4, 3, 3), "hero-1")
        assert result.actions == (MoveAction(actor_id="c", offset=Position(1, 0)),)

    def test_globals(self):
        before = _arena().build()
        draft = WorldDraft(before)
        draft.set_global("score", "1")
        draft.set_global("keypress", "Space")
        after = draft.freeze()
        result = diff_worlds(before, after, Extent(3, 3, 3, 3), "hero-1")
        assert result.actions == (GlobalAction(global_id="score", value=const("1"), operation=MathOperation.SET),)

    def test_preferences_pick_operation(self):
        before = _arena().build()
        after = _edit(before, "hero-1", variable_values=_stage_actor(before, "hero-1").with_variable("hp", "7").variable_values)
        result = diff_worlds(before, after, Extent(3, 3, 3, 3), "hero-1", {("hero-1", "hp"): MathOperation.ADD})
        assert result.actions == (
            VariableAction(actor_id="hero-1", variable_id="hp", value=const("5"), operation=MathOperation.ADD),
        )

    def test_output_is_stable(self):
        arena = _arena()
        arena.add_actor("c1", "coin", pos=(4, 3))
        arena.add_actor("c2", "coin", pos=(3, 4))
        before = arena.build()
        after = _edit(_edit(before, "c2", position=Position(4, 4)), "c1", appearance="idle")
        extent = Extent(3, 4, 3, 4)
        assert diff_worlds(before, after, extent, "hero-1") == diff_worlds(before, after, extent, "hero-1")

    def test_missing_anchor_cannot_synthesize(self):
        world = _arena().build()
        result = diff_worlds(world, world, Extent(), "nobody")
        assert not result.ok
        assert "cannot synthesize" in result.reason
        assert result.actions == ()

    def test_main_appearance_condition(self):
        world = _arena().build()
        result = diff_worlds(world, world, Extent(3, 3, 3, 3), "hero-1")
        assert [c.key for c in result.conditions] == [MAIN_APPEARANCE_CONDITION_KEY]
        assert result.conditions[0].right == const("idle")


class TestRecordingSession:
    def test_begin_requires_actor(self):
        with pytest.raises(RecordingError):
            RecordingSession.begin(_arena().build(), "ghost")

    def test_initial_extent_is_actor_footprint(self):
        session = RecordingSession.begin(_arena().build(), "hero-1")
        assert session.extent == Extent(3, 3, 3, 3)
        assert [c.key for c in session.conditions] == [MAIN_APPEARANCE_CONDITION_KEY]

    def test_extent_always_covers_main_actor(self):
        session = RecordingSession.begin(_arena().build(), "hero-1")
        session.set_extent(Extent(5, 6, 5, 6))
        assert session.extent == Extent(3, 6, 3, 6)

    def test_toggle_ignored(self):
        session = RecordingSession.begin(_arena().build(), "hero-1")
        session.set_extent(Extent(3, 5, 3, 5))
        session.toggle_ignored(Position(5, 5))
        assert session.extent.sorted_ignored() == [(5, 5)]

    def test_conditions_upsert_and_remove(self):
        session = RecordingSession.begin(_arena().build(), "hero-1")
        session.upsert_condition(cond("hp", var("hero-1", "hp"), ">", const(1)))
        session.upsert_condition(cond("hp", var("hero-1", "hp"), ">", const(0)))
        assert [c.key for c in session.conditions] == [MAIN_APPEARANCE_CONDITION_KEY, "hp"]
        assert session.conditions[1].right == const("0")

        session.upsert_condition(cond("hp", var("hero-1", "hp"), ">", const(0), enabled=False))
        assert [c.key for c in session.conditions] == [MAIN_APPEARANCE_CONDITION_KEY]

    def test_cancel_discards_after(self):
        before = _arena().build()
        session = RecordingSession.begin(before, "hero-1")
        session.update_after(_edit(before, "hero-1", position=Position(4, 3)))
        session.cancel()
        assert session.after is before
        assert not session.active
        with pytest.raises(RecordingError):
            session.finish("late")

    def test_finish_builds_playable_rule(self):
        """The recorded rule reproduces the demonstration when played."""
        arena = _arena()
        before = arena.build()
        hero = _stage_actor(before, "hero-1")
        after = _edit(before, "hero-1", position=Position(5, 2), variable_values=hero.with_variable("hp", "7").variable_values)

        session = RecordingSession.begin(before, "hero-1")
        session.update_after(after)
        session.set_extent(Extent(3, 5, 2, 3))
        rule = session.finish("Jump", rule_id="rule-jump")

        assert rule.id == "rule-jump"
        assert rule.main_actor_id == "hero-1"
        assert rule.actors["hero-1"].position == Position(0, 0)
        assert rule.extent == Extent(0, 2, -1, 0)
        assert not session.active

        character = before.characters["hero"]
        world = replace(
            before,
            characters={"hero": replace(character, rules=(rule,))},
        )
        played = advance_tick(world, DeterministicRNG(1)).world
        assert _stage_actor(played, "hero-1").position == Position(5, 2)
        assert _stage_actor(played, "hero-1").variable_values["hp"] == "7"

    def test_finish_binds_actor_that_moved_into_extent(self):
        """An actor addressed by an action is part of the rule even if it started outside the extent."""
        arena = _arena()
        arena.add_actor("c", "coin", pos=(6, 3))
        before = arena.build()
        after = _edit(before, "c", position=Position(4, 3))

        session = RecordingSession.begin(before, "hero-1")
        session.update_after(after)
        session.set_extent(Extent(3, 4, 3, 3))
        rule = session.finish("Pull", rule_id="rule-pull")

        assert rule.actions == (MoveAction(actor_id="c", offset=Position(1, 0)),)
        assert sorted(rule.actors) == ["c", "hero-1"]
        assert rule.actors["c"].position == Position(3, 0)
        assert rule.extent == Extent(0, 3, 0, 0)

        character = before.characters["hero"]
        world = replace(before, characters={**before.characters, "hero": replace(character, rules=(rule,))})
        played = advance_tick(world, DeterministicRNG(1)).world
        assert _stage_actor(played, "c").position == Position(4, 3)

        draft = WorldDraft(world)
        draft.remove_actor("c")
        without_coin = draft.freeze()
        idle = advance_tick(without_coin, DeterministicRNG(1)).world
        assert _stage_actor(idle, "hero-1").position == Position(3, 3)

    def test_finish_generates_rule_id(self):
        session = RecordingSession.begin(_arena().build(), "hero-1")
        rule = session.finish()
        assert rule.id.startswith("rule-")
        assert rule.actions == ()

    def test_global_operation_preference(self):
        before = _arena().build()
        draft = WorldDraft(before)
        draft.set_global("score", "3")
        session = RecordingSession.begin(before, "hero-1")
        session.update_after(draft.freeze())
        session.set_global_operation("score", MathOperation.ADD)
        result = session.synthesize()
        assert result.actions == (GlobalAction(global_id="score", value=const("3"), operation=MathOperation.ADD),)


class TestHelpers:
    def test_operand(self):
        assert operand_for_value_change("2", "7", MathOperation.SET) == "7"
        assert operand_for_value_change("2", "7", MathOperation.ADD) == "5"
        assert operand_for_value_change("7", "2", MathOperation.SUBTRACT) == "5"
        assert operand_for_value_change("x", "4", MathOperation.ADD) == "4"

"""Tests for sequential action application.

Covers:
- create: fresh ids, variable defaults + overrides, default appearance, binding
- move: offset vs delta, wrapping, off-stage no-op
- delete, and actions that target a deleted actor
- variable / global arithmetic, the ``globals`` pseudo actor
- appearance and transform validation
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import MathOperation, Transform
from stagecraft.core.geometry import Position
from stagecraft.core.models import frozen_map
from stagecraft.core.rules import (
    AppearanceAction,
    CreateAction,
    DeleteAction,
    GlobalAction,
    MoveAction,
    TransformAction,
)
from stagecraft.engine.applier import ActionApplier, apply_actions
from tests.helpers.stage_arena import StageArena, const, move_by, set_var, var


def _arena(**kwargs) -> StageArena:
    arena = StageArena(width=8, height=6, **kwargs)
    arena.add_character("hero", variables={"hp": "10", "mood": "calm"}, appearances={"idle": "Idle", "jump": "Jump"})
    arena.add_character("coin", variables={"value": "1"}, appearances={"shiny": "Shiny", "dull": "Dull"})
    arena.add_actor("h1", "hero", pos=(2, 2), variables={"hp": "5"})
    arena.add_global("score", "0")
    return arena


def _ctx(world, actor_id: str = "h1") -> ActionContext:
    actor = world.current_stage().actors[actor_id]
    return ActionContext.for_actor(actor)


def _actor(world, actor_id):
    return world.current_stage().actors.get(actor_id)


class TestCreate:
    """Create actions spawn actors relative to the rule origin."""

    def test_create_uses_defaults_and_overrides(self):
        world = _arena().build()
        action = CreateAction(
            actor_id="new-coin",
            character_id="coin",
            offset=Position(1, 0),
            initial_values=frozen_map({"extra": "7"}),
        )
        after = apply_actions([action], world, _ctx(world))

        created = [a for a in after.current_stage().actors.values() if a.character_id == "coin"]
        assert len(created) == 1
        coin = created[0]
        assert coin.position == Position(3, 2)
        assert coin.appearance == "shiny"  # first declared appearance
        assert dict(coin.variable_values) == {"value": "1", "extra": "7"}
        assert coin.id not in world.current_stage().actors
        assert after.id_counter > world.id_counter

    def test_fresh_ids_are_deterministic(self):
        world = _arena().build()
        action = CreateAction(actor_id="c", character_id="coin", offset=Position(0, 1))
        first = apply_actions([action], world, _ctx(world))
        second = apply_actions([action], world, _ctx(world))
        assert list(first.current_stage().actors) == list(second.current_stage().actors)

    def test_later_actions_address_the_created_actor(self):
        world = _arena().build()
        actions = [
            CreateAction(actor_id="c", character_id="coin", offset=Position(0, 1)),
            set_var("c", "value", 9),
            move_by("c", 1, 0),
        ]
        after = apply_actions(actions, world, _ctx(world))
        coin = next(a for a in after.current_stage().actors.values() if a.character_id == "coin")
        assert coin.variable_values["value"] == "9"
        assert coin.position == Position(3, 3)

    def test_create_off_stage_is_a_noop(self):
        world = _arena().build()
        draft = WorldDraft(world)
        applier = ActionApplier(draft)
        applied = applier.apply([CreateAction(actor_id="c", character_id="coin", offset=Position(-5, 0))], _ctx(world))
        assert applied == []
        assert len(applier.rejected) == 1
        assert draft.freeze() is world

    def test_create_unknown_character_is_a_noop(self):
        world = _arena().build()
        after = apply_actions([CreateAction(actor_id="c", character_id="dragon")], world, _ctx(world))
        assert after is world


class TestMoveAndDelete:
    def test_move_to_offset_from_origin(self):
        world = _arena().build()
        after = apply_actions([MoveAction(actor_id="main", offset=Position(2, -1))], world, _ctx(world))
        assert _actor(after, "h1").position == Position(4, 1)

    def test_move_by_delta(self):
        world = _arena().build()
        after = apply_actions([move_by("main", 1, 1), move_by("main", 1, 1)], world, _ctx(world))
        assert _actor(after, "h1").position == Position(4, 4)

    def test_move_off_stage_is_a_noop(self):
        world = _arena().build()
        after = apply_actions([move_by("main", -3, 0)], world, _ctx(world))
        assert _actor(after, "h1").position == Position(2, 2)

    def test_move_wraps_on_wrapping_stage(self):
        world = _arena(wrap_x=True).build()
        after = apply_actions([move_by("main", -3, 0)], world, _ctx(world))
        assert _actor(after, "h1").position == Position(7, 2)

    def test_delete(self):
        world = _arena().build()
        after = apply_actions([DeleteAction(actor_id="main")], world, _ctx(world))
        assert _actor(after, "h1") is None

    def test_actions_on_deleted_actor_are_noops(self):
        world = _arena().build()
        draft = WorldDraft(world)
        applier = ActionApplier(draft)
        applied = applier.apply(
            [DeleteAction(actor_id="main"), move_by("main", 1, 0), set_var("main", "hp", 1), DeleteAction(actor_id="main")],
            _ctx(world),
        )
        assert len(applied) == 1
        assert len(applier.rejected) == 3
        assert _actor(draft.freeze(), "h1") is None

    def test_unanchored_actions_use_stage_ids(self):
        world = _arena().build()
        after = apply_actions([move_by("h1", 0, 1), MoveAction(actor_id="h1", offset=Position(0, 0))], world)
        # the delta applies, the offset has no origin to be relative to
        assert _actor(after, "h1").position == Position(2, 3)


class TestVariables:
    def test_set_add_subtract(self):
        world = _arena().build()
        after = apply_actions(
            [set_var("main", "hp", 3, "add"), set_var("main", "hp", 1, "subtract"), set_var("main", "mood", "angry")],
            world,
            _ctx(world),
        )
        values = _actor(after, "h1").variable_values
        assert values["hp"] == "7"
        assert values["mood"] == "angry"

    def test_add_to_unset_variable_starts_from_default(self):
        world = _arena().build()
        actions = [CreateAction(actor_id="c", character_id="coin"), set_var("c", "value", 4, "add")]
        after = apply_actions(actions, world, _ctx(world))
        coin = next(a for a in after.current_stage().actors.values() if a.character_id == "coin")
        assert coin.variable_values["value"] == "5"

    def test_value_from_another_variable(self):
        world = _arena().build()
        after = apply_actions([set_var("main", "copy", var("main", "hp"))], world, _ctx(world))
        assert _actor(after, "h1").variable_values["copy"] == "5"

    def test_globals_pseudo_actor_targets_global(self):
        world = _arena().build()
        after = apply_actions([set_var("globals", "score", 2, "add")], world, _ctx(world))
        assert after.globals["score"].value == "2"

    def test_global_action(self):
        world = _arena().build()
        actions = [
            GlobalAction(global_id="score", value=const(10), operation=MathOperation.SET),
            GlobalAction(global_id="score", value=const(4), operation=MathOperation.SUBTRACT),
            GlobalAction(global_id="missing", value=const(1)),
        ]
        after = apply_actions(actions, world, _ctx(world))
        assert after.globals["score"].value == "6"
        assert "missing" not in after.globals


class TestAppearanceAndTransform:
    def test_valid_appearance(self):
        world = _arena().build()
        after = apply_actions([AppearanceAction(actor_id="main", value=const("jump"))], world, _ctx(world))
        assert _actor(after, "h1").appearance == "jump"

    def test_unknown_appearance_is_a_noop(self):
        world = _arena().build()
        after = apply_actions([AppearanceAction(actor_id="main", value=const("fly"))], world, _ctx(world))
        assert _actor(after, "h1").appearance == "idle"

    def test_transform_set_and_compose(self):
        world = _arena().build()
        actions = [
            TransformAction(actor_id="main", value=const("90")),
            TransformAction(actor_id="main", value=const("90"), operation=MathOperation.ADD),
        ]
        after = apply_actions(actions, world, _ctx(world))
        assert _actor(after, "h1").transform == Transform.ROT_180

    def test_invalid_transform_is_a_noop(self):
        world = _arena().build()
        draft = WorldDraft(world)
        applier = ActionApplier(draft)
        applier.apply([TransformAction(actor_id="main", value=const("45"))], _ctx(world))
        assert len(applier.rejected) == 1
        assert _actor(draft.freeze(), "h1").transform is None


class TestDraftSharing:
    def test_untouched_actors_keep_identity(self):
        arena = _arena()
        arena.add_actor("h2", "hero", pos=(5, 5))
        world = arena.build()
        after = apply_actions([move_by("main", 1, 0)], world, _ctx(world))
        assert _actor(after, "h2") is _actor(world, "h2")
        assert _actor(world, "h1").position == Position(2, 2)

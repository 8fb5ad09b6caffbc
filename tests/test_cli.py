"""Tests for the ``stagecraft`` command line."""

import sys
import os
import json
import logging
from dataclasses import replace

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stagecraft.__main__ import main
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import Behavior
from stagecraft.core.geometry import Position
from stagecraft.core.rules import FlowGroup
from stagecraft.persistence import load_world, save_world
from tests.helpers.stage_arena import StageArena, rule, set_var


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _counter_world():
    arena = StageArena()
    arena.add_character("hero", rules=[rule("inc", [set_var("main", "count", 1, "add")])], variables={"count": "0"})
    arena.add_actor("hero-1", "hero", pos=(3, 3), variables={"hp": "2"})
    return arena.build()


class TestRun:
    def test_run_writes_final_world_and_replay(self, tmp_path):
        path = tmp_path / "world.json"
        out = tmp_path / "final.json"
        replay = tmp_path / "replay.json"
        save_world(_counter_world(), path)

        status = main(["run", str(path), "--ticks", "3", "--out", str(out), "--replay", str(replay), "--log-level", "WARNING"])

        assert status == 0
        final = load_world(out)
        assert final.tick == 3
        assert final.current_stage().actors["hero-1"].variable_values["count"] == "3"
        assert json.loads(replay.read_text(encoding="utf-8"))["total_ticks"] == 3

    def test_run_accepts_seed_beyond_64_bits(self, tmp_path):
        path = tmp_path / "world.json"
        out = tmp_path / "final.json"
        arena = StageArena()
        pick = FlowGroup(
            id="pick",
            behavior=Behavior.RANDOM,
            children=(rule("inc", [set_var("main", "count", 1, "add")]), rule("dec", [set_var("main", "count", 1, "subtract")])),
        )
        arena.add_character("hero", rules=[pick], variables={"count": "0"})
        arena.add_actor("hero-1", "hero", pos=(3, 3))
        save_world(arena.build(), path)

        status = main(["run", str(path), "--ticks", "2", "--seed", str(2**70), "--out", str(out), "--log-level", "WARNING"])

        assert status == 0
        assert load_world(out).tick == 2


class TestDiff:
    def test_diff_prints_actions(self, tmp_path, capsys):
        before = _counter_world()
        draft = WorldDraft(before)
        hero = draft.get_actor("hero-1")
        draft.put_actor(replace(hero, position=Position(5, 2), variable_values=hero.with_variable("hp", "7").variable_values))
        after = draft.freeze()

        before_path, after_path = tmp_path / "before.json", tmp_path / "after.json"
        save_world(before, before_path)
        save_world(after, after_path)

        status = main(["diff", str(before_path), str(after_path), "--actor", "hero-1", "--extent", "3,5,2,3"])

        assert status == 0
        out = json.loads(capsys.readouterr().out)
        assert out["origin"] == {"x": 3, "y": 3}
        assert out["actions"][0] == {"type": "move", "actorId": "hero-1", "offset": {"x": 2, "y": -1}}
        assert out["actions"][1]["variable"] == "hp"
        assert out["actions"][1]["value"] == {"constant": "7"}

    def test_diff_unknown_actor_fails(self, tmp_path):
        path = tmp_path / "world.json"
        save_world(_counter_world(), path)
        assert main(["diff", str(path), str(path), "--actor", "ghost"]) == 1


class TestMigrate:
    def test_migrate_rewrites_legacy_file(self, tmp_path):
        data = {
            "stages": {
                "s": {
                    "id": "s",
                    "actors": {"a": {"id": "a", "characterId": "c", "transform": "90deg"}},
                }
            },
            "characters": {"c": {"id": "c", "rules": [{"type": "rule", "id": "r"}]}},
        }
        path = tmp_path / "legacy.json"
        out = tmp_path / "current.json"
        path.write_text(json.dumps(data), encoding="utf-8")

        assert main(["migrate", str(path), "--out", str(out), "--log-level", "WARNING"]) == 0

        written = json.loads(out.read_text(encoding="utf-8"))
        assert written["stages"]["s"]["actors"]["a"]["transform"] == "90"
        assert written["characters"]["c"]["rules"][0]["actions"] == []
        assert written["globals"]["selectedStageId"]["value"] == "s"


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()

"""Replay serialization: records tick-by-tick results of a play session."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stagecraft.utils.fingerprint import world_fingerprint

if TYPE_CHECKING:
    from stagecraft.engine.world_loop import TickResult

logger = logging.getLogger(__name__)


class ReplayRecorder:
    """Accumulates tick results and flushes them to a JSON replay file."""

    __slots__ = ("_path", "_ticks", "_seed")

    def __init__(self, path: str | Path, seed: int) -> None:
        self._path = Path(path)
        self._seed = seed
        self._ticks: list[dict[str, Any]] = []

    @property
    def ticks(self) -> list[dict[str, Any]]:
        return self._ticks

    def record_tick(self, result: TickResult) -> None:
        world = result.world
        stage = world.current_stage()
        actors_snapshot = [
            {
                "id": a.id,
                "character": a.character_id,
                "pos": [a.position.x, a.position.y],
                "appearance": a.appearance,
                "transform": a.transform.value if a.transform is not None else None,
                "variables": dict(a.variable_values),
            }
            for a in (stage.actors.values() if stage is not None else ())
        ]
        batches_log = [
            {
                "actor": b.actor_id,
                "rule": b.rule_id,
                "actions": [type(a).__name__ for a in b.actions],
            }
            for b in result.applied
        ]

        self._ticks.append(
            {
                "tick": world.tick,
                "batches": batches_log,
                "actors": actors_snapshot,
                "rejected": len(result.rejected),
                "errors": dict(result.errors),
                "fingerprint": world_fingerprint(world),
            }
        )

    def flush(self) -> None:
        """Write accumulated data to disk."""
        replay = {
            "version": "1.0",
            "seed": self._seed,
            "total_ticks": len(self._ticks),
            "ticks": self._ticks,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(replay, indent=2), encoding="utf-8")
        logger.info("Replay saved to %s (%d ticks)", self._path, len(self._ticks))

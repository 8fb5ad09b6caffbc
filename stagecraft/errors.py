"""Exception hierarchy for the rule engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stagecraft.engine.world_loop import TickResult


class StagecraftError(Exception):
    """Base class for every error raised by this package."""


class RuleTreeInvariantError(StagecraftError):
    """A rule tree holds a value no well-formed editor can produce (e.g. an unknown behavior)."""

    def __init__(self, node_id: str, message: str) -> None:
        super().__init__(f"rule tree node {node_id!r}: {message}")
        self.node_id = node_id


class TickError(StagecraftError):
    """Raised in strict mode after a tick in which some actors failed.

    The tick still ran to completion for every other actor; the result is
    attached so callers can inspect or keep it.
    """

    def __init__(self, result: TickResult) -> None:
        failed = ", ".join(sorted(result.errors))
        super().__init__(f"tick {result.world.tick - 1}: rule evaluation failed for actor(s) {failed}")
        self.result = result


class WorldFormatError(StagecraftError):
    """Persisted world data could not be parsed."""


class RecordingError(StagecraftError):
    """A recording session was used after it ended or cannot produce a rule."""

"""Diagnostic evaluation traces.

Traces describe why a rule did or did not match. They are a side channel:
nothing in the engine reads them back to decide simulation outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stagecraft.core.enums import FailReason, SquareStatus


@dataclass(frozen=True, slots=True)
class EvaluatedCondition:
    """Outcome of one condition with the operand values it saw."""

    condition_key: str
    passed: bool
    left_value: str | None = None
    right_value: str | None = None


@dataclass(frozen=True, slots=True)
class EvaluatedSquare:
    """Outcome for one extent cell (rule-relative coordinates)."""

    x: int
    y: int
    passed: bool
    status: SquareStatus = SquareStatus.OK
    expected_actor_count: int | None = None
    actual_actor_count: int | None = None


@dataclass(frozen=True, slots=True)
class RuleDetails:
    """Per-node evaluation record for one actor in one tick."""

    passed: bool
    failed_at: FailReason | None = None
    conditions: tuple[EvaluatedCondition, ...] = ()
    squares: tuple[EvaluatedSquare, ...] = ()
    matched_actors: tuple[tuple[str, str], ...] = ()  # (rule actor id, stage actor id)


@dataclass(slots=True)
class TickTrace:
    """actor id -> node id -> RuleDetails, filled while walking rule trees."""

    details: dict[str, dict[str, RuleDetails]] = field(default_factory=dict)

    def record(self, actor_id: str, node_id: str, details: RuleDetails) -> None:
        self.details.setdefault(actor_id, {})[node_id] = details

    def for_actor(self, actor_id: str) -> dict[str, RuleDetails]:
        return self.details.get(actor_id, {})

    @property
    def any_passed(self) -> bool:
        return any(d.passed for nodes in self.details.values() for d in nodes.values())

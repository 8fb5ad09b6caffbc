"""Upgrades of legacy world data, applied to the raw JSON tree before validation.

- transform spellings: ``none`` -> ``0``, ``90deg`` -> ``90``, ``flip-xy`` -> ``180``
- rule actions: ``to`` renamed to ``value``; scalar values wrapped as constants
- rules without ``actions`` / ``conditions`` arrays get empty ones
- condition maps keyed by actor (or ``globals``) and property become condition lists
"""

from __future__ import annotations

import logging
from typing import Any

from stagecraft.errors import WorldFormatError

logger = logging.getLogger(__name__)


def migrate_transform(value: Any) -> Any:
    if value == "none":
        return "0"
    if isinstance(value, str) and value.endswith("deg"):
        return value[: -len("deg")]
    if value == "flip-xy":
        return "180"
    return value


def migrate_world_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return *data* with every legacy construct upgraded. *data* is modified in place."""
    counter = _KeyCounter()
    _walk(data, counter)
    if counter.count:
        logger.info("Migrated %d legacy condition(s)", counter.count)
    return data


class _KeyCounter:
    __slots__ = ("count",)

    def __init__(self) -> None:
        self.count = 0

    def next_key(self) -> str:
        self.count += 1
        return f"condition-{self.count}"


def _walk(node: Any, counter: _KeyCounter) -> None:
    if isinstance(node, list):
        for item in node:
            _walk(item, counter)
        return
    if not isinstance(node, dict):
        return

    for key, value in list(node.items()):
        if key == "transform" and not isinstance(value, dict):
            node[key] = migrate_transform(value)
        elif key == "rules" and isinstance(value, list):
            for rule in value:
                if isinstance(rule, dict):
                    _migrate_rule(rule, counter)
        _walk(node[key], counter)


def _migrate_rule(rule: dict[str, Any], counter: _KeyCounter) -> None:
    if rule.get("type", "rule") == "rule":
        rule.setdefault("actions", [])
        rule.setdefault("conditions", [])

    for action in rule.get("actions") or []:
        _migrate_action(action)

    conditions = rule.get("conditions")
    if isinstance(conditions, dict):
        rule["conditions"] = _conditions_from_map(conditions, rule.get("actors") or {}, counter)


def _migrate_action(action: dict[str, Any]) -> None:
    if "to" in action:
        action["value"] = action.pop("to")
    if action.get("type") == "transform" and not action.get("value"):
        action["value"] = {"constant": "0"}
    if "value" in action and action["value"] is None:
        action["value"] = {"constant": "0"}
    if "value" in action and not isinstance(action["value"], dict):
        action["value"] = {"constant": f"{migrate_transform(action['value'])}"}


def _conditions_from_map(
    conditions: dict[str, Any], actors: dict[str, Any], counter: _KeyCounter
) -> list[dict[str, Any]]:
    """Convert ``{actorIdOrGlobals: {conditionId: condition}}`` into a condition list."""
    result: list[dict[str, Any]] = []
    for owner, by_id in conditions.items():
        for condition_id, condition in (by_id or {}).items():
            result.append(_legacy_condition(owner, condition_id, dict(condition), actors, counter))
    return result


def _legacy_condition(
    owner: str,
    condition_id: str,
    condition: dict[str, Any],
    actors: dict[str, Any],
    counter: _KeyCounter,
) -> dict[str, Any]:
    if "left" in condition:
        return condition

    condition.setdefault("comparator", "=")
    kind = condition.get("type")
    if kind is None:
        kind = condition_id if condition_id in ("transform", "appearance") else "variable"

    actor = actors.get(owner) or {}
    right = condition.get("right") or condition.get("value")
    if owner == "globals":
        left = {"globalId": condition_id}
    elif kind == "transform":
        left = {"actorId": owner, "variableId": "transform"}
        right = right or {"constant": f"{migrate_transform(actor.get('transform') or '0')}"}
    elif kind == "appearance":
        left = {"actorId": owner, "variableId": "appearance"}
        right = right or {"constant": actor.get("appearance", "")}
    else:
        variable_id = condition.get("variableId", condition_id)
        left = {"actorId": owner, "variableId": variable_id}
        right = right or {"constant": f"{(actor.get('variableValues') or {}).get(variable_id) or '0'}"}

    if not isinstance(right, dict) or not right:
        raise WorldFormatError(f"legacy condition {condition_id!r} of {owner!r} has no right side")

    return {
        "key": counter.next_key(),
        "enabled": condition.get("enabled", True),
        "left": left,
        "comparator": condition["comparator"],
        "right": right,
    }

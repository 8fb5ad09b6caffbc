"""Reading and writing World files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from stagecraft.core.models import World
from stagecraft.errors import WorldFormatError
from stagecraft.persistence.convert import world_from_dict, world_to_dict

logger = logging.getLogger(__name__)


def load_world(path: str | Path) -> World:
    """Load, migrate and validate a World from a JSON file.

    Files that wrap the world in a ``{"data": {...}}`` envelope are accepted.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WorldFormatError(f"{path}: not valid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise WorldFormatError(f"{path}: expected a JSON object")
    if "data" in data and isinstance(data["data"], dict) and "stages" not in data:
        data = data["data"]
    world = world_from_dict(data)
    logger.info("Loaded %s (%d stage(s), tick %d)", path, len(world.stages), world.tick)
    return world


def save_world(world: World, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(world_to_dict(world), indent=2), encoding="utf-8")
    logger.info("World saved to %s (tick %d)", path, world.tick)

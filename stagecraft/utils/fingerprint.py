"""Stable content hash of a World, used to compare runs for determinism."""

from __future__ import annotations

import json

import xxhash

from stagecraft.core.models import World
from stagecraft.persistence.convert import world_to_dict


def world_fingerprint(world: World) -> str:
    """Hex xxh64 digest of the canonical JSON form of *world*."""
    payload = json.dumps(world_to_dict(world), sort_keys=True, separators=(",", ":"))
    return xxhash.xxh64(payload.encode("utf-8")).hexdigest()

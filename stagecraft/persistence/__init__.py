"""Persistence: JSON interchange schemas, migrations and file IO."""

from stagecraft.persistence.convert import (
    action_to_dict,
    condition_to_dict,
    rule_node_to_dict,
    world_from_dict,
    world_to_dict,
)
from stagecraft.persistence.io import load_world, save_world
from stagecraft.persistence.migrations import migrate_world_data

__all__ = [
    "action_to_dict",
    "condition_to_dict",
    "load_world",
    "migrate_world_data",
    "rule_node_to_dict",
    "save_world",
    "world_from_dict",
    "world_to_dict",
]

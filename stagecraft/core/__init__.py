"""Core data model: geometry, records, rule trees and the copy-on-write draft."""

from stagecraft.core.enums import Behavior, Comparator, Domain, EventKind, MathOperation, Transform
from stagecraft.core.geometry import Extent, Position
from stagecraft.core.models import Actor, Character, FrameInput, Global, Stage, World
from stagecraft.core.draft import WorldDraft

__all__ = [
    "Actor",
    "Behavior",
    "Character",
    "Comparator",
    "Domain",
    "EventKind",
    "Extent",
    "FrameInput",
    "Global",
    "MathOperation",
    "Position",
    "Stage",
    "Transform",
    "World",
    "WorldDraft",
]

"""Grid geometry: positions, rule extents and sprite transforms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from stagecraft.core.enums import Transform


@dataclass(frozen=True, slots=True)
class Position:
    """Immutable 2D integer cell coordinate."""

    x: int = 0
    y: int = 0

    def __add__(self, other: Position) -> Position:
        return Position(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Position) -> Position:
        return Position(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True, slots=True)
class Extent:
    """Inclusive rectangular cell region plus a set of ignored cells.

    Ignored cells lie inside the bounds; during matching they tolerate
    actors that the rule does not describe.
    """

    xmin: int = 0
    xmax: int = 0
    ymin: int = 0
    ymax: int = 0
    ignored: frozenset[tuple[int, int]] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.xmin > self.xmax:
            xmin, xmax = self.xmax, self.xmin
            object.__setattr__(self, "xmin", xmin)
            object.__setattr__(self, "xmax", xmax)
        if self.ymin > self.ymax:
            ymin, ymax = self.ymax, self.ymin
            object.__setattr__(self, "ymin", ymin)
            object.__setattr__(self, "ymax", ymax)
        inside = frozenset(c for c in self.ignored if self.contains_xy(c[0], c[1]))
        object.__setattr__(self, "ignored", inside)

    @classmethod
    def around(cls, points: list[Position]) -> Extent:
        """Smallest extent covering *points* (a single cell at the origin if empty)."""
        if not points:
            return cls()
        return cls(
            xmin=min(p.x for p in points),
            xmax=max(p.x for p in points),
            ymin=min(p.y for p in points),
            ymax=max(p.y for p in points),
        )

    def contains_xy(self, x: int, y: int) -> bool:
        return self.xmin <= x <= self.xmax and self.ymin <= y <= self.ymax

    def contains(self, pos: Position) -> bool:
        return self.contains_xy(pos.x, pos.y)

    def is_ignored(self, pos: Position) -> bool:
        return (pos.x, pos.y) in self.ignored

    def cells(self) -> Iterator[Position]:
        """Yield every cell column-major (x outer, y inner)."""
        for x in range(self.xmin, self.xmax + 1):
            for y in range(self.ymin, self.ymax + 1):
                yield Position(x, y)

    def shifted(self, offset: Position) -> Extent:
        return Extent(
            xmin=self.xmin + offset.x,
            xmax=self.xmax + offset.x,
            ymin=self.ymin + offset.y,
            ymax=self.ymax + offset.y,
            ignored=frozenset((x + offset.x, y + offset.y) for x, y in self.ignored),
        )

    def including(self, pos: Position) -> Extent:
        """Return this extent grown (if needed) to cover *pos*."""
        return Extent(
            xmin=min(self.xmin, pos.x),
            xmax=max(self.xmax, pos.x),
            ymin=min(self.ymin, pos.y),
            ymax=max(self.ymax, pos.y),
            ignored=self.ignored,
        )

    def toggled(self, pos: Position) -> Extent:
        """Flip the ignored flag of *pos*; cells outside the bounds are left alone."""
        if not self.contains(pos):
            return self
        key = (pos.x, pos.y)
        ignored = self.ignored - {key} if key in self.ignored else self.ignored | {key}
        return Extent(self.xmin, self.xmax, self.ymin, self.ymax, ignored)

    def sorted_ignored(self) -> list[tuple[int, int]]:
        return sorted(self.ignored)


# -- dihedral group --

# COMPOSITION[existing][applied] -> resulting transform
_T = Transform
COMPOSITION: dict[Transform, dict[Transform, Transform]] = {
    _T.IDENTITY: {
        _T.IDENTITY: _T.IDENTITY, _T.ROT_90: _T.ROT_90, _T.ROT_180: _T.ROT_180, _T.ROT_270: _T.ROT_270,
        _T.FLIP_X: _T.FLIP_X, _T.FLIP_Y: _T.FLIP_Y, _T.D1: _T.D1, _T.D2: _T.D2,
    },
    _T.ROT_90: {
        _T.IDENTITY: _T.ROT_90, _T.ROT_90: _T.ROT_180, _T.ROT_180: _T.ROT_270, _T.ROT_270: _T.IDENTITY,
        _T.FLIP_X: _T.D1, _T.FLIP_Y: _T.D2, _T.D1: _T.FLIP_Y, _T.D2: _T.FLIP_X,
    },
    _T.ROT_180: {
        _T.IDENTITY: _T.ROT_180, _T.ROT_90: _T.ROT_270, _T.ROT_180: _T.IDENTITY, _T.ROT_270: _T.ROT_90,
        _T.FLIP_X: _T.FLIP_Y, _T.FLIP_Y: _T.FLIP_X, _T.D1: _T.D2, _T.D2: _T.D1,
    },
    _T.ROT_270: {
        _T.IDENTITY: _T.ROT_270, _T.ROT_90: _T.IDENTITY, _T.ROT_180: _T.ROT_90, _T.ROT_270: _T.ROT_180,
        _T.FLIP_X: _T.D2, _T.FLIP_Y: _T.D1, _T.D1: _T.FLIP_X, _T.D2: _T.FLIP_Y,
    },
    _T.FLIP_X: {
        _T.IDENTITY: _T.FLIP_X, _T.ROT_90: _T.D2, _T.ROT_180: _T.FLIP_Y, _T.ROT_270: _T.D1,
        _T.FLIP_X: _T.IDENTITY, _T.FLIP_Y: _T.ROT_180, _T.D1: _T.ROT_270, _T.D2: _T.ROT_90,
    },
    _T.FLIP_Y: {
        _T.IDENTITY: _T.FLIP_Y, _T.ROT_90: _T.D1, _T.ROT_180: _T.FLIP_X, _T.ROT_270: _T.D2,
        _T.FLIP_X: _T.ROT_180, _T.FLIP_Y: _T.IDENTITY, _T.D1: _T.ROT_90, _T.D2: _T.ROT_270,
    },
    _T.D1: {
        _T.IDENTITY: _T.D1, _T.ROT_90: _T.FLIP_X, _T.ROT_180: _T.D2, _T.ROT_270: _T.FLIP_Y,
        _T.FLIP_X: _T.ROT_90, _T.FLIP_Y: _T.ROT_270, _T.D1: _T.IDENTITY, _T.D2: _T.ROT_180,
    },
    _T.D2: {
        _T.IDENTITY: _T.D2, _T.ROT_90: _T.FLIP_Y, _T.ROT_180: _T.D1, _T.ROT_270: _T.FLIP_X,
        _T.FLIP_X: _T.ROT_270, _T.FLIP_Y: _T.ROT_90, _T.D1: _T.ROT_180, _T.D2: _T.IDENTITY,
    },
}

INVERSE: dict[Transform, Transform] = {
    _T.IDENTITY: _T.IDENTITY,
    _T.ROT_90: _T.ROT_270,
    _T.ROT_180: _T.ROT_180,
    _T.ROT_270: _T.ROT_90,
    _T.FLIP_X: _T.FLIP_X,
    _T.FLIP_Y: _T.FLIP_Y,
    _T.D1: _T.D1,
    _T.D2: _T.D2,
}


def compose_transform(existing: Transform, applied: Transform) -> Transform:
    return COMPOSITION[existing][applied]


def point_applying_transform(
    x: int, y: int, width: int, height: int, transform: Transform | None
) -> tuple[int, int]:
    """Map a sprite-local cell through *transform* (sprite size *width* x *height*)."""
    match transform:
        case Transform.ROT_90:
            return (height - 1 - y, x)
        case Transform.ROT_270:
            return (y, width - 1 - x)
        case Transform.ROT_180:
            return (width - 1 - x, height - 1 - y)
        case Transform.FLIP_X:
            return (width - 1 - x, y)
        case Transform.FLIP_Y:
            return (x, height - 1 - y)
        case Transform.D1:
            return (y, x)
        case Transform.D2:
            return (height - 1 - y, width - 1 - x)
        case _:
            return (x, y)

"""String-typed variable arithmetic and comparison.

All actor and global variables are stored as strings. Numeric operations
parse them on demand; anything that does not look like a finite decimal
number is treated as non-numeric.
"""

from __future__ import annotations

import math
import re

from stagecraft.core.enums import Comparator, MathOperation, Transform
from stagecraft.core.geometry import INVERSE, compose_transform

_NUMBER_RE = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?\s*$")


def parse_number(value: str | None) -> float | None:
    """Return *value* as a float, or None when it is not a plain finite number."""
    if value is None or not _NUMBER_RE.match(value):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def format_number(number: float) -> str:
    """Render a number the way variables store it: ``3`` not ``3.0``."""
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    return repr(number)


def comparator_matches(comparator: Comparator, left: str | None, right: str | None) -> bool:
    """Compare two resolved operands. An unresolved (None) operand never matches."""
    if left is None or right is None:
        return False

    if comparator.numeric:
        a, b = parse_number(left), parse_number(right)
        if a is None or b is None:
            return False
        match comparator:
            case Comparator.LT:
                return a < b
            case Comparator.LE:
                return a <= b
            case Comparator.GT:
                return a > b
            case _:
                return a >= b

    match comparator:
        case Comparator.EQ | Comparator.NE:
            a, b = parse_number(left), parse_number(right)
            equal = a == b if a is not None and b is not None else left == right
            return equal if comparator is Comparator.EQ else not equal
        case Comparator.CONTAINS:
            # keypress lists ("ArrowLeft,Space") match whole entries only
            if "," in left:
                return right in left.split(",")
            return right in left
        case Comparator.STARTS_WITH:
            return left.startswith(right)
        case Comparator.ENDS_WITH:
            return left.endswith(right)
    raise ValueError(f"unknown comparator: {comparator!r}")


def apply_variable_operation(existing: str | None, operation: MathOperation, value: str) -> str:
    """Combine *existing* with *value*; non-numeric operands count as 0 for add/subtract."""
    match operation:
        case MathOperation.SET:
            return value
        case MathOperation.ADD:
            return format_number((parse_number(existing) or 0.0) + (parse_number(value) or 0.0))
        case MathOperation.SUBTRACT:
            return format_number((parse_number(existing) or 0.0) - (parse_number(value) or 0.0))
    raise ValueError(f"unknown operation: {operation!r}")


def apply_transform_operation(existing: Transform | None, operation: MathOperation, value: Transform) -> Transform:
    """Set, compose (add) or compose with the inverse (subtract) in the dihedral group."""
    current = existing or Transform.IDENTITY
    match operation:
        case MathOperation.SET:
            return value
        case MathOperation.ADD:
            return compose_transform(current, value)
        case MathOperation.SUBTRACT:
            return compose_transform(current, INVERSE[value])
    raise ValueError(f"unknown operation: {operation!r}")

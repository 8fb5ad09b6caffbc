"""Small helpers used when turning a demonstration into rule actions."""

from __future__ import annotations

from stagecraft.core.enums import MathOperation
from stagecraft.core.values import format_number, parse_number


def operand_for_value_change(before: str | float, after: str | float, operation: MathOperation) -> str:
    """The operand that turns *before* into *after* under *operation*.

    Non-numeric sides count as 0 for ``add`` and ``subtract``.
    """
    match operation:
        case MathOperation.SET:
            return after if isinstance(after, str) else format_number(after)
        case MathOperation.ADD:
            return format_number((parse_number(str(after)) or 0.0) - (parse_number(str(before)) or 0.0))
        case MathOperation.SUBTRACT:
            return format_number((parse_number(str(before)) or 0.0) - (parse_number(str(after)) or 0.0))
    raise ValueError(f"unknown operation: {operation!r}")

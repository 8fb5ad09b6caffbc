"""VariableHandler and GlobalHandler: set/add/subtract on string-typed values."""

from __future__ import annotations

import logging

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import GLOBALS_ACTOR_ID, Comparator, MathOperation
from stagecraft.core.rules import GlobalAction, Value, VariableAction
from stagecraft.core.values import apply_variable_operation
from stagecraft.engine.evaluator import read_actor_variable, resolve_value

logger = logging.getLogger(__name__)


def _write_global(
    global_id: str, value: Value, operation: MathOperation, draft: WorldDraft, ctx: ActionContext
) -> None:
    existing = draft.globals[global_id]
    operand = resolve_value(value, draft, ctx.binding, Comparator.EQ) or ""
    draft.set_global(global_id, apply_variable_operation(existing.value, operation, operand))


class VariableHandler:
    """Stateless handler for actor variable actions.

    The pseudo actor id ``globals`` redirects the action to the global named
    by *variable_id*.
    """

    @staticmethod
    def validate(action: VariableAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if action.actor_id == GLOBALS_ACTOR_ID:
            if action.variable_id not in draft.globals:
                logger.debug("Variable: unknown global %r", action.variable_id)
                return False
            return True
        if ctx.target(draft, action.actor_id) is None:
            logger.debug("Variable: actor %r is gone", action.actor_id)
            return False
        return True

    @staticmethod
    def apply(action: VariableAction, draft: WorldDraft, ctx: ActionContext) -> None:
        if action.actor_id == GLOBALS_ACTOR_ID:
            _write_global(action.variable_id, action.value, action.operation, draft, ctx)
            return

        actor = ctx.target(draft, action.actor_id)
        current = read_actor_variable(actor, draft.character_for(actor), action.variable_id) or "0"
        operand = resolve_value(action.value, draft, ctx.binding, Comparator.EQ) or ""
        draft.put_actor(actor.with_variable(action.variable_id, apply_variable_operation(current, action.operation, operand)))


class GlobalHandler:
    """Stateless handler for global actions."""

    @staticmethod
    def validate(action: GlobalAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if action.global_id not in draft.globals:
            logger.debug("Global: unknown global %r", action.global_id)
            return False
        return True

    @staticmethod
    def apply(action: GlobalAction, draft: WorldDraft, ctx: ActionContext) -> None:
        _write_global(action.global_id, action.value, action.operation, draft, ctx)

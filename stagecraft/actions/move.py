"""MoveHandler and DeleteHandler.

A move either targets an absolute offset from the rule origin or shifts the
actor by a delta from wherever it currently is. Wrapping stages wrap; a target
off a non-wrapping edge makes the move a no-op.
"""

from __future__ import annotations

import logging

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.geometry import Position
from stagecraft.core.rules import DeleteAction, MoveAction

logger = logging.getLogger(__name__)


def _destination(action: MoveAction, draft: WorldDraft, ctx: ActionContext) -> Position | None:
    actor = ctx.target(draft, action.actor_id)
    if actor is None:
        return None
    if action.delta is not None:
        return draft.wrapped_position(actor.position + action.delta)
    if action.offset is not None and ctx.origin is not None:
        return draft.wrapped_position(ctx.origin + action.offset)
    return None


class MoveHandler:
    """Stateless handler for move actions."""

    @staticmethod
    def validate(action: MoveAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if ctx.target(draft, action.actor_id) is None:
            logger.debug("Move: actor %r is gone", action.actor_id)
            return False
        if _destination(action, draft, ctx) is None:
            logger.debug("Move: %r has no valid destination", action.actor_id)
            return False
        return True

    @staticmethod
    def apply(action: MoveAction, draft: WorldDraft, ctx: ActionContext) -> None:
        actor = ctx.target(draft, action.actor_id)
        target = _destination(action, draft, ctx)
        draft.put_actor(actor.moved_to(target))


class DeleteHandler:
    """Stateless handler for delete actions."""

    @staticmethod
    def validate(action: DeleteAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if ctx.target(draft, action.actor_id) is None:
            logger.debug("Delete: actor %r is already gone", action.actor_id)
            return False
        return True

    @staticmethod
    def apply(action: DeleteAction, draft: WorldDraft, ctx: ActionContext) -> None:
        actor = ctx.target(draft, action.actor_id)
        draft.remove_actor(actor.id)

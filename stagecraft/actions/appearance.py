"""AppearanceHandler and TransformHandler."""

from __future__ import annotations

import logging
from dataclasses import replace

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.enums import Comparator, Transform
from stagecraft.core.rules import AppearanceAction, TransformAction
from stagecraft.core.values import apply_transform_operation
from stagecraft.engine.evaluator import resolve_value

logger = logging.getLogger(__name__)


class AppearanceHandler:
    """Stateless handler for appearance actions; the value must name an appearance of the character."""

    @staticmethod
    def validate(action: AppearanceAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        actor = ctx.target(draft, action.actor_id)
        if actor is None:
            logger.debug("Appearance: actor %r is gone", action.actor_id)
            return False
        character = draft.character_for(actor)
        appearance = resolve_value(action.value, draft, ctx.binding, Comparator.EQ)
        if character is None or appearance is None or not character.has_appearance(appearance):
            logger.debug("Appearance: %r is not an appearance of %s", appearance, actor.character_id)
            return False
        return True

    @staticmethod
    def apply(action: AppearanceAction, draft: WorldDraft, ctx: ActionContext) -> None:
        actor = ctx.target(draft, action.actor_id)
        appearance = resolve_value(action.value, draft, ctx.binding, Comparator.EQ)
        draft.put_actor(replace(actor, appearance=appearance))


class TransformHandler:
    """Stateless handler for transform actions (dihedral group of the square)."""

    @staticmethod
    def _operand(action: TransformAction, draft: WorldDraft, ctx: ActionContext) -> Transform | None:
        return Transform.parse(resolve_value(action.value, draft, ctx.binding, Comparator.EQ))

    @staticmethod
    def validate(action: TransformAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if ctx.target(draft, action.actor_id) is None:
            logger.debug("Transform: actor %r is gone", action.actor_id)
            return False
        if TransformHandler._operand(action, draft, ctx) is None:
            logger.debug("Transform: %r is not a transform", action.value)
            return False
        return True

    @staticmethod
    def apply(action: TransformAction, draft: WorldDraft, ctx: ActionContext) -> None:
        actor = ctx.target(draft, action.actor_id)
        operand = TransformHandler._operand(action, draft, ctx)
        draft.put_actor(replace(actor, transform=apply_transform_operation(actor.transform, action.operation, operand)))

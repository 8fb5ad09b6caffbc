"""CreateHandler: spawns a new actor relative to the rule origin."""

from __future__ import annotations

import logging

from stagecraft.actions.base import ActionContext
from stagecraft.core.draft import WorldDraft
from stagecraft.core.models import Actor, frozen_map
from stagecraft.core.rules import CreateAction

logger = logging.getLogger(__name__)


class CreateHandler:
    """Stateless handler for create actions."""

    @staticmethod
    def validate(action: CreateAction, draft: WorldDraft, ctx: ActionContext) -> bool:
        if action.character_id not in draft.characters:
            logger.debug("Create: unknown character %r", action.character_id)
            return False
        if ctx.origin is None:
            logger.debug("Create: no origin for %r", action.actor_id)
            return False
        if draft.wrapped_position(ctx.origin + action.offset) is None:
            logger.debug("Create: %s is off stage", ctx.origin + action.offset)
            return False
        return True

    @staticmethod
    def apply(action: CreateAction, draft: WorldDraft, ctx: ActionContext) -> None:
        character = draft.characters[action.character_id]
        position = draft.wrapped_position(ctx.origin + action.offset)
        appearance = action.appearance if character.has_appearance(action.appearance) else character.default_appearance

        values = character.default_values()
        values.update(action.initial_values)

        actor = Actor(
            id=draft.allocate_actor_id(),
            character_id=character.id,
            position=position,
            appearance=appearance,
            transform=action.transform,
            variable_values=frozen_map(values),
        )
        draft.put_actor(actor)
        ctx.binding[action.actor_id] = actor.id
        ctx.created[action.actor_id] = actor.id
        logger.debug("Created %s (%s) at %s", actor.id, character.id, position)

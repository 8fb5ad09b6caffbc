"""Sequential application of rule actions onto a WorldDraft."""

from __future__ import annotations

import logging
from typing import Iterable, assert_never

from stagecraft.actions.appearance import AppearanceHandler, TransformHandler
from stagecraft.actions.base import ActionBatch, ActionContext
from stagecraft.actions.create import CreateHandler
from stagecraft.actions.move import DeleteHandler, MoveHandler
from stagecraft.actions.variables import GlobalHandler, VariableHandler
from stagecraft.core.draft import WorldDraft
from stagecraft.core.models import World
from stagecraft.core.rules import (
    Action,
    AppearanceAction,
    CreateAction,
    DeleteAction,
    GlobalAction,
    MoveAction,
    TransformAction,
    VariableAction,
)

logger = logging.getLogger(__name__)


class ActionApplier:
    """Validates and applies actions in list order.

    Every action sees the effects of the ones before it. Actions whose target
    vanished, whose value is invalid or whose destination is off stage are
    skipped and collected in ``rejected``; data problems never raise.
    """

    __slots__ = ("_draft", "rejected")

    def __init__(self, draft: WorldDraft) -> None:
        self._draft = draft
        self.rejected: list[Action] = []

    @property
    def draft(self) -> WorldDraft:
        return self._draft

    def apply(self, actions: Iterable[Action], ctx: ActionContext) -> list[Action]:
        """Apply *actions* under *ctx*. Returns the list of *applied* actions."""
        applied: list[Action] = []
        for action in actions:
            if self._apply_one(action, ctx):
                applied.append(action)
            else:
                self.rejected.append(action)
                logger.debug("Rejected: %s (actor %s)", action, ctx.actor_id)
        return applied

    def apply_batch(self, batch: ActionBatch, id_map: dict[str, str] | None = None) -> list[Action]:
        """Replay a walker batch.

        *id_map* translates the walker's private ids of created actors into ids
        on this draft. It belongs to one acting actor and is extended with the
        actors this batch creates, so the actor's later batches address them.
        """
        ctx = batch.context(id_map)
        applied = self.apply(batch.actions, ctx)
        if id_map is not None:
            for rule_actor_id, private_id in batch.created.items():
                shared_id = ctx.created.get(rule_actor_id)
                if shared_id is not None:
                    id_map[private_id] = shared_id
        return applied

    def _apply_one(self, action: Action, ctx: ActionContext) -> bool:
        draft = self._draft
        match action:
            case CreateAction():
                handler = CreateHandler
            case MoveAction():
                handler = MoveHandler
            case DeleteAction():
                handler = DeleteHandler
            case VariableAction():
                handler = VariableHandler
            case AppearanceAction():
                handler = AppearanceHandler
            case TransformAction():
                handler = TransformHandler
            case GlobalAction():
                handler = GlobalHandler
            case _:
                assert_never(action)

        if not handler.validate(action, draft, ctx):
            return False
        handler.apply(action, draft, ctx)
        return True


def apply_actions(
    actions: Iterable[Action],
    world: World | WorldDraft,
    context: ActionContext | None = None,
) -> World:
    """Apply *actions* in order and return the resulting World.

    Without a *context* the actions run unanchored: rule ids resolve as stage
    actor ids and offset-based creates and moves are no-ops.
    """
    draft = world if isinstance(world, WorldDraft) else WorldDraft(world)
    ActionApplier(draft).apply(actions, context or ActionContext())
    return draft.freeze()

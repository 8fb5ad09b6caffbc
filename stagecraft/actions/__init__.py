"""Action handlers: validation and execution of rule actions."""

from stagecraft.actions.base import ActionBatch, ActionContext
from stagecraft.actions.create import CreateHandler
from stagecraft.actions.move import DeleteHandler, MoveHandler
from stagecraft.actions.variables import GlobalHandler, VariableHandler
from stagecraft.actions.appearance import AppearanceHandler, TransformHandler

__all__ = [
    "ActionBatch",
    "ActionContext",
    "AppearanceHandler",
    "CreateHandler",
    "DeleteHandler",
    "GlobalHandler",
    "MoveHandler",
    "TransformHandler",
    "VariableHandler",
]

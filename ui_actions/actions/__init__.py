"""Declarative action execution."""

from .base import ActionContext, ActionHandler, ActionResult, ActionStatus
from .engine import ActionEngine
from .models import ActionDef, parse_action
from .registry import HandlerRegistry, builtin_action
from .runner import ActionRunner, execute_action

__all__ = [
    "ActionContext",
    "ActionDef",
    "ActionEngine",
    "ActionHandler",
    "ActionResult",
    "ActionRunner",
    "ActionStatus",
    "HandlerRegistry",
    "builtin_action",
    "execute_action",
    "parse_action",
]

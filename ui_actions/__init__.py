"""Declarative action execution engine for server-driven UIs."""

from .actions import (
    ActionContext,
    ActionDef,
    ActionEngine,
    ActionResult,
    ActionRunner,
    execute_action,
    parse_action,
)
from .config import EngineSettings
from .expressions import ExpressionEvaluator

__version__ = "0.1.0"

__all__ = [
    "ActionContext",
    "ActionDef",
    "ActionEngine",
    "ActionResult",
    "ActionRunner",
    "EngineSettings",
    "ExpressionEvaluator",
    "execute_action",
    "parse_action",
]

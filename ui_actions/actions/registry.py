"""Handler registry and built-in dispatcher table."""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

import structlog

from .base import ActionContext, ActionHandler, ActionResult

logger = structlog.get_logger(__name__)

# fn(action, context) -> ActionResult | mapping, sync or async
CustomHandler = Callable[[Any, ActionContext], Union[Awaitable[Any], Any]]

_builtin_handlers: Dict[str, ActionHandler] = {}


class HandlerRegistry:
    """Live mapping from action type to a custom handler."""

    def __init__(self, handlers: Optional[Dict[str, CustomHandler]] = None) -> None:
        self._handlers: Dict[str, CustomHandler] = dict(handlers or {})

    def register(self, action_type: str, handler: CustomHandler) -> None:
        """Register a handler, replacing any previous one for the type.

        Args:
            action_type: Action type the handler serves
            handler: Callable receiving (action, context)
        """
        if action_type in self._handlers:
            logger.info("Overriding existing action handler", action_type=action_type)
        self._handlers[action_type] = handler
        logger.debug("Registered action handler", action_type=action_type)

    def unregister(self, action_type: str) -> bool:
        """Remove the handler for a type.

        Returns:
            True if a handler was removed
        """
        removed = self._handlers.pop(action_type, None) is not None
        if removed:
            logger.debug("Unregistered action handler", action_type=action_type)
        return removed

    def get(self, action_type: Optional[str]) -> Optional[CustomHandler]:
        if action_type is None:
            return None
        return self._handlers.get(action_type)

    def copy(self) -> "HandlerRegistry":
        return HandlerRegistry(self._handlers)

    def list_types(self) -> List[str]:
        return list(self._handlers)

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        return {
            "registered_handlers": len(self._handlers),
            "handler_types": self.list_types(),
            "builtin_types": list(_builtin_handlers),
        }


def builtin_action(action_type: str, description: str = "") -> Any:
    """Decorator that adds a dispatcher class to the built-in table.

    Args:
        action_type: Action type the dispatcher serves
        description: Optional description

    Returns:
        Decorator function
    """
    def decorator(cls: Type[ActionHandler]) -> Type[ActionHandler]:
        _builtin_handlers[action_type] = cls(
            action_type, description or f"Built-in handler for {action_type}"
        )
        return cls

    return decorator


def get_builtin_handler(action_type: Optional[str]) -> Optional[ActionHandler]:
    """Return the built-in dispatcher for a type, if any."""
    if action_type is None:
        return None
    return _builtin_handlers.get(action_type)


def list_builtin_handlers() -> List[Dict[str, str]]:
    """List all built-in dispatchers."""
    return [
        {"type": name, "description": handler.description}
        for name, handler in _builtin_handlers.items()
    ]
